from bisect import bisect_left, bisect_right, insort
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Callable, Iterable, Iterator


Comparator = Callable[[str, str], int]


@dataclass(frozen=True)
class Range:
    """Ring arc ``(start, end]`` owned by the node bound to ``end``.

    ``start >= end`` means the arc wraps past the top of the ring; with
    ``start == end`` it covers the whole circle.
    """

    start: str
    end: str

    def contains(self, digest: str, compare: Comparator | None = None) -> bool:
        """True when ``digest`` falls inside ``(start, end]``."""
        if compare is None:
            compare = _compare_strings
        after_start = compare(digest, self.start) > 0
        upto_end = compare(digest, self.end) <= 0
        if compare(self.start, self.end) >= 0:
            return after_start or upto_end
        return after_start and upto_end


def _compare_strings(a: str, b: str) -> int:
    return (a > b) - (a < b)


class PositionIndex:
    """Ordered set of ring digests kept in a sorted list.

    Searches use :mod:`bisect` so successor queries are ``O(log n)``. When a
    ``compare`` function is given the list is ordered by it instead of plain
    string ordering.
    """

    def __init__(self, compare: Comparator | None = None, digests: Iterable[str] = ()) -> None:
        self.compare = compare
        self._key = cmp_to_key(compare) if compare is not None else None
        self._digests: list[str] = sorted(digests, key=self._key)

    def __len__(self) -> int:
        return len(self._digests)

    def __iter__(self) -> Iterator[str]:
        return iter(self._digests)

    def __getitem__(self, idx: int) -> str:
        return self._digests[idx]

    def __contains__(self, digest: str) -> bool:
        idx = self.insertion_point(digest)
        return idx < len(self._digests) and self._equal(self._digests[idx], digest)

    def _equal(self, a: str, b: str) -> bool:
        if self.compare is None:
            return a == b
        return self.compare(a, b) == 0

    def insertion_point(self, digest: str) -> int:
        """Return the index where ``digest`` would be inserted."""
        if self._key is None:
            return bisect_left(self._digests, digest)
        return bisect_left(self._digests, self._key(digest), key=self._key)

    def insert(self, digest: str) -> int:
        """Insert ``digest`` and return its index."""
        if digest in self:
            raise KeyError(digest)
        if self._key is None:
            insort(self._digests, digest)
        else:
            insort(self._digests, digest, key=self._key)
        return self.insertion_point(digest)

    def delete(self, digest: str) -> int:
        """Remove ``digest`` and return the index it occupied."""
        idx = self.insertion_point(digest)
        if idx >= len(self._digests) or not self._equal(self._digests[idx], digest):
            raise KeyError(digest)
        del self._digests[idx]
        return idx

    def successor(self, target: str) -> str | None:
        """Smallest stored digest greater than or equal to ``target``."""
        idx = self.insertion_point(target)
        if idx < len(self._digests):
            return self._digests[idx]
        return None

    def predecessor(self, target: str) -> str | None:
        """Largest stored digest strictly smaller than ``target``."""
        idx = self.insertion_point(target)
        if idx > 0:
            return self._digests[idx - 1]
        return None

    def first(self) -> str | None:
        return self._digests[0] if self._digests else None

    def last(self) -> str | None:
        return self._digests[-1] if self._digests else None

    def index(self, digest: str) -> int:
        idx = self.insertion_point(digest)
        if idx >= len(self._digests) or not self._equal(self._digests[idx], digest):
            raise KeyError(digest)
        return idx

    def neighbours(self, digest: str) -> tuple[str, str] | None:
        """Return the circular ``(before, after)`` digests around ``digest``.

        ``digest`` does not need to be stored: for an absent value the pair
        is the two digests it would be inserted between.
        """
        if not self._digests:
            return None
        n = len(self._digests)
        idx = self.insertion_point(digest)
        before = self._digests[idx - 1]
        if idx < n and self._equal(self._digests[idx], digest):
            after = self._digests[(idx + 1) % n]
        else:
            after = self._digests[idx % n]
        return before, after

    def in_range(self, start: str, end: str) -> list[str]:
        """Digests inside ``[start, end]``, wrapping when ``start > end``."""
        if not self._digests:
            return []
        lo = self.insertion_point(start)
        if self._key is None:
            hi = bisect_right(self._digests, end)
            wraps = start > end
        else:
            hi = bisect_right(self._digests, self._key(end), key=self._key)
            wraps = self.compare(start, end) > 0
        if wraps:
            return self._digests[lo:] + self._digests[:hi]
        return self._digests[lo:hi]

    def copy(self) -> "PositionIndex":
        clone = PositionIndex(self.compare)
        clone._digests = list(self._digests)
        return clone

    def to_list(self) -> list[str]:
        return list(self._digests)

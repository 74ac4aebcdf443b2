import threading
from typing import Any, Callable

from hashring.ring.hash_ring import HashRing, RingPosition
from hashring.ring.position_index import PositionIndex


class RingSnapshot:
    """Immutable copy of a ring's positions for lock-free readers."""

    def __init__(self, ring: HashRing) -> None:
        self.replicas = ring.replicas
        self._hash_fn = ring.hash_fn
        self._node_key = ring.node_key
        self._index = ring._index.copy()
        self._owners = dict(ring._owners)
        self._positions = tuple(ring.get_ordered_nodes())

    def __len__(self) -> int:
        return len(self._index)

    def get_node(self, key: str) -> Any:
        if not self._index:
            return None
        digest = self._hash_fn(key)
        target = self._index.successor(digest)
        if target is None:
            target = self._index.first()
        return self._owners[target]

    def get_ordered_nodes(self) -> list[RingPosition]:
        return list(self._positions)

    def get_nodes_count(self) -> int:
        return len({self._node_key(node) for node in self._owners.values()})

    @property
    def digests(self) -> PositionIndex:
        return self._index.copy()


def _locked(name: str) -> Callable:
    def method(self, *args, **kwargs):
        with self._lock:
            return getattr(self.ring, name)(*args, **kwargs)

    method.__name__ = name
    method.__doc__ = getattr(HashRing, name).__doc__
    return method


class LockedHashRing:
    """Serializes access to a :class:`HashRing` with a re-entrant lock.

    Every call, including the adjacency repair triggered by membership
    changes, runs while holding the lock, so readers never observe a ring
    mid-mutation. :meth:`snapshot` returns a copy that can be queried
    without the lock.
    """

    def __init__(self, ring: HashRing | None = None, **kwargs) -> None:
        self.ring = ring if ring is not None else HashRing(**kwargs)
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def replicas(self) -> int:
        return self.ring.replicas

    @property
    def event_logger(self):
        return self.ring.event_logger

    add_node = _locked("add_node")
    remove_node = _locked("remove_node")
    get_node = _locked("get_node")
    get_preference_list = _locked("get_preference_list")
    get_nodes = _locked("get_nodes")
    get_nodes_count = _locked("get_nodes_count")
    get_ranges_for_node = _locked("get_ranges_for_node")
    get_node_for_range = _locked("get_node_for_range")
    get_nodes_in_range = _locked("get_nodes_in_range")
    get_ordered_nodes = _locked("get_ordered_nodes")
    get_node_distribution = _locked("get_node_distribution")
    find_adjacent_replicas = _locked("find_adjacent_replicas")
    fix_adjacent_replicas = _locked("fix_adjacent_replicas")
    validate_distribution = _locked("validate_distribution")
    __len__ = _locked("__len__")
    __contains__ = _locked("__contains__")

    def snapshot(self) -> RingSnapshot:
        with self._lock:
            return RingSnapshot(self.ring)

"""Detection and repair of adjacent replicas.

Two consecutive ring positions owned by the same physical node act as one
oversized range, skewing load towards that node. After every membership
change the ring relocates the second replica of each such pair to a new
position, derived by appending a rotation suffix to its virtual key, until
no pair is left or no safe position can be found.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from hashring.ring.position_index import Range

if TYPE_CHECKING:
    from hashring.ring.hash_ring import HashRing

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROTATIONS = 1000
ROTATE_SUFFIX = "_rotate"


@dataclass(frozen=True)
class AdjacentPair:
    """Two circularly consecutive positions owned by ``node``."""

    node: Any
    first_digest: str
    second_digest: str
    first_position: int
    second_position: int


@dataclass(frozen=True)
class Relocation:
    """A replica moved by repair.

    Keys whose owner changed because of the move lie in ``old_range`` (now
    served by the old successor) or in ``new_range`` (now served by
    ``node``).
    """

    node: Any
    old_virtual_key: str
    new_virtual_key: str
    old_range: Range
    new_range: Range


@dataclass
class RepairResult:
    relocated: int = 0
    exhausted: bool = False
    unresolved: list[AdjacentPair] = field(default_factory=list)
    relocations: list[Relocation] = field(default_factory=list)
    issue: str | None = None

    @property
    def ok(self) -> bool:
        return not self.unresolved


def _owner_keys(ring: "HashRing", ordered: list[str]) -> list[str]:
    return [ring.node_key(ring._owners[d]) for d in ordered]


def find_adjacent_replicas(ring: "HashRing") -> list[AdjacentPair]:
    """Return every consecutive pair (wrap-around included) sharing a node.

    With fewer than two distinct nodes adjacency is unavoidable and the
    result is always empty.
    """
    ordered = ring._index.to_list()
    keys = _owner_keys(ring, ordered)
    if len(set(keys)) < 2:
        return []
    n = len(ordered)
    pairs = []
    for i in range(n):
        j = (i + 1) % n
        if keys[i] == keys[j]:
            pairs.append(
                AdjacentPair(ring._owners[ordered[i]], ordered[i], ordered[j], i, j)
            )
    return pairs


def find_insertion_slot(keys: list[str], pair: AdjacentPair, node_key: str) -> int | None:
    """First insertion index whose neighbours are not owned by ``node_key``.

    Inserting at index ``j`` places a position between ``keys[j - 1]`` and
    ``keys[j]``; the indices of ``pair`` itself are skipped.
    """
    for j in range(len(keys)):
        if j in (pair.first_position, pair.second_position):
            continue
        if keys[j - 1] != node_key and keys[j] != node_key:
            return j
    return None


def relocate_replica(ring: "HashRing", digest: str, max_rotations: int) -> Relocation | None:
    """Move the replica at ``digest`` to a rotated virtual key.

    Returns the :class:`Relocation`, or ``None`` when no unused, non-adjacent
    digest was found within ``max_rotations`` attempts; in that case the
    replica is restored at its original digest.
    """
    old_range = Range(ring._index.neighbours(digest)[0], digest)
    node, vkey = ring._unbind(digest)
    nkey = ring.node_key(node)
    for attempt in range(1, max_rotations + 1):
        candidate = f"{vkey}{ROTATE_SUFFIX}{attempt}"
        new_digest = ring.hash_fn(candidate)
        if new_digest in ring._index:
            continue
        around = ring._index.neighbours(new_digest)
        if around is not None and nkey in _owner_keys(ring, list(around)):
            continue
        ring._bind(new_digest, node, candidate)
        ring._log(f"Replica {vkey} of node {nkey} relocated as {candidate}")
        new_range = Range(ring._index.neighbours(new_digest)[0], new_digest)
        return Relocation(node, vkey, candidate, old_range, new_range)
    ring._bind(digest, node, vkey)
    return None


def fix_adjacent_replicas(
    ring: "HashRing", max_rotations: int = DEFAULT_MAX_ROTATIONS
) -> RepairResult:
    """Relocate replicas until no two consecutive positions share a node.

    Every relocation removes at least one adjacent pair without creating a
    new one, so the loop ends after at most as many relocations as there
    were pairs. It stops early, leaving the remaining pairs in place, when
    the ring has no slot away from the node or when the rotation search is
    exhausted; the returned result carries the diagnostic.
    """
    result = RepairResult()
    if ring.get_nodes_count() < 2:
        return result
    pairs = find_adjacent_replicas(ring)
    while pairs:
        pair = pairs[0]
        keys = _owner_keys(ring, ring._index.to_list())
        nkey = keys[pair.second_position]
        if find_insertion_slot(keys, pair, nkey) is None:
            result.unresolved = pairs
            result.issue = (
                f"No free slot to separate replicas of node {nkey}; "
                f"{len(pairs)} adjacent pair(s) left"
            )
            ring._log(result.issue, level=logging.WARNING)
            break
        vkey = ring.get_virtual_key(pair.second_digest)
        relocation = relocate_replica(ring, pair.second_digest, max_rotations)
        if relocation is None:
            result.exhausted = True
            result.unresolved = find_adjacent_replicas(ring)
            result.issue = (
                f"Rotation attempts exhausted for replica {vkey} of node {nkey} "
                f"after {max_rotations} tries; "
                f"{len(result.unresolved)} adjacent pair(s) left"
            )
            ring._log(result.issue, level=logging.WARNING)
            break
        result.relocated += 1
        result.relocations.append(relocation)
        pairs = find_adjacent_replicas(ring)
    if result.relocated:
        logger.debug("Adjacency repair relocated %d replica(s)", result.relocated)
    return result

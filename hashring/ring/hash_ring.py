import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, TypeVar

from hashring.ring.digest import HashFunction, default_node_key, hash_function, sha256_hex
from hashring.ring.position_index import Comparator, PositionIndex, Range
from hashring.ring import diagnostics, rebalance
from hashring.ring.rebalance import ROTATE_SUFFIX
from hashring.utils.event_logger import EventLogger

logger = logging.getLogger(__name__)

T = TypeVar("T")

PLACEMENTS = ("standard", "spread")
SPREAD_SUFFIX = "_spread"

_REPLICA_INDEX = re.compile(r"(\d+)")


@dataclass(frozen=True)
class RingPosition:
    digest: str
    node: Any
    replica_index: int | None


class HashRing(Generic[T]):
    """Consistent hashing ring with virtual replicas.

    Keys are routed to the first replica clockwise from the key's digest,
    wrapping at the top of the ring. Each physical node is placed
    ``replicas`` times and replicas of the same node are kept apart: after
    every membership change the ring is repaired so that no two consecutive
    positions belong to the same node (see :mod:`hashring.ring.rebalance`).

    ``hash_fn`` must be deterministic and pure. If it produces digests that
    do not sort lexicographically (e.g. decimal strings) pass ``compare``.
    Node identity is the string returned by ``node_key``; the nodes
    themselves are never compared or hashed.

    The ring is not thread-safe; see :class:`hashring.ring.locked.LockedHashRing`.
    """

    def __init__(
        self,
        nodes: Iterable[T] = (),
        replicas: int = 50,
        hash_fn: HashFunction = sha256_hex,
        compare: Comparator | None = None,
        node_key: Callable[[T], str] = default_node_key,
        *,
        placement: str = "standard",
        spread_groups: int = 4,
        max_rotation_attempts: int = rebalance.DEFAULT_MAX_ROTATIONS,
        event_logger: EventLogger | None = None,
    ) -> None:
        if replicas < 1:
            raise ValueError("replicas must be at least 1")
        if placement not in PLACEMENTS:
            raise ValueError(f"unknown placement {placement!r}")
        if spread_groups < 1:
            raise ValueError("spread_groups must be at least 1")
        if max_rotation_attempts < 1:
            raise ValueError("max_rotation_attempts must be at least 1")
        self.replicas = replicas
        self.hash_fn = hash_fn
        self.compare = compare
        self.node_key = node_key
        self.placement = placement
        self.spread_groups = spread_groups
        self.max_rotation_attempts = max_rotation_attempts
        self.event_logger = event_logger

        self._index = PositionIndex(compare)
        self._owners: dict[str, T] = {}  # digest -> physical node
        self._virtual_keys: dict[str, str] = {}  # digest -> virtual node key
        # diagnostics produced by the most recent mutation
        self._issues: list[str] = []
        self.last_repair: rebalance.RepairResult | None = None

        for node in nodes:
            self.add_node(node)

    @classmethod
    def from_config(cls, config, nodes: Iterable[T] | None = None, **kwargs) -> "HashRing[T]":
        """Build a ring from a :class:`hashring.config.RingConfig`."""
        config.validate()
        if kwargs.get("event_logger") is None and config.event_log_path:
            kwargs["event_logger"] = EventLogger(config.event_log_path)
        return cls(
            config.initial_nodes if nodes is None else nodes,
            replicas=config.replicas,
            hash_fn=hash_function(config.hash_algorithm),
            placement=config.placement,
            spread_groups=config.spread_groups,
            max_rotation_attempts=config.max_rotation_attempts,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # membership
    # ------------------------------------------------------------------
    def virtual_key(self, node: T, replica: int) -> str:
        """Initial virtual node key for replica ``replica`` of ``node``."""
        key = f"{self.node_key(node)}:{replica}"
        if self.placement == "spread":
            key = f"{key}{SPREAD_SUFFIX}{replica % self.spread_groups}"
        return key

    def add_node(self, node: T) -> None:
        """Place ``replicas`` virtual nodes for ``node`` and repair the ring.

        Adding a node that is already present places a second set of
        replicas; remove it first to re-add it cleanly.
        """
        self._issues = []
        nkey = self.node_key(node)
        placed = 0
        for i in range(self.replicas):
            vkey = self.virtual_key(node, i)
            digest = self.hash_fn(vkey)
            if digest in self._index:
                digest, vkey = self._resolve_collision(node, vkey)
                if digest is None:
                    continue
            self._bind(digest, node, vkey)
            placed += 1
        self._log(f"Node {nkey} added with {placed} replicas")
        self._repair()

    def remove_node(self, node: T) -> None:
        """Remove every replica of ``node`` (no-op if absent) and repair."""
        self._issues = []
        nkey = self.node_key(node)
        digests = [d for d, owner in self._owners.items() if self.node_key(owner) == nkey]
        for digest in digests:
            self._unbind(digest)
        if digests:
            self._log(f"Node {nkey} removed ({len(digests)} replicas)")
        self._repair()

    def _resolve_collision(self, node: T, vkey: str) -> tuple[str | None, str]:
        """Find a free digest for ``vkey`` using rotation suffixes."""
        nkey = self.node_key(node)
        self._log(f"Digest collision for {vkey}; rotating")
        for attempt in range(1, self.max_rotation_attempts + 1):
            candidate = f"{vkey}{ROTATE_SUFFIX}{attempt}"
            digest = self.hash_fn(candidate)
            if digest not in self._index:
                return digest, candidate
        msg = (
            f"Replica {vkey} of node {nkey} skipped: digest collision unresolved "
            f"after {self.max_rotation_attempts} attempts"
        )
        self._issues.append(msg)
        self._log(msg, level=logging.WARNING)
        return None, vkey

    def _bind(self, digest: str, node: T, vkey: str) -> None:
        self._index.insert(digest)
        self._owners[digest] = node
        self._virtual_keys[digest] = vkey

    def _unbind(self, digest: str) -> tuple[T, str]:
        self._index.delete(digest)
        node = self._owners.pop(digest)
        vkey = self._virtual_keys.pop(digest)
        return node, vkey

    # ------------------------------------------------------------------
    # lookups
    # ------------------------------------------------------------------
    def get_node(self, key: str) -> T | None:
        """Return the node owning ``key`` or ``None`` on an empty ring."""
        if not self._index:
            return None
        digest = self.hash_fn(key)
        target = self._index.successor(digest)
        if target is None:
            target = self._index.first()
        return self._owners[target]

    def get_preference_list(self, key: str, n: int) -> list[T]:
        """Return the next ``n`` distinct nodes responsible for ``key``."""
        if not self._index or n <= 0:
            return []
        digest = self.hash_fn(key)
        start = self._index.insertion_point(digest) % len(self._index)
        total = self.get_nodes_count()
        result: list[T] = []
        seen: set[str] = set()
        for offset in range(len(self._index)):
            if len(result) >= n or len(seen) >= total:
                break
            node = self._owners[self._index[(start + offset) % len(self._index)]]
            nkey = self.node_key(node)
            if nkey not in seen:
                seen.add(nkey)
                result.append(node)
        return result

    def get_nodes(self) -> list[T]:
        """Distinct physical nodes in ring order of their first replica."""
        seen: dict[str, T] = {}
        for digest in self._index:
            node = self._owners[digest]
            seen.setdefault(self.node_key(node), node)
        return list(seen.values())

    def get_nodes_count(self) -> int:
        """Number of physical nodes (virtual replicas are not counted)."""
        return len({self.node_key(node) for node in self._owners.values()})

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, node: object) -> bool:
        nkey = self.node_key(node)
        return any(self.node_key(owner) == nkey for owner in self._owners.values())

    # ------------------------------------------------------------------
    # ranges
    # ------------------------------------------------------------------
    def get_ranges_for_node(self, node: T) -> list[Range]:
        """Return the arcs owned by every replica of ``node`` in ring order.

        Each range ends at a replica's digest and starts at the previous
        digest on the ring; the first digest's range starts at the last one,
        so ``start > end`` for the wrapping range.
        """
        nkey = self.node_key(node)
        ordered = self._index.to_list()
        ranges = []
        for idx, digest in enumerate(ordered):
            if self.node_key(self._owners[digest]) == nkey:
                ranges.append(Range(ordered[idx - 1], digest))
        return ranges

    def get_node_for_range(self, rng: Range) -> T | None:
        """Node owning ``rng``, identified by the range's end digest."""
        return self._owners.get(rng.end)

    def get_nodes_in_range(self, start: str, end: str) -> list[T]:
        """Distinct nodes with a replica digest inside ``[start, end]``.

        When ``start`` sorts after ``end`` the range wraps around the top of
        the ring.
        """
        result: dict[str, T] = {}
        for digest in self._index.in_range(start, end):
            node = self._owners[digest]
            result.setdefault(self.node_key(node), node)
        return list(result.values())

    # ------------------------------------------------------------------
    # ordering and distribution
    # ------------------------------------------------------------------
    def replica_index(self, digest: str) -> int | None:
        """Parse the replica number out of the virtual key stored at ``digest``."""
        vkey = self._virtual_keys.get(digest)
        if vkey is None:
            return None
        prefix = f"{self.node_key(self._owners[digest])}:"
        if not vkey.startswith(prefix):
            return None
        match = _REPLICA_INDEX.match(vkey, len(prefix))
        return int(match.group(1)) if match else None

    def get_virtual_key(self, digest: str) -> str | None:
        return self._virtual_keys.get(digest)

    def get_ordered_nodes(self) -> list[RingPosition]:
        return [
            RingPosition(d, self._owners[d], self.replica_index(d)) for d in self._index
        ]

    def get_node_distribution(self) -> dict[str, list[str]]:
        """Map each node key to the digests it owns, in ring order."""
        distribution: dict[str, list[str]] = {}
        for digest in self._index:
            nkey = self.node_key(self._owners[digest])
            distribution.setdefault(nkey, []).append(digest)
        return distribution

    # ------------------------------------------------------------------
    # adjacency
    # ------------------------------------------------------------------
    def find_adjacent_replicas(self) -> list[rebalance.AdjacentPair]:
        return rebalance.find_adjacent_replicas(self)

    def fix_adjacent_replicas(self) -> rebalance.RepairResult:
        """Run a repair pass; ``issues`` then reports only this pass."""
        self._issues = []
        return self._repair()

    def _repair(self) -> rebalance.RepairResult:
        result = rebalance.fix_adjacent_replicas(self, self.max_rotation_attempts)
        self.last_repair = result
        if result.issue:
            self._issues.append(result.issue)
        return result

    def validate_distribution(self) -> diagnostics.DistributionReport:
        return diagnostics.validate_distribution(self)

    @property
    def issues(self) -> list[str]:
        """Diagnostics recorded by the most recent membership change."""
        return list(self._issues)

    def _log(self, msg: str, level: int = logging.INFO) -> None:
        if self.event_logger is not None:
            self.event_logger.log(msg)
        if level >= logging.WARNING or self.event_logger is None:
            logger.log(level, msg)

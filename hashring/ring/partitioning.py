from abc import ABC, abstractmethod
from typing import Any, Iterable

from hashring.ring.hash_ring import HashRing


class Partitioner(ABC):
    """Abstract base for partitioning strategies."""

    @abstractmethod
    def get_partition_id(self, key: str) -> int:
        """Return partition id for ``key``."""

    @abstractmethod
    def add_node(self, node) -> None:
        """Add a node to the partitioner."""

    @abstractmethod
    def remove_node(self, node) -> None:
        """Remove ``node`` from the partitioner."""


class ConsistentHashPartitioner(Partitioner):
    """Partitioner backed by :class:`HashRing`.

    Every ring position is a partition: the partition id of a key is the
    index of the position that owns it, so ids shift when membership
    changes. Use :meth:`get_partition_map` to resolve ids to node keys.
    """

    def __init__(self, nodes: Iterable[Any] | None = None, *, partitions_per_node: int = 1, **kwargs) -> None:
        self.ring = HashRing(replicas=partitions_per_node, **kwargs)
        self.nodes: list = []
        for node in nodes or ():
            self.add_node(node)

    @property
    def num_partitions(self) -> int:
        return len(self.ring)

    def get_partition_id(self, key: str) -> int:
        if not len(self.ring):
            return 0
        digest = self.ring.hash_fn(key)
        return self.ring._index.insertion_point(digest) % len(self.ring)

    def add_node(self, node) -> None:
        self.nodes.append(node)
        self.ring.add_node(node)

    def remove_node(self, node) -> None:
        nkey = self.ring.node_key(node)
        self.nodes = [n for n in self.nodes if self.ring.node_key(n) != nkey]
        self.ring.remove_node(node)

    def get_partition_map(self) -> dict[int, str]:
        return {
            i: self.ring.node_key(pos.node)
            for i, pos in enumerate(self.ring.get_ordered_nodes())
        }

    def get_owner(self, key: str):
        return self.ring.get_node(key)

    def get_preference_list(self, key: str, n: int) -> list[str]:
        """Return node keys of the next ``n`` distinct nodes for ``key``."""
        return [self.ring.node_key(node) for node in self.ring.get_preference_list(key, n)]

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hashring.ring.hash_ring import HashRing


@dataclass
class DistributionReport:
    """Summary of how well replicas are spread over the ring."""

    is_valid: bool
    adjacent_pairs: int
    replica_counts: dict[str, int]
    expected_replicas: int
    issues: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "adjacent_pairs": self.adjacent_pairs,
            "replica_counts": dict(self.replica_counts),
            "expected_replicas": self.expected_replicas,
            "issues": list(self.issues),
        }


def validate_distribution(ring: "HashRing") -> DistributionReport:
    """Check the ring for adjacent replicas and wrong replica counts.

    The report is valid when no two consecutive positions share a node and
    every node owns exactly ``ring.replicas`` positions. Diagnostics left by
    the last membership change (unresolved repairs or collisions) are
    included in ``issues``.
    """
    issues: list[str] = []
    pairs = ring.find_adjacent_replicas()
    for pair in pairs:
        issues.append(
            f"Node {ring.node_key(pair.node)} owns adjacent positions "
            f"{pair.first_position} and {pair.second_position}"
        )

    counts = {nkey: len(digests) for nkey, digests in ring.get_node_distribution().items()}
    counts_ok = True
    for nkey, count in counts.items():
        if count != ring.replicas:
            counts_ok = False
            issues.append(f"Node {nkey} has {count} replicas, expected {ring.replicas}")

    for issue in ring.issues:
        if issue not in issues:
            issues.append(issue)

    return DistributionReport(
        is_valid=not pairs and counts_ok,
        adjacent_pairs=len(pairs),
        replica_counts=counts,
        expected_replicas=ring.replicas,
        issues=issues,
    )

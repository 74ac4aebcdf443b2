"""Consistent hashing ring and its helpers."""

# Re-export commonly used names without importing modules to avoid
# circular dependencies during package initialization.
from importlib import import_module

_EXPORTS = {
    "HashRing": "hash_ring",
    "Range": "position_index",
    "RingPosition": "hash_ring",
    "PositionIndex": "position_index",
    "AdjacentPair": "rebalance",
    "RepairResult": "rebalance",
    "Relocation": "rebalance",
    "DistributionReport": "diagnostics",
    "LockedHashRing": "locked",
    "RingSnapshot": "locked",
    "Partitioner": "partitioning",
    "ConsistentHashPartitioner": "partitioning",
    "hash_function": "digest",
    "sha256_hex": "digest",
    "numeric_compare": "digest",
    "default_node_key": "digest",
}


def __getattr__(name):
    if name in _EXPORTS:
        mod = import_module(f"{__name__}.{_EXPORTS[name]}")
        return getattr(mod, name)
    raise AttributeError(name)

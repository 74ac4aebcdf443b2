"""Consistent hashing ring with adjacency-avoiding virtual replicas."""

from importlib import import_module

__version__ = "0.1.0"


def __getattr__(name):
    if name in {"HashRing", "LockedHashRing", "RingSnapshot", "Range", "ConsistentHashPartitioner"}:
        return getattr(import_module("hashring.ring"), name)
    if name == "RingConfig":
        return import_module("hashring.config").RingConfig
    if name == "EventLogger":
        return import_module("hashring.utils.event_logger").EventLogger
    raise AttributeError(name)

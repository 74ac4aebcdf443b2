"""Ring configuration.

Values default to the environment variables ``HASHRING_REPLICAS``,
``HASHRING_HASH``, ``HASHRING_PLACEMENT``, ``HASHRING_SPREAD_GROUPS``,
``HASHRING_MAX_ROTATIONS``, ``HASHRING_EVENT_LOG`` and ``HASHRING_NODES``
when set.
"""

import os
from dataclasses import dataclass, field
from typing import List, Mapping

from hashring.ring.digest import hash_function
from hashring.ring.hash_ring import PLACEMENTS
from hashring.ring.rebalance import DEFAULT_MAX_ROTATIONS

DEFAULT_REPLICAS = 50


@dataclass
class RingConfig:
    replicas: int = DEFAULT_REPLICAS
    hash_algorithm: str = "sha256"
    placement: str = "standard"
    spread_groups: int = 4
    max_rotation_attempts: int = DEFAULT_MAX_ROTATIONS
    event_log_path: str | None = None
    initial_nodes: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "RingConfig":
        env = os.environ if env is None else env
        nodes = [n.strip() for n in env.get("HASHRING_NODES", "").split(",") if n.strip()]
        config = cls(
            replicas=int(env.get("HASHRING_REPLICAS", DEFAULT_REPLICAS)),
            hash_algorithm=env.get("HASHRING_HASH", "sha256"),
            placement=env.get("HASHRING_PLACEMENT", "standard"),
            spread_groups=int(env.get("HASHRING_SPREAD_GROUPS", 4)),
            max_rotation_attempts=int(
                env.get("HASHRING_MAX_ROTATIONS", DEFAULT_MAX_ROTATIONS)
            ),
            event_log_path=env.get("HASHRING_EVENT_LOG") or None,
            initial_nodes=nodes,
        )
        config.validate()
        return config

    def validate(self) -> None:
        if self.replicas < 1:
            raise ValueError("replicas must be at least 1")
        if self.placement not in PLACEMENTS:
            raise ValueError(f"unknown placement {self.placement!r}")
        if self.spread_groups < 1:
            raise ValueError("spread_groups must be at least 1")
        if self.max_rotation_attempts < 1:
            raise ValueError("max_rotation_attempts must be at least 1")
        # raises ValueError for unknown algorithms
        hash_function(self.hash_algorithm)

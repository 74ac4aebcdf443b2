import hashlib
import json
from typing import Any, Callable


HashFunction = Callable[[str], str]


def hash_function(name: str = "sha256") -> HashFunction:
    """Return a hex-digest function for the ``hashlib`` algorithm ``name``."""
    algorithm = name.lower()
    if algorithm not in hashlib.algorithms_available:
        raise ValueError(f"unknown hash algorithm {name!r}")
    if algorithm.startswith("shake_"):
        raise ValueError("variable length digests are not supported")

    def _digest(key: str) -> str:
        return hashlib.new(algorithm, key.encode("utf-8")).hexdigest()

    _digest.__name__ = f"{algorithm}_hex"
    return _digest


def sha256_hex(key: str) -> str:
    """Default ring digest: SHA-256 of ``key`` as lowercase hex."""
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def numeric_compare(a: str, b: str) -> int:
    """Order digests holding decimal integers by their numeric value."""
    x, y = int(a), int(b)
    return (x > y) - (x < y)


def _slot_names(cls: type) -> list[str]:
    names = []
    for klass in cls.__mro__:
        slots = klass.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        names.extend(s for s in slots if s not in ("__dict__", "__weakref__"))
    return names


def _node_fields(value: Any) -> Any:
    """JSON fallback for values that ``json`` cannot encode natively."""
    if type(value).__str__ is not object.__str__:
        return str(value)
    if hasattr(value, "__dict__"):
        return vars(value)
    fields = {name: getattr(value, name) for name in _slot_names(type(value)) if hasattr(value, name)}
    if fields:
        return fields
    raise TypeError(
        f"cannot derive a stable key for {type(value).__name__!r}; pass node_key"
    )


def default_node_key(node: Any) -> str:
    """Stable string identity for ``node``.

    Strings are used as-is and objects with their own ``__str__`` are
    stringified. Everything else (dicts, lists, plain or ``__slots__``
    objects) is serialized as JSON with sorted keys so structurally equal
    nodes share a key. Values with no attributes to serialize raise
    ``TypeError``; the ring needs an explicit ``node_key`` for them.
    """
    if isinstance(node, str):
        return node
    if type(node).__str__ is not object.__str__ and not isinstance(node, (dict, list, tuple)):
        return str(node)
    return json.dumps(node, sort_keys=True, default=_node_fields)

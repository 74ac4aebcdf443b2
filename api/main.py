from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from hashring.config import RingConfig
from hashring.ring.hash_ring import HashRing, Range
from hashring.ring.locked import LockedHashRing
from hashring.utils.event_logger import EventLogger

app = FastAPI(title="hashring")


class RangeModel(BaseModel):
    start: str
    end: str


class PositionModel(BaseModel):
    digest: str
    node: str
    replica_index: int | None = None


def build_ring(config: RingConfig | None = None) -> LockedHashRing:
    """Create the ring served by the API."""
    config = config or RingConfig.from_env()
    event_logger = EventLogger(config.event_log_path)
    return LockedHashRing(HashRing.from_config(config, event_logger=event_logger))


@app.on_event("startup")
def startup_event() -> None:
    """Initialize the ring when the API starts."""
    app.state.ring = build_ring()


@app.on_event("shutdown")
def shutdown_event() -> None:
    """Close the event log when the API stops."""
    ring = getattr(app.state, "ring", None)
    if ring is not None and ring.event_logger is not None:
        ring.event_logger.close()


def _ring() -> LockedHashRing:
    return app.state.ring


@app.get("/health")
def health() -> dict:
    ring = _ring()
    return {"status": "ok", "nodes": ring.get_nodes_count(), "positions": len(ring)}


@app.get("/ring/nodes")
def list_nodes() -> dict:
    ring = _ring()
    distribution = ring.get_node_distribution()
    return {
        "nodes": [
            {"node": node, "replicas": len(digests)}
            for node, digests in distribution.items()
        ]
    }


@app.post("/ring/nodes/{node}")
def add_node(node: str) -> dict:
    """Add ``node`` to the ring and report the resulting repair."""
    ring = _ring()
    with ring.lock:
        if node in ring:
            raise HTTPException(status_code=409, detail=f"node {node} already present")
        ring.add_node(node)
        repair = ring.ring.last_repair
    return {
        "status": "ok",
        "nodes": ring.get_nodes_count(),
        "relocated": repair.relocated if repair else 0,
    }


@app.delete("/ring/nodes/{node}")
def remove_node(node: str) -> dict:
    ring = _ring()
    with ring.lock:
        if node not in ring:
            raise HTTPException(status_code=404, detail=f"node {node} not found")
        ring.remove_node(node)
    return {"status": "ok", "nodes": ring.get_nodes_count()}


@app.get("/ring/lookup/{key}")
def lookup(key: str) -> dict:
    """Return the node that owns ``key``."""
    node = _ring().get_node(key)
    if node is None:
        raise HTTPException(status_code=404, detail="ring is empty")
    return {"key": key, "node": node}


@app.get("/ring/preference/{key}")
def preference_list(key: str, n: int = 3) -> dict:
    return {"key": key, "nodes": _ring().get_preference_list(key, n)}


@app.get("/ring/positions")
def positions() -> dict:
    items = [
        PositionModel(digest=p.digest, node=p.node, replica_index=p.replica_index)
        for p in _ring().get_ordered_nodes()
    ]
    return {"positions": [p.model_dump() for p in items]}


@app.get("/ring/distribution")
def distribution() -> dict:
    return {"distribution": _ring().get_node_distribution()}


@app.get("/ring/adjacent")
def adjacent() -> dict:
    pairs = _ring().find_adjacent_replicas()
    return {
        "pairs": [
            {
                "node": pair.node,
                "first_digest": pair.first_digest,
                "second_digest": pair.second_digest,
                "first_position": pair.first_position,
                "second_position": pair.second_position,
            }
            for pair in pairs
        ]
    }


@app.get("/ring/validate")
def validate() -> dict:
    return _ring().validate_distribution().to_dict()


@app.get("/ring/nodes/{node}/ranges")
def node_ranges(node: str) -> dict:
    ring = _ring()
    with ring.lock:
        if node not in ring:
            raise HTTPException(status_code=404, detail=f"node {node} not found")
        ranges = ring.get_ranges_for_node(node)
    return {
        "node": node,
        "ranges": [RangeModel(start=r.start, end=r.end).model_dump() for r in ranges],
    }


@app.get("/ring/range")
def nodes_in_range(start: str, end: str) -> dict:
    ring = _ring()
    return {
        "start": start,
        "end": end,
        "owner": ring.get_node_for_range(Range(start, end)),
        "nodes": ring.get_nodes_in_range(start, end),
    }


@app.get("/ring/events")
def events(offset: int = 0, limit: int | None = None) -> dict:
    event_logger = _ring().event_logger
    if event_logger is None:
        return {"events": []}
    event_logger.sync()
    return {"events": event_logger.get_events(offset, limit)}

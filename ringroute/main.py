"""
Ring Router - FastAPI Application

Exposes one in-process consistent hash ring over HTTP: route keys,
change membership and inspect the ring.
"""
from fastapi import FastAPI, HTTPException, status
from pydantic import BaseModel
from contextlib import asynccontextmanager
import logging

from ringroute.cluster.router import ShardRouter
from ringroute.config import RingSettings
from ringroute.errors import NoAvailableNodeError

logger = logging.getLogger(__name__)

# Global router instance
router: ShardRouter = None
settings: RingSettings = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifecycle manager for FastAPI application.

    Loads settings from the environment and builds the ring on startup.
    """
    global router, settings

    settings = RingSettings.from_env()

    # Configure logging
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    router = ShardRouter.from_settings(settings)
    logger.info(
        f"✅ Ring ready with {len(router.nodes)} nodes, "
        f"{settings.replication_factor} vnodes each, hash={settings.hash_function}"
    )

    yield

    logger.info("✅ Ring router stopped")


app = FastAPI(
    title="Consistent Hash Ring Router",
    description="Key-to-node routing over a consistent hash ring with virtual nodes",
    version="0.1.0",
    lifespan=lifespan
)


class RouteResponse(BaseModel):
    """Response model for single-key routing"""
    key: str
    node: str


class RouteBatchRequest(BaseModel):
    """Request model for batch routing"""
    keys: list[str]


class RouteBatchResponse(BaseModel):
    """Response model for batch routing"""
    assignments: dict[str, list[str]]


class RingEntry(BaseModel):
    """One virtual node on the ring"""
    position: int
    node: str


def _no_node(e: NoAvailableNodeError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=str(e)
    )


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and container orchestration.
    Returns basic ring information.
    """
    return {
        "status": "healthy",
        "node_id": settings.node_id if settings else "unknown",
        "nodes": router.hash_ring.get_node_count(),
        "vnodes": router.hash_ring.get_vnode_count()
    }


@app.get("/route/{key}", response_model=RouteResponse)
async def route_key(key: str):
    """
    Find the node that owns a key.

    Raises:
        503: If the ring has no nodes
    """
    try:
        node = router.route(key)
    except NoAvailableNodeError as e:
        raise _no_node(e)

    logger.debug(f"ROUTE key='{key}' -> {node}")
    return RouteResponse(key=key, node=str(node))


@app.post("/route", response_model=RouteBatchResponse)
async def route_keys(request: RouteBatchRequest):
    """
    Group a batch of keys by owning node.

    All keys are routed against the same ring version.
    """
    try:
        assignments = router.route_many(request.keys)
    except NoAvailableNodeError as e:
        raise _no_node(e)

    return RouteBatchResponse(
        assignments={str(node): keys for node, keys in assignments.items()}
    )


@app.get("/nodes")
async def list_nodes():
    """List nodes currently owning at least one position"""
    return {"nodes": sorted(str(node) for node in router.nodes)}


@app.put("/nodes/{node}")
async def add_node(node: str):
    """
    Add a node to the ring.

    Re-adding an existing node is a no-op.
    """
    router.add_node(node)

    return {
        "message": "added",
        "node": node,
        "vnodes": router.hash_ring.get_distribution().get(node, 0)
    }


@app.delete("/nodes/{node}")
async def remove_node(node: str):
    """
    Remove a node from the ring.

    Removing a node that is not on the ring is a no-op.
    """
    present = router.remove_node(node)

    return {
        "message": "removed" if present else "not-present",
        "node": node
    }


@app.get("/ring", response_model=list[RingEntry])
async def get_ring():
    """
    Dump every virtual node in ascending position order.

    Diagnostic only; large rings produce large responses.
    """
    return [
        RingEntry(position=position, node=str(node))
        for position, node in router.hash_ring.entries()
    ]


@app.get("/stats")
async def get_stats():
    """
    Get ring distribution statistics.

    Shows virtual node counts per node.
    """
    stats = router.get_stats()
    return {
        "num_nodes": stats["num_nodes"],
        "num_vnodes": stats["num_vnodes"],
        "replication_factor": stats["replication_factor"],
        "vnodes_per_node": {str(n): c for n, c in stats["vnodes_per_node"].items()}
    }


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    num_nodes = len(router.nodes) if router else 0
    return {
        "service": "Consistent Hash Ring Router",
        "version": "0.1.0",
        "ring": {
            "num_nodes": num_nodes,
            "hash_function": settings.hash_function if settings else None
        },
        "endpoints": {
            "health": "/health",
            "stats": "/stats",
            "ring": "/ring",
            "route": "GET /route/{key}",
            "route_batch": "POST /route",
            "nodes": "GET /nodes",
            "add_node": "PUT /nodes/{node}",
            "remove_node": "DELETE /nodes/{node}"
        }
    }

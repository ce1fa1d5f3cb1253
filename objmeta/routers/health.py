"""Service index and health check endpoints."""

from fastapi import APIRouter

router = APIRouter(prefix="/api/v1", tags=["Health"])

ENDPOINTS = ["/docs", "/object", "/permission"]


@router.get("")
async def index() -> dict[str, list[str]]:
    """List the top-level resources served under /api/v1."""
    return {"endpoints": ENDPOINTS}


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check. Touches neither the database nor storage."""
    return {"status": "healthy"}

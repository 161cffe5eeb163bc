"""Health check endpoints."""

from typing import Any

from fastapi import APIRouter, Request

from src.config import get_settings
from src.core.database import FirestoreConnection
from src.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, Any]:
    """Readiness probe - reports backing connections and the analytics worker."""
    settings = get_settings()
    emitter = getattr(request.app.state, "analytics_emitter", None)
    return {
        "status": "ready",
        "environment": settings.environment,
        "debug": settings.debug,
        "database": FirestoreConnection.is_connected(),
        "redis": get_redis() is not None,
        "analytics": emitter.get_stats() if emitter is not None else None,
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }

"""Health check endpoints."""

from fastapi import APIRouter, Request

from dealthread.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])

REQUIRED_SERVICES = ("comment_service", "reaction_service")


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Process is up."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool]:
    """Ready once the lifespan has wired the thread services to a store.

    Notifications are optional and reported separately.
    """
    settings = get_settings()
    state = request.app.state
    wired = all(getattr(state, name, None) is not None for name in REQUIRED_SERVICES)
    return {
        "status": "ready" if wired else "starting",
        "store": "remote" if settings.store_configured else "memory",
        "notifications": getattr(state, "notification_service", None) is not None,
        "environment": settings.environment,
        "debug": settings.debug,
    }


@router.get("")
async def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }

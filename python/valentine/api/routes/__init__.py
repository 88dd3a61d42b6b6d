"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
"""

from fastapi import APIRouter

from valentine.api.routes.health import router as health_router
from valentine.api.routes.notify import router as notify_router
from valentine.api.routes.pages import router as pages_router


def create_api_router() -> APIRouter:
    """Create and configure the API router."""
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(pages_router, tags=["pages"])
    api_router.include_router(notify_router, tags=["notifications"])
    return api_router


__all__ = ["create_api_router"]

"""Routes package initialization.

This module exports the route collection for the application.
"""

from fastapi import APIRouter

from hashurl.api.routes import cache, health, redirect, shortener
from hashurl.core.config import settings

# Create root router
api_router = APIRouter()

# Include shortener routes with API prefix
api_router.include_router(
    shortener.router,
    prefix=settings.API_PREFIX
)

# Include cache administration routes with API prefix
api_router.include_router(
    cache.router,
    prefix=settings.API_PREFIX
)

# Include health check routes with API prefix
api_router.include_router(
    health.router,
    prefix=settings.API_PREFIX
)

# Aggregate health is also served at /health; registered before the
# catch-all redirect route so "health" is never treated as a code
api_router.add_api_route(
    "/health",
    health.health_check,
    methods=["GET"],
    tags=["health"],
    include_in_schema=False,
)

# Include redirect routes at the root path (no prefix)
# This makes short URLs available directly at /{code}
api_router.include_router(
    redirect.router
)

__all__ = ["api_router"]

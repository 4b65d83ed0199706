"""Health endpoints: aggregate status plus liveness and readiness checks.

Only the database decides readiness. Redis is an optional accelerator, so a
failed ping degrades the aggregate status but never fails it.
"""

import time
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from hashurl.api.dependencies import click_recorder, mapping_repository
from hashurl.core.config import settings
from hashurl.core.redis import redis_manager
from hashurl.db.base import DatabaseHealthCheck
from hashurl.db.session import get_db
from hashurl.repositories.base import RepositoryError
from hashurl.scheduler import scheduler_service

router = APIRouter(tags=["health"])


async def _redis_status() -> Dict[str, Any]:
    if not redis_manager.is_enabled:
        return {"status": "disabled"}
    started = time.perf_counter()
    if not await redis_manager.ping():
        return {"status": "unhealthy", "error": "Redis ping failed"}
    return {"status": "healthy", "latency_ms": round((time.perf_counter() - started) * 1000, 2)}


async def _database_status(db: AsyncSession) -> Dict[str, Any]:
    database = await DatabaseHealthCheck.check_connection(db)
    if database["status"] == "healthy":
        try:
            database["active_mappings"] = await mapping_repository.count_active(db)
        except RepositoryError as e:
            database.update(status="unhealthy", error=str(e))
    return database


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    summary="Get system health status",
    response_description="Health status of all system components"
)
async def health_check(db: AsyncSession = Depends(get_db)):
    """Report the database, the cache, the click queue and the scheduler."""
    components = {
        "database": await _database_status(db),
        "redis": await _redis_status(),
        "click_recorder": click_recorder.stats().model_dump(),
        "scheduler": scheduler_service.get_status(),
    }
    degraded = any(
        components[name]["status"] == "unhealthy" for name in ("database", "redis")
    )
    return {
        "status": "degraded" if degraded else "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "timestamp": time.time(),
        "components": components,
    }


@router.get(
    "/health/ready",
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
)
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Ready once the mapping store answers."""
    database = await DatabaseHealthCheck.check_connection(db)
    components = {"api": True, "database": database["status"] == "healthy"}
    return {"ready": all(components.values()), "components": components}


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
)
async def liveness_check():
    """The process is up and serving."""
    return {"alive": True}

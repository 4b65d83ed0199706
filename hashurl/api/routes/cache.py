"""Cache administration endpoints."""

from fastapi import APIRouter, Depends, Path

from hashurl.api import schemas
from hashurl.api.dependencies import get_shortener_service
from hashurl.api.errors import raise_for_result
from hashurl.models.mapping import CODE_MAX_LENGTH
from hashurl.services.shortener import ShortenerService

router = APIRouter(prefix="/cache", tags=["cache"])


@router.get("/stats", response_model=schemas.CacheStatsResponse)
async def get_cache_stats(
    shortener_service: ShortenerService = Depends(get_shortener_service),
):
    """Report whether the cache is usable, its approximate size and the entry TTL."""
    stats = await shortener_service.cache_stats()
    return schemas.CacheStatsResponse(
        enabled=stats.enabled,
        count=stats.approx_entry_count,
        ttl=stats.ttl_seconds,
    )


@router.delete(
    "/{code}",
    response_model=schemas.CacheInvalidateResponse,
    responses={400: {"model": schemas.ErrorResponse, "description": "Blank or malformed code"}},
)
async def invalidate_cache_entry(
    code: str = Path(..., max_length=CODE_MAX_LENGTH),
    shortener_service: ShortenerService = Depends(get_shortener_service),
):
    """Drop a code from the cache; the next redirect reads the store."""
    result = await shortener_service.invalidate_cache(code)
    raise_for_result(result)
    return schemas.CacheInvalidateResponse(code=code.strip(), invalidated=result.value)

"""URL redirection endpoint with click tracking."""

from fastapi import APIRouter, Depends, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import RedirectResponse

from hashurl.api.dependencies import get_shortener_service
from hashurl.api.errors import raise_for_result
from hashurl.db.session import get_db
from hashurl.services.shortener import ShortenerService

# Create router with tags
router = APIRouter(tags=["redirect"])


@router.get(
    "/{code}",
    response_class=RedirectResponse,
    status_code=status.HTTP_302_FOUND,
)
async def redirect_to_original_url(
    code: str,
    db: AsyncSession = Depends(get_db),
    shortener_service: ShortenerService = Depends(get_shortener_service),
):
    """Redirect to the original URL; the click is counted in the background."""
    result = await shortener_service.resolve(db, code)
    raise_for_result(result)
    logger.debug(f"Redirecting {code} -> {result.value} (cache={'hit' if result.from_cache else 'miss'})")
    return RedirectResponse(url=result.value, status_code=status.HTTP_302_FOUND)

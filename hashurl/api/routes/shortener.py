"""URL shortening endpoints."""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from hashurl.api import schemas
from hashurl.api.dependencies import get_base_url, get_shortener_service
from hashurl.api.errors import raise_for_result
from hashurl.db.session import get_db
from hashurl.models.mapping import CODE_MAX_LENGTH
from hashurl.services.shortener import ShortenerService

router = APIRouter(tags=["shortener"])


@router.post(
    "/shorten",
    response_model=schemas.ShortenResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": schemas.ErrorResponse, "description": "Missing or blank URL"},
        500: {"model": schemas.ErrorResponse, "description": "No free short code could be generated"},
        503: {"model": schemas.ErrorResponse, "description": "Mapping store unavailable"},
    }
)
async def create_short_url(
    request: schemas.ShortenRequest,
    db: AsyncSession = Depends(get_db),
    shortener_service: ShortenerService = Depends(get_shortener_service),
    base_url: str = Depends(get_base_url),
):
    result = await shortener_service.shorten(
        db=db,
        long_url=request.url,
        expiration_days=request.expiration_days,
    )
    raise_for_result(result)
    mapping = result.value
    return schemas.ShortenResponse(
        code=mapping.code,
        original_url=mapping.long_url,
        short_url=f"{base_url}/{mapping.code}",
        created_at=mapping.created_at,
        expires_at=mapping.expires_at,
    )


@router.get(
    "/details/{code}",
    response_model=schemas.MappingDetailsResponse,
    responses={404: {"model": schemas.ErrorResponse, "description": "Unknown, inactive or expired code"}},
)
async def get_url_details(
    code: str = Path(..., max_length=CODE_MAX_LENGTH, description="Short code"),
    db: AsyncSession = Depends(get_db),
    shortener_service: ShortenerService = Depends(get_shortener_service),
    base_url: str = Depends(get_base_url),
):
    """Get the stored details of an accessible mapping, including its click count."""
    result = await shortener_service.get_details(db, code)
    raise_for_result(result)
    mapping = result.value
    return schemas.MappingDetailsResponse(
        code=mapping.code,
        original_url=mapping.long_url,
        short_url=f"{base_url}/{mapping.code}",
        created_at=mapping.created_at,
        expires_at=mapping.expires_at,
        click_count=mapping.click_count,
        is_active=mapping.is_active,
    )


@router.delete(
    "/urls/{code}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": schemas.ErrorResponse, "description": "No active mapping with this code"}},
)
async def deactivate_url(
    code: str = Path(..., max_length=CODE_MAX_LENGTH, description="Short code"),
    db: AsyncSession = Depends(get_db),
    shortener_service: ShortenerService = Depends(get_shortener_service),
):
    """Deactivate a mapping. The row is kept and its code stays reserved."""
    result = await shortener_service.deactivate(db, code)
    raise_for_result(result)

"""API request and response schemas.

This module contains Pydantic models for API request validation
and response serialization.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ShortenRequest(BaseModel):
    """Request schema for creating a shortened URL."""
    # Blank or missing URLs are rejected by the service with a 400
    url: Optional[str] = None
    expiration_days: Optional[int] = Field(None, ge=1)


class ShortenResponse(BaseModel):
    """Response schema for a newly created short URL."""
    model_config = ConfigDict(from_attributes=True)

    code: str
    original_url: str
    short_url: str  # Full URL including base domain
    created_at: datetime
    expires_at: Optional[datetime] = None


class MappingDetailsResponse(ShortenResponse):
    """Response schema for the stored details of a mapping."""
    click_count: int
    is_active: bool


class CacheStatsResponse(BaseModel):
    """Response schema for cache statistics."""
    enabled: bool
    count: int
    ttl: int


class CacheInvalidateResponse(BaseModel):
    """Response schema for a cache invalidation."""
    code: str
    invalidated: bool


class ErrorResponse(BaseModel):
    """Response schema for errors."""
    detail: str
    error_code: Optional[str] = None  # Machine-readable error kind

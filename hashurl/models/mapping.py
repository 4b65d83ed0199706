"""URL mapping data models.

This module defines the URLMapping model for storing code to URL mappings in
the database. Timestamps are timezone-aware UTC on both sides of the
database boundary.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import DateTime, Index
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel

CODE_MAX_LENGTH = 10
LONG_URL_MAX_LENGTH = 2048


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Read naive datetimes as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """``DateTime(timezone=True)`` that always hands back aware UTC values.

    SQLite keeps no offset, so values read from it are naive; they were
    written as UTC and get the UTC tzinfo back here.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return as_utc(value)

    def process_result_value(self, value, dialect):
        return as_utc(value)


class URLMappingBase(SQLModel):
    """Base model for URL mapping data."""

    code: str = Field(
        description="Unique short code for the mapping",
        unique=True,  # Creates necessary index
        max_length=CODE_MAX_LENGTH,
    )
    long_url: str = Field(
        description="The original (long) URL to redirect to",
        max_length=LONG_URL_MAX_LENGTH,
    )
    expires_at: Optional[datetime] = Field(
        default=None,
        sa_type=UTCDateTime,
        description="When this mapping expires (null means no expiration)"
    )


class URLMapping(URLMappingBase, table=True):
    """
    URL mapping model for storing shortened URLs in the database.

    Rows are created once on shorten and are only ever mutated by click
    count increments and deactivation; they are never deleted in normal flow.
    """

    __tablename__ = "urls"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        description="Timestamp when this mapping was created"
    )
    click_count: int = Field(
        default=0,
        description="Counter for the number of redirects served"
    )
    is_active: bool = Field(
        default=True,
        description="Inactive mappings never resolve"
    )

    __table_args__ = (
        Index("ix_urls_created_at", "created_at"),
        Index("ix_urls_code_active", "code", "is_active"),
    )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if the mapping has passed its expiration time."""
        if self.expires_at is None:
            return False
        return as_utc(self.expires_at) <= as_utc(now or utcnow())

    def is_accessible(self, now: Optional[datetime] = None) -> bool:
        """A mapping resolves only while active and not expired."""
        return self.is_active and not self.is_expired(now)

    def seconds_until_expiry(self, now: Optional[datetime] = None) -> Optional[int]:
        """Whole seconds left before expiry, or None for mappings that never expire."""
        if self.expires_at is None:
            return None
        remaining = (as_utc(self.expires_at) - as_utc(now or utcnow())).total_seconds()
        return max(int(remaining), 0)

    @classmethod
    def generate_expiration(cls, days: Optional[int] = None) -> Optional[datetime]:
        """Generate an expiration date based on the given number of days.

        Args:
            days: Number of days until expiration, or None for no expiration

        Returns:
            Optional[datetime]: Expiration date or None if days is None
        """
        if days is None:
            return None
        return utcnow() + timedelta(days=days)


class URLMappingCreate(URLMappingBase):
    """Schema for creating a new mapping."""
    pass


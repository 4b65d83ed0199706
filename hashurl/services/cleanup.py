"""Cleanup service for the URL shortener application.

This module contains the CleanupService class which implements the expiry
sweep: mappings past their expiry are deactivated (never deleted) and their
cache entries are dropped so redirects stop serving them.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hashurl.models.mapping import utcnow
from hashurl.repositories.base import RepositoryError
from hashurl.repositories.mapping_repository import MappingRepository
from hashurl.services.cache import URLCache
from hashurl.services.exceptions import BackendUnavailableError

logger = logging.getLogger(__name__)


class CleanupService:
    """
    Service for the periodic expiry sweep.

    The caller owns the transaction; cache entries are invalidated after the
    deactivation statement has run.
    """

    def __init__(self, repository: MappingRepository, cache: URLCache):
        """
        Initialize the cleanup service.

        Args:
            repository: Mapping store
            cache: Cache whose entries are dropped for swept codes
        """
        self.repository = repository
        self.cache = cache

    async def deactivate_expired(
        self,
        db: AsyncSession,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Deactivate every expired active mapping and invalidate its cache entry.

        Args:
            db: Database session
            now: Reference time (defaults to now, UTC)

        Returns:
            Dict with statistics about the sweep

        Raises:
            BackendUnavailableError: If the store cannot be updated
        """
        start_time = utcnow()
        try:
            codes = await self.repository.deactivate_expired(db, now=now)
        except (RepositoryError, SQLAlchemyError) as e:
            logger.error(f"Error during expiry sweep: {e}", exc_info=True)
            raise BackendUnavailableError(f"Failed to deactivate expired mappings: {e}") from e

        invalidated = 0
        for code in codes:
            if await self.cache.invalidate(code):
                invalidated += 1

        execution_time = (utcnow() - start_time).total_seconds()
        logger.info(
            f"Expiry sweep completed: {len(codes)} mappings deactivated, "
            f"{invalidated} cache entries invalidated in {execution_time:.2f}s"
        )
        return {
            "deactivated": len(codes),
            "cache_invalidated": invalidated,
            "codes": codes,
            "execution_time": execution_time,
        }

"""Mapping repository for the URL shortener service.

This module provides the MappingRepository class, the durable store behind
the shortener. It owns every query against the ``urls`` table: saving new
mappings, the lookups used by the redirect path, the atomic click counter and
the deactivation sweeps.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.expression import and_, or_

from hashurl.models.mapping import URLMapping, URLMappingCreate, utcnow
from hashurl.repositories.base import (
    BaseRepository,
    DuplicateEntityError,
    RepositoryError,
    is_unique_violation,
)


class MappingRepository(BaseRepository[URLMapping, URLMappingCreate]):
    """
    Repository for URLMapping database operations.

    All methods take the session explicitly; committing is the caller's job.
    """

    def __init__(self):
        """Initialize the repository with the URLMapping model type."""
        super().__init__(URLMapping)

    def _accessible(self, now: datetime):
        return and_(
            self.model_type.is_active.is_(True),
            or_(
                self.model_type.expires_at.is_(None),
                self.model_type.expires_at > now,
            ),
        )

    async def save(self, db: AsyncSession, mapping: URLMapping) -> URLMapping:
        """
        Persist a new mapping and assign its identifier.

        Args:
            db: Database session
            mapping: The unsaved mapping

        Returns:
            The saved mapping with ``id`` populated

        Raises:
            DuplicateEntityError: If the code is already taken
            RepositoryError: On other database errors
        """
        try:
            return await self.add(db, mapping)
        except IntegrityError as e:
            if is_unique_violation(e):
                raise DuplicateEntityError(self.model_type, "code", mapping.code) from e
            raise RepositoryError(f"Database error saving mapping: {e}") from e

    async def find_by_code(self, db: AsyncSession, code: str) -> Optional[URLMapping]:
        """
        Find a mapping by code, whether active or not.

        Raises:
            RepositoryError: On database errors
        """
        try:
            query = (
                select(self.model_type)
                .where(self.model_type.code == code)
                .execution_options(populate_existing=True)
            )
            result = await db.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error retrieving mapping by code: {e}") from e

    async def find_active_by_code(
        self,
        db: AsyncSession,
        code: str,
        now: Optional[datetime] = None,
    ) -> Optional[URLMapping]:
        """
        Find an accessible mapping: active and not past its expiry.

        Args:
            db: Database session
            code: The code to look up
            now: Reference time for the expiry check (defaults to now, UTC)

        Returns:
            The URLMapping if accessible, None otherwise

        Raises:
            RepositoryError: On database errors
        """
        try:
            query = (
                select(self.model_type)
                .where(self.model_type.code == code, self._accessible(now or utcnow()))
                .execution_options(populate_existing=True)
            )
            result = await db.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error retrieving active mapping by code: {e}") from e

    async def exists_by_code(self, db: AsyncSession, code: str) -> bool:
        """
        Check whether a code is taken by any mapping, active or inactive.

        Raises:
            RepositoryError: On database errors
        """
        return await self.exists(db, code=code)

    async def increment_click_count(self, db: AsyncSession, code: str) -> Optional[int]:
        """
        Atomically add one to a mapping's click count.

        Uses a single ``UPDATE ... RETURNING`` so concurrent increments on the
        same code never lose updates.

        Args:
            db: Database session
            code: Code of the mapping that was visited

        Returns:
            The updated count, or None if no mapping has this code

        Raises:
            RepositoryError: On database errors
        """
        try:
            stmt = (
                update(self.model_type)
                .where(self.model_type.code == code)
                .values(click_count=self.model_type.click_count + 1)
                .returning(self.model_type.click_count)
                .execution_options(synchronize_session=False)
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error incrementing click count: {e}") from e

    async def deactivate(self, db: AsyncSession, code: str) -> bool:
        """
        Mark a mapping inactive.

        Returns:
            True if an active mapping was deactivated

        Raises:
            RepositoryError: On database errors
        """
        updated = await self.bulk_update(
            db,
            [self.model_type.code == code, self.model_type.is_active.is_(True)],
            {"is_active": False},
        )
        return updated > 0

    async def deactivate_expired(self, db: AsyncSession, now: Optional[datetime] = None) -> List[str]:
        """
        Deactivate every active mapping whose expiry has passed.

        Rows are kept; only ``is_active`` flips.

        Returns:
            Codes of the mappings that were deactivated

        Raises:
            RepositoryError: On database errors
        """
        now = now or utcnow()
        try:
            stmt = (
                update(self.model_type)
                .where(
                    self.model_type.is_active.is_(True),
                    self.model_type.expires_at.is_not(None),
                    self.model_type.expires_at <= now,
                )
                .values(is_active=False)
                .returning(self.model_type.code)
                .execution_options(synchronize_session=False)
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error deactivating expired mappings: {e}") from e

    async def count_active(self, db: AsyncSession) -> int:
        """Count mappings that currently resolve."""
        return await self.count(db, self._accessible(utcnow()))

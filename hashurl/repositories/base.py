"""Generic repository over SQLModel tables.

Repositories never commit; the caller owns the transaction. Every
``SQLAlchemyError`` leaves this layer as a ``RepositoryError`` so services can
treat the store as a single failure domain. Unique-constraint violations are
left as ``IntegrityError`` by ``add`` so the concrete repository can report
which field collided.
"""

import logging
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

T = TypeVar("T", bound=SQLModel)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """The store failed to execute an operation."""
    pass


class DuplicateEntityError(RepositoryError):
    """A unique constraint rejected the write."""

    def __init__(self, model_type: Type[SQLModel], field_name: str, value: Any):
        self.model_type = model_type
        self.field_name = field_name
        self.value = value
        model_name = getattr(model_type, "__name__", "Entity")
        super().__init__(f"{model_name} with {field_name}={value} already exists")


def is_unique_violation(error: IntegrityError) -> bool:
    """Tell unique-constraint violations (SQLite and PostgreSQL wording) from other integrity errors."""
    message = str(error.orig if error.orig is not None else error).lower()
    return "unique" in message or "duplicate key" in message


class BaseRepository(Generic[T, CreateSchemaType]):
    """
    Primary-key lookup, insert, count and bulk update for one table.

    Type parameters:
        T: The SQLModel table class
        CreateSchemaType: Pydantic schema accepted by ``create``
    """

    def __init__(self, model_type: Type[T]):
        self.model_type = model_type

    @property
    def name(self) -> str:
        return self.model_type.__name__

    def _error(self, action: str, error: SQLAlchemyError) -> RepositoryError:
        logger.error(f"{self.name}: {action} failed: {error}")
        return RepositoryError(f"Database error {action}: {error}")

    async def get_by_id(self, db: AsyncSession, id: Any) -> Optional[T]:
        """Return the row with this primary key, or None."""
        try:
            return await db.get(self.model_type, id)
        except SQLAlchemyError as e:
            raise self._error(f"retrieving id {id}", e) from e

    async def add(self, db: AsyncSession, entity: T) -> T:
        """
        Insert ``entity`` and flush so generated columns (``id``) are populated.

        Raises:
            IntegrityError: On constraint violations, for the caller to classify
            RepositoryError: On other database errors
        """
        try:
            db.add(entity)
            await db.flush()
            await db.refresh(entity)
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            raise self._error("inserting", e) from e
        return entity

    async def create(self, db: AsyncSession, data: Union[CreateSchemaType, Dict[str, Any]]) -> T:
        """Build an entity from a schema or a dict of fields and insert it."""
        fields = data.model_dump(exclude_unset=True) if isinstance(data, BaseModel) else dict(data)
        return await self.add(db, self.model_type(**fields))

    async def count(self, db: AsyncSession, *conditions) -> int:
        """Count rows, optionally restricted by SQLAlchemy conditions."""
        query = select(func.count()).select_from(self.model_type)
        if conditions:
            query = query.where(*conditions)
        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            raise self._error("counting", e) from e
        return result.scalar_one()

    async def exists(self, db: AsyncSession, **filters) -> bool:
        """
        Check whether any row matches every ``field=value`` filter.

        Raises:
            ValueError: If no filter is given
            RepositoryError: On database errors
        """
        if not filters:
            raise ValueError("No conditions provided for exists check")
        conditions = [getattr(self.model_type, field) == value for field, value in filters.items()]
        return await self.count(db, *conditions) > 0

    async def bulk_update(self, db: AsyncSession, conditions: List[Any], data: Dict[str, Any]) -> int:
        """
        Set ``data`` on every row matching ``conditions`` in one statement.

        Returns:
            Number of rows updated

        Raises:
            ValueError: If no condition is given
            RepositoryError: On database errors
        """
        if not conditions:
            raise ValueError("No conditions provided for bulk update")

        stmt = (
            update(self.model_type)
            .where(*conditions)
            .values(**data)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await db.execute(stmt)
        except SQLAlchemyError as e:
            raise self._error("bulk updating", e) from e
        return result.rowcount

"""Session handling for request handlers and background work.

Request handlers receive a session through the ``get_db`` dependency. Service
methods that write mark their transaction boundary with ``db_transaction``.
Work outside a request (click workers, the expiry sweep) opens its own
session with ``SessionManager.transaction_context``.
"""

import inspect
import logging
from contextlib import asynccontextmanager
from functools import wraps
from typing import AsyncGenerator, Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hashurl.db.base import get_session

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session for one request.

    Anything left uncommitted when the handler fails is rolled back.
    """
    async with get_session() as session:
        try:
            yield session
        except SQLAlchemyError:
            logger.exception("Database error during request")
            await session.rollback()
            raise
        except Exception:
            await session.rollback()
            raise


def _session_parameter(signature: inspect.Signature, db_param_name: Optional[str]) -> Optional[str]:
    """Name of the parameter carrying the session: the given name or the first AsyncSession annotation."""
    if db_param_name is not None:
        return db_param_name if db_param_name in signature.parameters else None
    for name, param in signature.parameters.items():
        if param.annotation in (AsyncSession, "AsyncSession"):
            return name
    return None


def db_transaction(db_param_name: Optional[str] = None) -> Callable:
    """Commit the session after the wrapped coroutine succeeds, roll back if it raises.

    Example:
        ```python
        @db_transaction(db_param_name="db")
        async def _save(self, db: AsyncSession, mapping: URLMapping) -> URLMapping:
            ...
        ```

    Raises:
        ValueError: If the call carries no session
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        signature = inspect.signature(func)
        param = _session_parameter(signature, db_param_name)
        if param is None:
            logger.warning(f"No session parameter found on '{func.__qualname__}'")

        @wraps(func)
        async def wrapper(*args, **kwargs):
            db = None
            if param is not None:
                db = signature.bind_partial(*args, **kwargs).arguments.get(param)
            if db is None:
                raise ValueError(f"No database session passed to '{func.__qualname__}'")

            try:
                result = await func(*args, **kwargs)
                await db.commit()
                return result
            except Exception:
                await db.rollback()
                raise

        return wrapper
    return decorator


class SessionManager:
    """Sessions for work that runs outside a request."""

    @staticmethod
    @asynccontextmanager
    async def transaction_context() -> AsyncGenerator[AsyncSession, None]:
        """Yield a session that commits on normal exit and rolls back on error."""
        async with get_session() as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.warning(f"Transaction rolled back: {e}")
                raise


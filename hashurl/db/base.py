"""Database engine and session factory for the mapping store.

The engine is built once per process from settings. PostgreSQL (asyncpg)
gets a sized connection pool; SQLite (aiosqlite) is used for local runs and
tests and never receives pool arguments.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool
from sqlalchemy.sql import text
from sqlmodel import SQLModel

from hashurl.core.config import EnvironmentType, settings

logger = logging.getLogger(__name__)


def get_engine_config(database_uri: str = None) -> Dict[str, Any]:
    """Build ``create_async_engine`` keyword arguments for a database URI.

    Args:
        database_uri: Defaults to ``settings.SQLALCHEMY_DATABASE_URI``

    Returns:
        Dict: Engine configuration for the backend and environment
    """
    url = make_url(database_uri or settings.SQLALCHEMY_DATABASE_URI)
    config: Dict[str, Any] = {
        "echo": settings.DB_ECHO and settings.ENVIRONMENT != EnvironmentType.PRODUCTION,
    }

    if url.get_backend_name() == "sqlite":
        return config

    if settings.ENVIRONMENT == EnvironmentType.TESTING:
        # Connections must not outlive the event loop of a single test
        config["poolclass"] = NullPool
        return config

    config.update(
        pool_size=settings.POSTGRES_POOL_SIZE,
        max_overflow=settings.POSTGRES_POOL_MAX_OVERFLOW,
        pool_timeout=settings.POSTGRES_POOL_TIMEOUT,
        pool_recycle=settings.POSTGRES_POOL_RECYCLE,
        pool_pre_ping=True,
    )
    return config


def get_engine(database_uri: str = None) -> AsyncEngine:
    """Create the async engine for the mapping store."""
    url = make_url(database_uri or settings.SQLALCHEMY_DATABASE_URI)
    logger.info(f"Creating database engine for {url.render_as_string(hide_password=True)}")
    return create_async_engine(url, **get_engine_config(database_uri))


# Shared async engine instance
engine = get_engine()

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Open a session from the shared factory and always close it."""
    session = async_session_factory()
    try:
        yield session
    finally:
        await session.close()


async def create_tables(bind: AsyncEngine = engine) -> None:
    """Create the ``urls`` table and its unique code index if missing."""
    # Registers URLMapping on the metadata
    import hashurl.models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info(f"Tables in place: {', '.join(sorted(SQLModel.metadata.tables))}")


class DatabaseHealthCheck:
    """Connectivity check for the mapping store."""

    @staticmethod
    async def check_connection(session: AsyncSession) -> Dict[str, Any]:
        """Run a trivial query and time it.

        Returns:
            Dict: ``status`` (healthy/unhealthy), ``latency_ms`` and ``error``
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Database health check failed: {e}")
            return {"status": "unhealthy", "latency_ms": None, "error": str(e)}

        return {
            "status": "healthy",
            "latency_ms": round((loop.time() - started) * 1000, 2),
            "error": None,
        }

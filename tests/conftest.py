"""Test fixtures for the URL shortener application."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Generator

# Settings are read at import time, so the environment has to be in place first
os.environ["ENVIRONMENT"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["LOG_TO_FILE"] = "false"
os.environ["DB_CREATE_TABLES"] = "false"
os.environ["CACHE_ENABLED"] = "false"
os.environ["REQUEST_LOGGING_ENABLED"] = "true"

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from hashurl.api.dependencies import get_base_url, get_shortener_service
from hashurl.core.config import CacheConfig, ShortenerConfig
from hashurl.db.session import get_db
from hashurl.main import app as main_app
# Import models to ensure they're registered with SQLModel metadata
from hashurl.models.mapping import URLMapping  # noqa: F401
from hashurl.repositories.mapping_repository import MappingRepository
from hashurl.services.cache import URLCache
from hashurl.services.clicks import ClickRecorder
from hashurl.services.codegen import CodeGenerator
from hashurl.services.shortener import ShortenerService
from tests.utils import FailingRedis, MockRedis


# Test database URL - using SQLite in-memory
TEST_SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_BASE_URL = "http://sho.rt"


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory SQLite database for each test."""
    engine = create_async_engine(
        TEST_SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def test_db(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def transaction_factory(session_maker):
    """Session factory committing on exit, like ``SessionManager.transaction_context``."""
    @asynccontextmanager
    async def _transaction():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
    return _transaction


@pytest.fixture
def mock_redis() -> MockRedis:
    """Mock Redis for testing."""
    return MockRedis()


@pytest.fixture
def failing_redis() -> FailingRedis:
    return FailingRedis()


@pytest.fixture
def cache_config() -> CacheConfig:
    return CacheConfig(enabled=True, ttl_seconds=3600, key_prefix="url:", operation_timeout=0.25)


@pytest.fixture
def shortener_config() -> ShortenerConfig:
    return ShortenerConfig(base_url=TEST_BASE_URL, code_length=6, max_collision_attempts=100)


@pytest.fixture
def url_cache(mock_redis, cache_config) -> URLCache:
    return URLCache(lambda: mock_redis, cache_config)


@pytest.fixture
def mapping_repository() -> MappingRepository:
    return MappingRepository()


@pytest_asyncio.fixture
async def click_recorder(mapping_repository, transaction_factory) -> AsyncGenerator[ClickRecorder, None]:
    """Running click recorder writing to the test database."""
    recorder = ClickRecorder(mapping_repository, transaction_factory, maxsize=100)
    recorder.start()
    yield recorder
    await recorder.stop(drain=True)


@pytest.fixture
def shortener_service(mapping_repository, url_cache, shortener_config, click_recorder) -> ShortenerService:
    return ShortenerService(
        repository=mapping_repository,
        cache=url_cache,
        generator=CodeGenerator(shortener_config),
        config=shortener_config,
        clicks=click_recorder,
    )


@pytest.fixture
def override_get_db(test_db):
    """Override the get_db dependency for testing."""
    async def _override_get_db():
        yield test_db

    return _override_get_db


@pytest.fixture
def test_app(override_get_db, shortener_service) -> Generator[FastAPI, None, None]:
    """FastAPI app with the database and the service wired to test doubles."""
    app = main_app
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_shortener_service] = lambda: shortener_service
    app.dependency_overrides[get_base_url] = lambda: TEST_BASE_URL
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client calling the app in-process on the test event loop, without its lifespan."""
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test", follow_redirects=False) as test_client:
        yield test_client

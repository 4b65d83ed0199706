"""Basic tests to verify test DB setup and the URLMapping model."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, text
from sqlalchemy.pool import NullPool

from hashurl.db.base import DatabaseHealthCheck, create_tables, get_engine_config
from hashurl.models.mapping import URLMapping


@pytest.mark.asyncio
async def test_create_tables(test_db):
    """Verify the urls table is created and a mapping round-trips."""
    result = await test_db.execute(text("SELECT name FROM sqlite_master WHERE type='table' AND name='urls'"))
    tables = [row[0] for row in result.fetchall()]
    assert "urls" in tables

    mapping = URLMapping(
        code="test12",
        long_url="https://example.com",
        created_at=datetime.now(timezone.utc),
    )
    test_db.add(mapping)
    await test_db.commit()

    result = await test_db.execute(select(URLMapping).where(URLMapping.code == "test12"))
    retrieved = result.scalars().first()

    assert retrieved is not None
    assert retrieved.long_url == "https://example.com"
    assert retrieved.click_count == 0
    assert retrieved.is_active is True
    assert retrieved.expires_at is None


@pytest.mark.asyncio
async def test_code_index_is_unique(test_engine):
    async with test_engine.connect() as conn:
        result = await conn.execute(text("PRAGMA index_list('urls')"))
        indexes = {row[1]: row[2] for row in result.fetchall()}

    assert "ix_urls_code_active" in indexes
    assert "ix_urls_created_at" in indexes
    # One of the indexes on urls enforces unique codes
    assert any(unique for unique in indexes.values())


@pytest.mark.asyncio
async def test_create_tables_is_idempotent(test_engine):
    await create_tables(bind=test_engine)
    await create_tables(bind=test_engine)

    async with test_engine.connect() as conn:
        result = await conn.execute(text("SELECT name FROM sqlite_master WHERE type='table'"))
        tables = [row[0] for row in result.fetchall()]

    assert tables.count("urls") == 1


@pytest.mark.asyncio
async def test_timestamps_are_stored_and_read_as_aware_utc(test_db, session_maker):
    expires_at = datetime(2030, 6, 1, 14, 30, tzinfo=timezone(timedelta(hours=2)))
    test_db.add(URLMapping(code="tzaware", long_url="https://example.com", expires_at=expires_at))
    await test_db.commit()

    async with session_maker() as other:
        result = await other.execute(select(URLMapping).where(URLMapping.code == "tzaware"))
        stored = result.scalar_one()

    assert stored.created_at.tzinfo is not None
    assert stored.created_at.utcoffset() == timedelta(0)
    assert stored.expires_at == datetime(2030, 6, 1, 12, 30, tzinfo=timezone.utc)
    assert stored.expires_at.utcoffset() == timedelta(0)


def test_naive_reference_time_is_read_as_utc():
    mapping = URLMapping(
        code="naive1",
        long_url="https://example.com",
        expires_at=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
    )

    assert mapping.seconds_until_expiry(datetime(2024, 1, 1, 11, 59)) == 60
    assert mapping.is_expired(datetime(2024, 1, 1, 12, 0))


@pytest.mark.asyncio
async def test_database_health_check(test_db):
    health = await DatabaseHealthCheck.check_connection(test_db)

    assert health["status"] == "healthy"
    assert health["error"] is None


def test_mapping_expiry_helpers():
    now = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    never = URLMapping(code="aaaaaa", long_url="https://example.com")
    soon = URLMapping(code="bbbbbb", long_url="https://example.com", expires_at=now + timedelta(seconds=90))
    past = URLMapping(code="cccccc", long_url="https://example.com", expires_at=now - timedelta(seconds=1))

    assert never.seconds_until_expiry(now) is None
    assert never.is_accessible(now)
    assert soon.seconds_until_expiry(now) == 90
    assert not soon.is_expired(now)
    assert past.is_expired(now)
    assert past.seconds_until_expiry(now) == 0
    assert not past.is_accessible(now)


def test_generate_expiration():
    assert URLMapping.generate_expiration(None) is None
    expires_at = URLMapping.generate_expiration(7)
    assert timedelta(days=6, hours=23) < expires_at - datetime.now(timezone.utc) <= timedelta(days=7)


def test_sqlite_engine_gets_no_pool_arguments():
    config = get_engine_config("sqlite+aiosqlite:///:memory:")

    assert set(config) == {"echo"}


def test_postgres_engine_under_testing_uses_null_pool():
    config = get_engine_config("postgresql+asyncpg://u:p@localhost/hashurl")

    assert config["poolclass"] is NullPool
    assert "pool_size" not in config

"""Tests for the Redis client manager."""

import pytest

from hashurl.core.redis import RedisClientManager


def test_is_enabled():
    assert RedisClientManager("redis://localhost:6379/0").is_enabled
    assert not RedisClientManager("redis://localhost:6379/0", enabled=False).is_enabled
    assert not RedisClientManager("").is_enabled


def test_client_is_created_lazily_and_reused():
    manager = RedisClientManager("redis://localhost:6379/0")

    client = manager.get_client()

    assert manager.get_client() is client


def test_invalid_uri_has_no_client():
    manager = RedisClientManager("not-a-redis-url")

    with pytest.raises(ConnectionError):
        manager.get_client()


@pytest.mark.asyncio
async def test_ping_failure_is_reported_not_raised():
    manager = RedisClientManager("not-a-redis-url")

    assert await manager.ping() is False


@pytest.mark.asyncio
async def test_close_without_connection():
    manager = RedisClientManager("redis://localhost:6379/0")
    manager.get_client()

    await manager.close()

    assert manager._client is None

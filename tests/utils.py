"""Test utilities for URL shortener tests."""

import asyncio
import random
import string
from datetime import datetime
from typing import Any, Dict, Optional

from redis.exceptions import ConnectionError as RedisConnectionError

from hashurl.models.mapping import URLMapping


def random_string(length: int = 10) -> str:
    """Generate a random alphanumeric string."""
    return ''.join(random.choice(string.ascii_letters + string.digits) for _ in range(length))


def random_url() -> str:
    """Generate a random URL for testing."""
    domain = f"{random_string(8)}.com"
    path = random_string(12)
    return f"https://{domain}/{path}"


def create_test_mapping_data(
    long_url: Optional[str] = None,
    code: Optional[str] = None,
    expires_at: Optional[datetime] = None,
    click_count: int = 0,
    is_active: bool = True,
) -> Dict[str, Any]:
    """Create test data dict for a URLMapping."""
    return {
        "long_url": long_url or random_url(),
        "code": code or random_string(6),
        "expires_at": expires_at,
        "click_count": click_count,
        "is_active": is_active,
    }


async def create_test_mapping(
    db,
    long_url: Optional[str] = None,
    code: Optional[str] = None,
    expires_at: Optional[datetime] = None,
    click_count: int = 0,
    is_active: bool = True,
) -> URLMapping:
    """Create and commit a test URLMapping."""
    mapping = URLMapping(**create_test_mapping_data(
        long_url=long_url,
        code=code,
        expires_at=expires_at,
        click_count=click_count,
        is_active=is_active,
    ))
    db.add(mapping)
    await db.commit()
    await db.refresh(mapping)
    return mapping


class MockRedis:
    """In-memory stand-in for the subset of ``redis.asyncio.Redis`` the cache uses."""

    def __init__(self):
        self.data = {}
        self.expiry = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        if ex:
            self.expiry[key] = ex
        return True

    async def delete(self, key):
        if key in self.data:
            del self.data[key]
            self.expiry.pop(key, None)
            return 1
        return 0

    async def dbsize(self):
        return len(self.data)

    async def ping(self):
        return True

    async def aclose(self):
        pass


class FailingRedis:
    """Redis double whose every command fails as if the server were down."""

    def __init__(self):
        self.calls = 0

    async def _fail(self, *args, **kwargs):
        self.calls += 1
        raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    get = set = delete = dbsize = ping = _fail


class SlowRedis(MockRedis):
    """Redis double that answers slower than any sensible operation timeout."""

    def __init__(self, delay: float = 1.0):
        super().__init__()
        self.delay = delay

    async def get(self, key):
        await asyncio.sleep(self.delay)
        return await super().get(key)

    async def set(self, key, value, ex=None):
        await asyncio.sleep(self.delay)
        return await super().set(key, value, ex=ex)


class UndecodableRedis(MockRedis):
    """Redis double decoding replies client-side, like ``decode_responses=True``."""

    async def get(self, key):
        value = await super().get(key)
        return value.decode("utf-8") if isinstance(value, bytes) else value

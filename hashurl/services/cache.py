"""Redis cache in front of the mapping store.

The cache is an optimization only. Every backend call runs under a short
timeout, and any Redis or connection failure is logged and turned into a miss
or a no-op so a slow or dead Redis never fails a request.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel
from redis.exceptions import RedisError

from hashurl.core.config import CacheConfig

logger = logging.getLogger(__name__)

# Errors that degrade to a miss instead of propagating
CACHE_ERRORS = (RedisError, ConnectionError, OSError, asyncio.TimeoutError, UnicodeDecodeError)


class CacheStats(BaseModel):
    """Snapshot of the cache for monitoring."""
    enabled: bool
    approx_entry_count: int
    ttl_seconds: int


class URLCache:
    """
    Code to long-URL cache backed by Redis.

    Args:
        client_factory: Zero-argument callable returning a ``redis.asyncio``
            client (or anything with the same ``get``/``set``/``delete``/
            ``dbsize`` coroutines)
        config: Cache settings
    """

    def __init__(self, client_factory: Callable[[], Any], config: CacheConfig):
        self._client_factory = client_factory
        self.config = config

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def ttl_seconds(self) -> int:
        return self.config.ttl_seconds

    def key(self, code: str) -> str:
        return f"{self.config.key_prefix}{code}"

    async def _call(self, command: Callable[[Any], Awaitable[Any]]) -> Any:
        client = self._client_factory()
        return await asyncio.wait_for(command(client), timeout=self.config.operation_timeout)

    async def get(self, code: str) -> Optional[str]:
        """Return the cached long URL, or None on a miss or any backend failure."""
        if not self.enabled:
            return None
        try:
            value = await self._call(lambda client: client.get(self.key(code)))
            if isinstance(value, bytes):
                value = value.decode("utf-8")
        except CACHE_ERRORS as e:
            logger.warning(f"Cache get failed for '{code}', treating as miss: {e!r}")
            return None
        return value

    async def put(self, code: str, long_url: str, ttl: Optional[int] = None) -> bool:
        """
        Store a mapping with a TTL (the configured default unless overridden).

        Returns:
            bool: True if the backend accepted the write
        """
        if not self.enabled:
            return False
        ttl = self.ttl_seconds if ttl is None else ttl
        if ttl <= 0:
            # Nothing to cache for mappings that are about to expire
            return False
        try:
            await self._call(lambda client: client.set(self.key(code), long_url, ex=ttl))
            logger.debug(f"Cached mapping {code} -> {long_url} for {ttl}s")
            return True
        except CACHE_ERRORS as e:
            logger.warning(f"Failed to cache mapping for '{code}': {e!r}")
            return False

    async def invalidate(self, code: str) -> bool:
        """
        Remove a cached mapping.

        Returns:
            bool: True if the delete reached the backend, whether or not the key existed
        """
        if not self.enabled:
            return False
        try:
            await self._call(lambda client: client.delete(self.key(code)))
            logger.info(f"Invalidated cache for code '{code}'")
            return True
        except CACHE_ERRORS as e:
            logger.warning(f"Failed to invalidate cache for '{code}': {e!r}")
            return False

    async def stats(self) -> CacheStats:
        """
        Report the cache state.

        The entry count is the size of the whole Redis database, not only the
        keys under this cache's prefix.
        """
        if not self.enabled:
            return CacheStats(enabled=False, approx_entry_count=0, ttl_seconds=self.ttl_seconds)
        try:
            count = await self._call(lambda client: client.dbsize())
        except CACHE_ERRORS as e:
            logger.error(f"Failed to get cache stats: {e!r}")
            return CacheStats(enabled=False, approx_entry_count=0, ttl_seconds=self.ttl_seconds)
        return CacheStats(enabled=True, approx_entry_count=int(count or 0), ttl_seconds=self.ttl_seconds)

"""
Redis connection pool for the URL cache.

The pool is created on first use, so the application starts (and serves
redirects from the database) whether or not Redis is reachable.
"""

import asyncio
from typing import Optional

import redis.asyncio as redis
from loguru import logger
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from hashurl.core.config import settings


class RedisClientManager:
    """
    Owns the process-wide ``redis.asyncio`` pool and client.

    Args:
        redis_uri: Connection URI, e.g. ``redis://:password@host:6379/0``
        max_connections: Pool size
        enabled: False when the cache is switched off; the pool is then never created
        socket_timeout: Seconds before a connect or a command is abandoned
    """

    def __init__(
        self,
        redis_uri: str,
        max_connections: int = 20,
        enabled: bool = True,
        socket_timeout: Optional[float] = None,
    ):
        self.redis_uri = redis_uri
        self.max_connections = max_connections
        self.enabled = enabled
        self.socket_timeout = socket_timeout
        self._client: Optional[redis.Redis] = None

    @property
    def is_enabled(self) -> bool:
        """Whether the cache backend should be used at all."""
        return bool(self.enabled and self.redis_uri)

    def _create_pool(self) -> ConnectionPool:
        try:
            pool = ConnectionPool.from_url(
                self.redis_uri,
                max_connections=self.max_connections,
                socket_timeout=self.socket_timeout,
                socket_connect_timeout=self.socket_timeout,
                decode_responses=True,
            )
        except (RedisError, ValueError) as e:
            logger.error(f"Failed to create Redis connection pool: {e}")
            raise ConnectionError("Redis connection pool is not available") from e
        logger.debug(f"Redis connection pool created (max {self.max_connections} connections)")
        return pool

    def get_client(self) -> redis.Redis:
        """
        Return the shared client, creating the pool on first call.

        No connection is opened here; the first command does that.

        Raises:
            ConnectionError: If the URI cannot be turned into a pool
        """
        if self._client is None:
            self._client = redis.Redis(connection_pool=self._create_pool())
        return self._client

    async def ping(self) -> bool:
        """Check that Redis answers; failures are logged and reported as False."""
        try:
            client = self.get_client()
            if self.socket_timeout:
                return bool(await asyncio.wait_for(client.ping(), timeout=self.socket_timeout))
            return bool(await client.ping())
        except (RedisError, ConnectionError, OSError, asyncio.TimeoutError) as e:
            logger.error(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        """Close the client together with its pool."""
        if self._client is not None:
            await self._client.aclose(close_connection_pool=True)
            self._client = None
            logger.debug("Redis connections closed")


# Shared instance for the application process
redis_manager = RedisClientManager(
    settings.REDIS_URI,
    max_connections=settings.REDIS_MAX_CONNECTIONS,
    enabled=settings.CACHE_ENABLED,
    socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
)

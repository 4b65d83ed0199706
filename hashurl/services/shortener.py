"""URL shortening service for the URL shortener application.

This module contains the ShortenerService class, which composes the code
generator, the Redis cache and the mapping store into the two public
operations: shortening a URL and resolving a code for a redirect.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hashurl.core.config import ShortenerConfig
from hashurl.db.session import db_transaction
from hashurl.models.mapping import LONG_URL_MAX_LENGTH, URLMapping, utcnow
from hashurl.repositories.base import DuplicateEntityError, RepositoryError
from hashurl.repositories.mapping_repository import MappingRepository
from hashurl.services.cache import CacheStats, URLCache
from hashurl.services.clicks import ClickRecorder
from hashurl.services.codegen import CodeGenerator, is_valid_code
from hashurl.services.exceptions import ErrorKind, ServiceError
from hashurl.services.results import ServiceResult

logger = logging.getLogger(__name__)

# Failures of the source of truth; always surfaced as BACKEND_UNAVAILABLE
STORE_ERRORS = (RepositoryError, SQLAlchemyError, OSError)


class ShortenerService:
    """
    Service for URL shortening business logic.

    Shortening writes the mapping to the store first and then warms the
    cache. Resolving reads the cache first and falls back to the store,
    repopulating the cache on the way out. Cache hits are trusted until their
    TTL runs out; deactivating through this service invalidates the entry.
    """

    def __init__(
        self,
        repository: MappingRepository,
        cache: URLCache,
        generator: CodeGenerator,
        config: ShortenerConfig,
        clicks: Optional[ClickRecorder] = None,
    ):
        """
        Initialize the shortener service.

        Args:
            repository: Mapping store
            cache: Cache in front of the store
            generator: Short code generator
            config: Shortener settings, fixed at startup
            clicks: Background click recorder; visits are not counted without one
        """
        self.repository = repository
        self.cache = cache
        self.generator = generator
        self.config = config
        self.clicks = clicks

    async def shorten(
        self,
        db: AsyncSession,
        long_url: Optional[str],
        expiration_days: Optional[int] = None,
    ) -> ServiceResult[URLMapping]:
        """
        Create a mapping for ``long_url`` and cache it.

        A unique-constraint violation on save means a concurrent request took
        the same code between the lookup and the insert; generation is re-run,
        which now sees the code as taken and moves on to the next candidate.

        Args:
            db: Database session
            long_url: URL to shorten; stored trimmed but otherwise as given
            expiration_days: Days until the mapping expires (config default if None)

        Returns:
            ServiceResult[URLMapping]: the saved mapping, or INVALID_INPUT,
            GENERATION_EXHAUSTED or BACKEND_UNAVAILABLE
        """
        if long_url is None or not str(long_url).strip():
            return ServiceResult.failure(ErrorKind.INVALID_INPUT, "URL cannot be null or empty")

        long_url = str(long_url).strip()
        if len(long_url) > LONG_URL_MAX_LENGTH:
            return ServiceResult.failure(
                ErrorKind.INVALID_INPUT,
                f"URL is longer than {LONG_URL_MAX_LENGTH} characters",
            )

        days = expiration_days if expiration_days is not None else self.config.default_expiration_days
        if days is not None and days < 1:
            return ServiceResult.failure(ErrorKind.INVALID_INPUT, "Expiration must be at least one day")

        logger.info(f"Creating short URL for: {long_url}")

        async def is_taken(code: str) -> bool:
            return await self.repository.exists_by_code(db, code)

        mapping = None
        for round_number in range(1, self.config.save_retry_attempts + 1):
            try:
                code = await self.generator.generate(long_url, is_taken)
                mapping = await self._save(
                    db,
                    URLMapping(
                        code=code,
                        long_url=long_url,
                        created_at=utcnow(),
                        expires_at=URLMapping.generate_expiration(days),
                        click_count=0,
                        is_active=True,
                    ),
                )
                break
            except DuplicateEntityError as e:
                logger.warning(
                    f"Code taken concurrently on save, regenerating "
                    f"({round_number}/{self.config.save_retry_attempts}): {e}"
                )
            except ServiceError as e:
                logger.error(f"Failed to generate short code for {long_url}: {e}")
                return ServiceResult.from_exception(e)
            except STORE_ERRORS as e:
                logger.error(f"Mapping store unavailable while shortening {long_url}: {e}")
                return ServiceResult.failure(ErrorKind.BACKEND_UNAVAILABLE, "Mapping store unavailable")

        if mapping is None:
            return ServiceResult.failure(
                ErrorKind.GENERATION_EXHAUSTED,
                f"Short code collided on save {self.config.save_retry_attempts} times",
            )

        await self._populate_cache(mapping)
        logger.info(f"Created short URL with code: {mapping.code}")
        return ServiceResult.success(mapping)

    async def resolve(self, db: AsyncSession, code: Optional[str]) -> ServiceResult[str]:
        """
        Resolve a code to its long URL for a redirect.

        The cache is consulted first; on a miss the store is queried for an
        accessible mapping and the cache is repopulated. Either way a click is
        queued for the background recorder.

        Args:
            db: Database session
            code: Short code from the request path

        Returns:
            ServiceResult[str]: the long URL (``from_cache`` tells which tier
            answered), or INVALID_INPUT, NOT_FOUND or BACKEND_UNAVAILABLE
        """
        if code is None or not code.strip():
            return ServiceResult.failure(ErrorKind.INVALID_INPUT, "Code cannot be null or empty")
        code = code.strip()
        if not is_valid_code(code):
            return ServiceResult.failure(ErrorKind.INVALID_INPUT, f"Malformed short code: {code}")

        cached_url = await self.cache.get(code)
        if cached_url is not None:
            logger.debug(f"Cache HIT for redirect: {code}")
            self._record_click(code)
            return ServiceResult.success(cached_url, from_cache=True)

        logger.debug(f"Cache MISS for redirect: {code}")
        try:
            mapping = await self.repository.find_active_by_code(db, code)
        except STORE_ERRORS as e:
            logger.error(f"Mapping store unavailable while resolving '{code}': {e}")
            return ServiceResult.failure(ErrorKind.BACKEND_UNAVAILABLE, "Mapping store unavailable")

        if mapping is None:
            return ServiceResult.failure(ErrorKind.NOT_FOUND, f"Short code not found: {code}")

        await self._populate_cache(mapping)
        self._record_click(code)
        return ServiceResult.success(mapping.long_url)

    async def get_details(self, db: AsyncSession, code: str) -> ServiceResult[URLMapping]:
        """Fetch the stored mapping behind an accessible code, bypassing the cache."""
        if not is_valid_code(code):
            return ServiceResult.failure(ErrorKind.INVALID_INPUT, f"Malformed short code: {code}")
        try:
            mapping = await self.repository.find_active_by_code(db, code)
        except STORE_ERRORS as e:
            logger.error(f"Mapping store unavailable while reading '{code}': {e}")
            return ServiceResult.failure(ErrorKind.BACKEND_UNAVAILABLE, "Mapping store unavailable")
        if mapping is None:
            return ServiceResult.failure(ErrorKind.NOT_FOUND, f"Short code not found: {code}")
        return ServiceResult.success(mapping)

    async def deactivate(self, db: AsyncSession, code: str) -> ServiceResult[bool]:
        """
        Deactivate a mapping and drop its cache entry.

        Returns:
            ServiceResult[bool]: True on success, NOT_FOUND if no active mapping has the code
        """
        if not is_valid_code(code):
            return ServiceResult.failure(ErrorKind.INVALID_INPUT, f"Malformed short code: {code}")
        try:
            deactivated = await self._deactivate(db, code)
        except STORE_ERRORS as e:
            logger.error(f"Mapping store unavailable while deactivating '{code}': {e}")
            return ServiceResult.failure(ErrorKind.BACKEND_UNAVAILABLE, "Mapping store unavailable")
        if not deactivated:
            return ServiceResult.failure(ErrorKind.NOT_FOUND, f"Short code not found: {code}")
        await self.cache.invalidate(code)
        logger.info(f"Deactivated short code: {code}")
        return ServiceResult.success(True)

    async def invalidate_cache(self, code: Optional[str]) -> ServiceResult[bool]:
        """
        Remove a code from the cache only; the store is untouched.

        Returns:
            ServiceResult[bool]: whether the entry was dropped (False when the
            cache is disabled or failing), or INVALID_INPUT
        """
        if code is None or not code.strip():
            return ServiceResult.failure(ErrorKind.INVALID_INPUT, "Code cannot be null or empty")
        code = code.strip()
        if not is_valid_code(code):
            return ServiceResult.failure(ErrorKind.INVALID_INPUT, f"Malformed short code: {code}")
        return ServiceResult.success(await self.cache.invalidate(code))

    async def cache_stats(self) -> CacheStats:
        return await self.cache.stats()

    @db_transaction(db_param_name="db")
    async def _save(self, db: AsyncSession, mapping: URLMapping) -> URLMapping:
        return await self.repository.save(db, mapping)

    @db_transaction(db_param_name="db")
    async def _deactivate(self, db: AsyncSession, code: str) -> bool:
        return await self.repository.deactivate(db, code)

    async def _populate_cache(self, mapping: URLMapping) -> None:
        # Never cache past the mapping's own expiry
        ttl = self.cache.ttl_seconds
        remaining = mapping.seconds_until_expiry()
        if remaining is not None:
            ttl = min(ttl, remaining)
        if not await self.cache.put(mapping.code, mapping.long_url, ttl=ttl):
            logger.debug(f"Cache not populated for code: {mapping.code}")

    def _record_click(self, code: str) -> None:
        if self.clicks is not None:
            self.clicks.record(code)

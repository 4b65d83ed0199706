"""API dependencies for FastAPI.

This module wires the shortener's components once per process, from the
frozen config objects built at startup, and exposes them to endpoints through
dependency functions. Tests replace them with ``app.dependency_overrides``.
"""

from hashurl.core.config import settings
from hashurl.core.redis import redis_manager
from hashurl.db.session import SessionManager
from hashurl.repositories.mapping_repository import MappingRepository
from hashurl.services.cache import URLCache
from hashurl.services.clicks import ClickRecorder
from hashurl.services.codegen import CodeGenerator
from hashurl.services.shortener import ShortenerService

shortener_config = settings.shortener_config()
cache_config = settings.cache_config()

mapping_repository = MappingRepository()
url_cache = URLCache(redis_manager.get_client, cache_config)
code_generator = CodeGenerator(shortener_config)
click_recorder = ClickRecorder(
    mapping_repository,
    SessionManager.transaction_context,
    maxsize=settings.CLICK_QUEUE_MAXSIZE,
    workers=settings.CLICK_WORKERS,
)
shortener_service = ShortenerService(
    repository=mapping_repository,
    cache=url_cache,
    generator=code_generator,
    config=shortener_config,
    clicks=click_recorder,
)


async def get_shortener_service() -> ShortenerService:
    """Get the URL shortening service."""
    return shortener_service


def get_base_url() -> str:
    """Get the base URL for shortened links."""
    return shortener_config.base_url

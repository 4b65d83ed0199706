"""Service layer for the URL shortener application.

This package contains the code generator, the cache layer, the click
recorder and the services orchestrating them over the mapping repository.
"""

from hashurl.services.cache import CacheStats, URLCache
from hashurl.services.cleanup import CleanupService
from hashurl.services.clicks import ClickRecorder
from hashurl.services.codegen import CodeGenerator
from hashurl.services.exceptions import ErrorKind
from hashurl.services.results import ServiceResult
from hashurl.services.shortener import ShortenerService

__all__ = [
    "CacheStats",
    "CleanupService",
    "ClickRecorder",
    "CodeGenerator",
    "ErrorKind",
    "ServiceResult",
    "ShortenerService",
    "URLCache",
]

"""Repository layer for the URL shortener service.

Repositories encapsulate the data access logic behind a small, session-scoped API.
"""

from hashurl.repositories.base import (
    BaseRepository,
    DuplicateEntityError,
    RepositoryError,
)
from hashurl.repositories.mapping_repository import MappingRepository

__all__ = [
    "BaseRepository",
    "RepositoryError",
    "DuplicateEntityError",
    "MappingRepository",
]

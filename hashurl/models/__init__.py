"""
Data models for the URL shortener service.

This module imports and exports all SQLModel models used in the application.
"""

# First import SQLModel itself to ensure metadata is initialized
from sqlmodel import SQLModel

from hashurl.models.mapping import (
    URLMapping,
    URLMappingBase,
    URLMappingCreate,
)

__all__ = [
    "SQLModel",
    "URLMapping",
    "URLMappingBase",
    "URLMappingCreate",
]

"""Core module for the URL shortener application."""

from hashurl.core.config import settings

__all__ = ["settings"]

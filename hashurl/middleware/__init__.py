"""HTTP middleware for the URL shortener application."""

from hashurl.middleware.logging import RequestLoggingMiddleware

__all__ = ["RequestLoggingMiddleware"]

"""Exceptions for the URL shortener service layer.

This module contains the exception hierarchy for the service layer,
providing domain-specific exceptions that abstract underlying implementation details.
Each exception has a matching ``ErrorKind`` so results can carry the failure
as a value instead of raising it.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories visible to callers of the shortener service."""
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    GENERATION_EXHAUSTED = "generation_exhausted"
    BACKEND_UNAVAILABLE = "backend_unavailable"


class ServiceError(Exception):
    """Base exception for all service-level errors."""
    kind: ErrorKind


class InvalidInputError(ServiceError):
    """A blank or malformed URL or code was rejected before any side effect."""
    kind = ErrorKind.INVALID_INPUT


class NotFoundError(ServiceError):
    """The code is unknown, inactive or expired."""
    kind = ErrorKind.NOT_FOUND


class GenerationExhaustedError(ServiceError):
    """Every candidate code for a URL hit an occupied code."""
    kind = ErrorKind.GENERATION_EXHAUSTED


class BackendUnavailableError(ServiceError):
    """The mapping store could not be reached or failed."""
    kind = ErrorKind.BACKEND_UNAVAILABLE


EXCEPTIONS_BY_KIND = {
    ErrorKind.INVALID_INPUT: InvalidInputError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.GENERATION_EXHAUSTED: GenerationExhaustedError,
    ErrorKind.BACKEND_UNAVAILABLE: BackendUnavailableError,
}

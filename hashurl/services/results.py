"""Result values returned by the shortener service."""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

from hashurl.services.exceptions import EXCEPTIONS_BY_KIND, ErrorKind, ServiceError

T = TypeVar("T")


class ServiceResult(BaseModel, Generic[T]):
    """
    Outcome of a service operation.

    Exactly one of ``value`` and ``error`` is set. Callers either branch on
    ``error`` or call ``unwrap()`` to get the value or the matching exception.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: str = ""
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T, from_cache: bool = False) -> "ServiceResult[T]":
        return cls(value=value, from_cache=from_cache)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> "ServiceResult[T]":
        return cls(error=error, message=message)

    @classmethod
    def from_exception(cls, exc: ServiceError) -> "ServiceResult[T]":
        return cls(error=exc.kind, message=str(exc))

    def unwrap(self) -> T:
        """Return the value, or raise the exception matching ``error``."""
        if self.error is not None:
            raise EXCEPTIONS_BY_KIND[self.error](self.message)
        return self.value

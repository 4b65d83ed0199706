"""Translation of service error kinds into HTTP responses."""

from typing import Dict

from fastapi import HTTPException, status

from hashurl.services.exceptions import ErrorKind
from hashurl.services.results import ServiceResult

STATUS_BY_ERROR_KIND: Dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.GENERATION_EXHAUSTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.BACKEND_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def raise_for_result(result: ServiceResult) -> None:
    """
    Raise the HTTPException matching a failed result; do nothing on success.

    The error kind is sent in the ``X-Error-Code`` header so clients can branch
    on it without parsing the message.
    """
    if result.ok:
        return
    raise HTTPException(
        status_code=STATUS_BY_ERROR_KIND[result.error],
        detail=result.message,
        headers={"X-Error-Code": result.error.value},
    )

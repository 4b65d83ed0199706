"""
Request logging middleware for FastAPI using Loguru.

Each request gets an ``X-Request-ID`` and one log line at the REQUEST level
with its method, path, status and latency.
"""

import time
import uuid
from contextvars import ContextVar

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"

# Context variable to store request ID across async context
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Assign request IDs and log every request once it has been answered."""

    async def dispatch(self, request: Request, call_next) -> Response:
        # Honour an ID set by a proxy in front of us
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request_id_var.set(request_id)

        start_time = time.time()
        response = await call_next(request)
        process_time_ms = round((time.time() - start_time) * 1000, 2)

        response.headers[REQUEST_ID_HEADER] = request_id

        client_ip = request.client.host if request.client else "unknown"
        if "X-Forwarded-For" in request.headers:
            forwarded_ips = request.headers["X-Forwarded-For"].split(",")
            if forwarded_ips:
                client_ip = forwarded_ips[0].strip()

        logger.bind(request_id=request_id, client_ip=client_ip).log(
            "REQUEST",
            f"{request.method} {request.url.path} {response.status_code} {process_time_ms}ms",
        )
        return response

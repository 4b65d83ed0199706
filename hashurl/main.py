"""Main application module.

This module initializes the FastAPI application, includes routes,
and configures middleware, exception handlers and the startup/shutdown
sequence of the background components.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hashurl.api import api_router
from hashurl.api.dependencies import click_recorder
from hashurl.core.config import settings
from hashurl.core.logging import setup_logging
from hashurl.core.redis import redis_manager
from hashurl.db.base import create_tables, engine
from hashurl.middleware.logging import RequestLoggingMiddleware
from hashurl.scheduler import scheduler_service

# Setup logging
logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run startup tasks, then cleanup tasks once the server stops."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    if settings.DB_CREATE_TABLES:
        await create_tables()
        logger.info("Database tables ensured")

    if redis_manager.is_enabled and not await redis_manager.ping():
        logger.warning("Redis is not reachable, redirects will be served from the database")

    click_recorder.start()

    if settings.SCHEDULER_ENABLED:
        scheduler_service.initialize()
        scheduler_service.start()
    else:
        logger.info("Scheduler is disabled in settings")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}")

    if scheduler_service.is_running:
        scheduler_service.shutdown()

    await click_recorder.stop(drain=True)
    await redis_manager.close()
    await engine.dispose()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.REQUEST_LOGGING_ENABLED:
    app.add_middleware(RequestLoggingMiddleware)

# Include API router
app.include_router(api_router)


# Add exception handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    headers = getattr(exc, "headers", None)
    content = {"detail": exc.detail}
    if headers and "X-Error-Code" in headers:
        content["error_code"] = headers["X-Error-Code"]
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with detailed information."""
    logger.error(f"Request validation error: {exc}")
    return JSONResponse(
        status_code=422,
        content={"detail": "Validation error", "errors": jsonable_encoder(exc.errors())}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler to catch and log all unhandled exceptions."""
    error_id = f"error-{time.time()}"

    logger.opt(exception=exc).error(
        f"Unhandled exception in {request.method} {request.url.path} [{error_id}]"
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error occurred",
            "error_id": error_id,
            "message": str(exc) if settings.DEBUG else "Internal server error"
        }
    )

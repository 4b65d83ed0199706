"""Application configuration module.

This module contains settings for the URL shortener service, loaded from
environment variables with appropriate defaults, and the immutable config
objects handed to the core services at startup.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Set up basic logger for config module
logger = logging.getLogger(__name__)

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent.parent


class EnvironmentType(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class CacheConfig(BaseModel):
    """Settings consumed by the Redis cache layer."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    ttl_seconds: int = Field(default=3600, gt=0)
    key_prefix: str = "url:"
    operation_timeout: float = Field(default=0.25, gt=0)


class ShortenerConfig(BaseModel):
    """Settings consumed by the code generator and the orchestrator."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "http://localhost:8000"
    code_length: int = Field(default=6, ge=1, le=10)
    max_collision_attempts: int = Field(default=100, ge=1)
    save_retry_attempts: int = Field(default=3, ge=1)
    default_expiration_days: Optional[int] = None


class Settings(BaseSettings):
    """Application settings loaded from environment variables with defaults.

    Settings are loaded from environment variables, with fallback to
    values in .env file if present, and finally to the default values
    specified here.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment setting
    ENVIRONMENT: EnvironmentType = EnvironmentType.DEVELOPMENT

    # App Information
    APP_NAME: str = "hashurl"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Hash-based URL shortener with a Redis cache in front of the database"

    # API Configuration
    BASE_URL: str = "http://localhost:8000"  # Used for generating short URLs
    API_PREFIX: str = "/api"
    DEBUG: bool = False

    # CORS settings
    CORS_ORIGINS: Union[List[str], str] = ["*"]

    # Short code generation
    SHORT_CODE_LENGTH: int = 6
    MAX_COLLISION_ATTEMPTS: int = 100
    SAVE_RETRY_ATTEMPTS: int = 3  # Re-generation rounds after a unique-constraint race on save

    # Default URL expiration (in days)
    DEFAULT_EXPIRATION_DAYS: Optional[int] = None  # None means never expire

    # PostgreSQL settings
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "hashurl"
    DATABASE_URL: Optional[str] = None  # Full override, e.g. sqlite+aiosqlite:///./hashurl.db

    # PostgreSQL pool settings
    POSTGRES_POOL_SIZE: int = 20
    POSTGRES_POOL_MAX_OVERFLOW: int = 10
    POSTGRES_POOL_TIMEOUT: int = 30
    POSTGRES_POOL_RECYCLE: int = 300
    DB_ECHO: bool = False
    DB_CREATE_TABLES: bool = True  # Create missing tables on startup

    # Redis settings
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ""
    REDIS_DB: int = 0
    REDIS_URL: Optional[str] = None  # Full override of the computed URI
    REDIS_MAX_CONNECTIONS: int = 20
    REDIS_SOCKET_TIMEOUT: float = 2.0  # Connect and command timeout for the pool

    # Cache settings
    CACHE_ENABLED: bool = True
    CACHE_TTL_SECONDS: int = 3600
    CACHE_KEY_PREFIX: str = "url:"
    CACHE_OPERATION_TIMEOUT: float = 0.25  # Seconds before a cache call is treated as a miss

    # Click counting
    CLICK_QUEUE_MAXSIZE: int = 10000
    CLICK_WORKERS: int = 1

    # Logging configuration
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_FILENAME: str = "app.log"
    LOG_ROTATION: str = "10 MB"
    LOG_RETENTION: str = "7 days"
    LOG_FORMAT: str = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {name}:{line} | {message}"
    LOG_JSON: bool = True
    LOG_TO_FILE: bool = True
    REQUEST_LOGGING_ENABLED: bool = True

    # Expiry sweep settings
    EXPIRY_SWEEP_INTERVAL_MINUTES: int = 60
    EXPIRY_SWEEP_ON_STARTUP: bool = False

    # Scheduler settings
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_JOB_COALESCE: bool = True  # Combine multiple pending executions of a job into a single execution
    SCHEDULER_JOB_MAX_INSTANCES: int = 1
    SCHEDULER_MISFIRE_GRACE_TIME: int = 15 * 60

    # Validators
    @field_validator("DEFAULT_EXPIRATION_DAYS", mode="before")
    def validate_expiration_days(cls, v: Any) -> Optional[int]:
        """Convert empty string to None for DEFAULT_EXPIRATION_DAYS."""
        if v == "" or v is None:
            return None
        try:
            return int(v)
        except (ValueError, TypeError):
            return None

    @field_validator("CORS_ORIGINS")
    def validate_list_or_string(cls, v: Union[List[str], str]) -> List[str]:
        """Convert comma-separated string to list if needed."""
        if isinstance(v, str):
            if not v.strip():
                return []
            if v == "*":
                return ["*"]
            return [item.strip() for item in v.split(",")]
        return v

    @field_validator("SHORT_CODE_LENGTH")
    def validate_code_length(cls, v: int) -> int:
        # The codes column is VARCHAR(10)
        if not 1 <= v <= 10:
            raise ValueError("SHORT_CODE_LENGTH must be between 1 and 10")
        return v

    # Computed fields
    @computed_field
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        """Construct the SQLAlchemy database URI from settings or use override."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @computed_field
    def REDIS_URI(self) -> str:
        """Construct the Redis URI from settings or use override."""
        if self.REDIS_URL:
            return self.REDIS_URL
        password_part = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{password_part}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    def cache_config(self) -> CacheConfig:
        """Build the immutable cache configuration."""
        return CacheConfig(
            enabled=self.CACHE_ENABLED,
            ttl_seconds=self.CACHE_TTL_SECONDS,
            key_prefix=self.CACHE_KEY_PREFIX,
            operation_timeout=self.CACHE_OPERATION_TIMEOUT,
        )

    def shortener_config(self) -> ShortenerConfig:
        """Build the immutable shortener configuration."""
        return ShortenerConfig(
            base_url=self.BASE_URL.rstrip("/"),
            code_length=self.SHORT_CODE_LENGTH,
            max_collision_attempts=self.MAX_COLLISION_ATTEMPTS,
            save_retry_attempts=self.SAVE_RETRY_ATTEMPTS,
            default_expiration_days=self.DEFAULT_EXPIRATION_DAYS,
        )


# Create a singleton instance of the settings
settings = Settings()

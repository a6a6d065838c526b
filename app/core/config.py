"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_mongo_settings() -> "MongoSettings":
    """Build document store settings from environment.

    BaseSettings populates its fields from the environment, which static type
    checkers don't understand, hence the type ignore.
    """

    return MongoSettings()  # type: ignore[call-arg]


def _build_redis_settings() -> "RedisSettings":
    return RedisSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class MongoSettings(BaseSettings):
    """Document store (MongoDB) connection settings."""

    uri: str = Field(
        "mongodb://localhost:27017",
        description="MongoDB connection string",
    )
    db_name: str = Field(
        "chapters",
        description="Database holding the chapter collection",
    )
    collection: str = Field(
        "chapters",
        description="Collection name for chapter records",
    )
    server_selection_timeout_ms: int = Field(
        5000,
        description="How long the driver waits for a reachable server",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="MONGODB_",
        case_sensitive=False,
    )


class RedisSettings(BaseSettings):
    """Key-value store (Redis) connection settings.

    The same server backs the response cache and the rate limiter counters.
    """

    url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection string",
    )
    socket_timeout_seconds: float = Field(
        5.0,
        description="Socket connect/read timeout for Redis calls",
    )

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    port: int = Field(
        3000,
        description="Port the HTTP server listens on",
        validation_alias=AliasChoices("APP_PORT", "PORT"),
    )
    admin_api_key: str | None = Field(
        None,
        description="Shared secret required in X-API-Key for write endpoints",
        validation_alias=AliasChoices("APP_ADMIN_API_KEY", "ADMIN_API_KEY"),
    )
    store_backend: Literal["mongo", "memory"] = Field(
        "mongo",
        description="Record store implementation",
    )
    cache_backend: Literal["redis", "memory"] = Field(
        "redis",
        description="Response cache implementation",
    )
    rate_limit_backend: Literal["redis", "memory"] = Field(
        "redis",
        description="Rate limiter counter store",
    )
    cache_ttl_seconds: int = Field(
        3600,
        description="Expiry applied to cached list responses",
        ge=1,
    )
    cache_prefix: str = Field(
        "chapters",
        description="Namespace shared by every list-endpoint cache key",
    )
    max_upload_size_mb: int = Field(
        5,
        description="Maximum upload size in megabytes",
    )
    cors_origins: str = Field(
        "*",
        description="Comma-separated list of allowed CORS origins",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable rate limiting per client address",
    )
    rate_limit_requests: int = Field(
        30,
        description="Maximum number of requests allowed per window (per client address)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        60,
        description="Rate limit window size in seconds",
        ge=1,
    )
    rate_limit_fail_mode: Literal["open", "closed"] = Field(
        "closed",
        description=(
            "What to do when the limiter backend is unreachable: 'closed' rejects "
            "requests with 503, 'open' lets them through unlimited"
        ),
    )
    rate_limit_include_headers: bool = Field(
        False,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
        populate_by_name=True,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field("json", description="Log line format")
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.

    Environments:
    - development: Local development
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    mongo: MongoSettings = Field(default_factory=_build_mongo_settings)
    redis: RedisSettings = Field(default_factory=_build_redis_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()

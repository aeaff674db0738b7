"""Application settings and logging configuration."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import structlog
from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_CONTEXT: dict[str, str] = {"environment": "development", "service": "domugrauds"}

SUPPORTED_DATABASE_SCHEMES = ("sqlite+aiosqlite://", "postgresql+asyncpg://")


class AppSettings(BaseModel):
    """Application identity and runtime settings."""

    environment: Literal["development", "staging", "production"] = "development"
    service: str = "domugrauds"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


class DatabaseSettings(BaseModel):
    """Database connection settings."""

    url: str = Field(
        default="sqlite+aiosqlite:///./domugrauds.db",
        description="Async SQLAlchemy URL using the aiosqlite or asyncpg driver.",
    )
    echo: bool = False

    @field_validator("url")
    @classmethod
    def validate_async_driver(cls, value: str) -> str:
        """Ensure SQLAlchemy uses one of the supported async drivers."""
        if not value.startswith(SUPPORTED_DATABASE_SCHEMES):
            raise ValueError(
                "database.url must start with 'sqlite+aiosqlite://' or 'postgresql+asyncpg://'."
            )
        return value


class RedisSettings(BaseModel):
    """Redis connection settings."""

    url: str = Field(default="redis://localhost:6379/0", description="Redis URL.")

    @field_validator("url")
    @classmethod
    def validate_redis_url(cls, value: str) -> str:
        """Ensure the Redis URL uses a supported scheme."""
        if not value.startswith(("redis://", "rediss://")):
            raise ValueError("redis.url must start with 'redis://' or 'rediss://'.")
        return value


class JWTSettings(BaseModel):
    """Session token signing and lifetime settings."""

    algorithm: Literal["RS256"] = "RS256"
    private_key_pem: SecretStr
    public_key_pem: SecretStr
    session_token_ttl_seconds: int = Field(default=7 * 24 * 60 * 60, ge=1)


class CookieSettings(BaseModel):
    """Session cookie attributes."""

    name: str = "auth-token"
    samesite: Literal["lax", "strict", "none"] = "lax"


class RealtimeSettings(BaseModel):
    """Push channel settings for the standalone realtime process and clients."""

    host: str = "0.0.0.0"
    port: int = 3001
    reconnect_delay_seconds: float = Field(default=3.0, gt=0)
    poll_interval_seconds: float = Field(default=3.0, ge=2.0, le=5.0)


class RateLimitSettings(BaseModel):
    """Rate limiting thresholds."""

    enabled: bool = True
    default_requests_per_minute: int = Field(default=120, ge=1)
    login_requests_per_minute: int = Field(default=10, ge=1)
    register_requests_per_minute: int = Field(default=5, ge=1)


class UploadSettings(BaseModel):
    """Upload storage and validation settings."""

    directory: Path = Path("public/uploads")
    max_bytes: int = Field(default=50 * 1024 * 1024, ge=1)
    blocked_extensions: list[str] = Field(
        default_factory=lambda: [
            "exe",
            "bat",
            "cmd",
            "scr",
            "pif",
            "com",
            "vbs",
            "js",
            "mjs",
            "jar",
            "html",
            "htm",
            "shtml",
            "xhtml",
            "xml",
            "svg",
            "svgz",
        ]
    )
    avatar_extensions: list[str] = Field(
        default_factory=lambda: ["jpg", "jpeg", "png", "gif", "webp"]
    )


class Settings(BaseSettings):
    """Root application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=AppSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    jwt: JWTSettings
    cookie: CookieSettings = Field(default_factory=CookieSettings)
    realtime: RealtimeSettings = Field(default_factory=RealtimeSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    uploads: UploadSettings = Field(default_factory=UploadSettings)


def _standard_log_fields(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Inject required structured logging fields."""
    context_vars = structlog.contextvars.get_contextvars()
    event_dict.setdefault("correlation_id", str(context_vars.get("correlation_id", "unknown")))
    event_dict.setdefault("environment", _LOG_CONTEXT["environment"])
    event_dict.setdefault("service", _LOG_CONTEXT["service"])
    event_dict.setdefault("timestamp", datetime.now(UTC).isoformat())
    return event_dict


def configure_structlog(settings: Settings) -> None:
    """Configure structlog for JSON output with required fields."""
    _LOG_CONTEXT["environment"] = settings.app.environment
    _LOG_CONTEXT["service"] = settings.app.service

    log_level = getattr(logging, settings.app.log_level, logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            _standard_log_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Load and cache application settings from environment variables."""
    return Settings()

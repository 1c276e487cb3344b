"""Settings for the catalog API, grouped by concern.

Each group reads its own env prefix (APP_, RATE_LIMIT_, PAGINATION_, LOG_).
Before the groups are built, the file named by APP_ENV (``.env.development``,
``.env.testing``, ``.env.staging`` or ``.env.production`` at the project root)
is loaded into the environment when it exists. Real environment variables
injected by the platform are overridden by that file, so production images
should not ship one.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_ENVIRONMENTS = ("development", "testing", "staging", "production")

APP_ENV = os.getenv("APP_ENV", "development")

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def env_file_for(app_env: str) -> Path | None:
    """Return the dotenv file of an environment, or None when it is absent."""
    name = app_env if app_env in APP_ENVIRONMENTS else "development"
    candidate = PROJECT_ROOT / f".env.{name}"
    return candidate if candidate.is_file() else None


# Nested BaseSettings groups do not share an env_file, so the file is loaded
# into os.environ once, before any group is instantiated.
_env_file = env_file_for(APP_ENV)
if _env_file is not None:
    load_dotenv(_env_file, override=True)


DEV_CURSOR_SECRET = "cosmic-index-dev-cursor-secret"
DEFAULT_API_VERSION = "1"
DEFAULT_REQUEST_ID_HEADER = "X-Request-ID"


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_version: str = Field(
        DEFAULT_API_VERSION,
        description="Value reported in the Api-Version header and meta.apiVersion",
    )
    trust_client_request_id: bool = Field(
        True,
        description="Reuse a well-formed X-Request-ID sent by the client instead of generating one",
    )
    trust_forwarded_for: bool = Field(
        True,
        description="Derive the client identity from X-Forwarded-For / X-Real-IP (set when behind a proxy)",
    )
    upstream_timeout_seconds: float = Field(
        10.0,
        gt=0,
        description="Seconds a catalog fetch may take before UPSTREAM_TIMEOUT",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Per-tier fixed-window rate limiting configuration."""

    enabled: bool = Field(
        True,
        description="Enable per-client rate limiting",
    )
    backend: Literal["memory", "redis"] = Field(
        "memory",
        description="Counter store backend; use redis when running several instances",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL (only used with backend=redis)",
    )
    key_prefix: str = Field(
        "ratelimit",
        description="Namespace for counter keys in the shared store",
    )
    failure_policy: Literal["fail_open", "fail_closed"] = Field(
        "fail_open",
        description="Behaviour when the counter store is unreachable",
    )
    browse_requests: int = Field(100, ge=1, description="BROWSE tier requests per window")
    browse_window_seconds: int = Field(60, ge=1, description="BROWSE tier window size")
    detail_requests: int = Field(200, ge=1, description="DETAIL tier requests per window")
    detail_window_seconds: int = Field(60, ge=1, description="DETAIL tier window size")
    memory_max_keys: int = Field(
        10_000,
        ge=1,
        description="Upper bound on tracked keys for the in-memory store",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class PaginationSettings(BaseSettings):
    """Page size bounds and cursor signing."""

    default_limit: int = Field(24, ge=1, description="Page size when the client sends no limit")
    max_limit: int = Field(100, ge=1, description="Requested limits are clamped to this value")
    cursor_secret: SecretStr = Field(
        SecretStr(DEV_CURSOR_SECRET),
        description="HMAC key used to sign pagination cursors",
    )
    max_cursor_length: int = Field(500, ge=32, description="Longest cursor token accepted")

    model_config = SettingsConfigDict(
        env_prefix="PAGINATION_",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def _check_limits(self) -> "PaginationSettings":
        if self.default_limit > self.max_limit:
            raise ValueError("default_limit must not exceed max_limit")
        return self


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field("json", description="Log line format")
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(0, ge=0, description="Rotate the log file at this size (0 disables)")
    backup_count: int = Field(5, ge=0, description="Rotated files to keep")
    request_id_header: str = Field(
        DEFAULT_REQUEST_ID_HEADER,
        description="Header carrying the correlation id on requests and responses",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


def _build_app_settings() -> AppSettings:
    return AppSettings()


def _build_rate_limit_settings() -> RateLimitSettings:
    return RateLimitSettings()


def _build_pagination_settings() -> PaginationSettings:
    return PaginationSettings()


def _build_log_settings() -> LogSettings:
    return LogSettings()


class Settings(BaseSettings):
    """All setting groups of the service.

    Invalid values raise a pydantic ValidationError at import, so a
    misconfigured deployment fails at startup rather than on a request.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    pagination: PaginationSettings = Field(default_factory=_build_pagination_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()

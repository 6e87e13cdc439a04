"""Gateway configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from erp_gateway.adapters.rate_limit.base import OperationLimit, RateLimitConfig


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


def _build_erp_settings() -> "ERPSettings":
    """Build ERP settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return ERPSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    See _build_erp_settings() for rationale about the type ignore.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class OperationLimitSettings(BaseModel):
    """Quota override for a single operation."""

    max_requests: int = Field(..., ge=1)
    window_ms: int = Field(..., ge=1)


class ERPSettings(BaseSettings):
    """Upstream ERP API configuration.

    ``api_key`` is the legacy single-tenant key; multi-tenant deployments
    declare TENANT_<n>_* variables instead (see services.tenants).
    """

    base_url: str = Field(
        "https://api.holded.com/api/invoicing/v1",
        description="Base URL of the ERP REST API",
    )
    api_key: str | None = Field(
        None,
        description="API key for single-tenant mode",
    )
    api_key_header: str = Field(
        "key",
        description="Header used to send the tenant API key upstream",
    )
    timeout_seconds: float = Field(
        30.0,
        description="Request timeout in seconds",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="ERP_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Gateway-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_key_required: bool = Field(
        True,
        description="Whether API key authentication is required",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid gateway API keys",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-tenant, per-operation rate limiting",
    )
    rate_limit_max_requests: int = Field(
        100,
        description="Default maximum calls allowed per window (per tenant and operation)",
        ge=1,
    )
    rate_limit_window_ms: int = Field(
        60000,
        description="Default sliding window length in milliseconds",
        ge=1,
    )
    rate_limit_operation_limits: dict[str, OperationLimitSettings] = Field(
        default_factory=dict,
        description=(
            "JSON mapping of operation name to {max_requests, window_ms} overrides, "
            'e.g. {"delete_contact": {"max_requests": 2, "window_ms": 60000}}'
        ),
    )
    rate_limit_cleanup_interval_seconds: float = Field(
        60.0,
        description="Period of the background sweep evicting expired entries",
        gt=0,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(0, description="Rotate the log file at this size (0 disables)", ge=0)
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header carrying the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main gateway settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    erp: ERPSettings = Field(default_factory=_build_erp_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


def build_rate_limit_config(app_settings: AppSettings) -> RateLimitConfig:
    """Convert validated settings into the limiter's immutable config."""

    return RateLimitConfig(
        default_max_requests=app_settings.rate_limit_max_requests,
        default_window_ms=app_settings.rate_limit_window_ms,
        operation_limits={
            name: OperationLimit(max_requests=limit.max_requests, window_ms=limit.window_ms)
            for name, limit in app_settings.rate_limit_operation_limits.items()
        },
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()

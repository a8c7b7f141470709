"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
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


DAY_MS = 24 * 60 * 60 * 1000


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: 'json' or 'plain'")
    output: str = Field("stdout", description="Log output: 'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10 * 1024 * 1024, description="Rotate file after N bytes (0 disables)")
    backup_count: int = Field(5, description="Rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and propagate the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Server-side admission control for the search endpoint."""

    enabled: bool = Field(
        True,
        description="Enable per-client rate limiting on the search endpoint",
    )
    max_requests: int = Field(
        2,
        description="Maximum number of searches allowed per window (per client)",
        ge=1,
    )
    window_ms: int = Field(
        DAY_MS,
        description="Rate limit window size in milliseconds",
        ge=1,
    )
    sweep_interval_ms: int | None = Field(
        None,
        description="Interval between stale-entry sweeps (defaults to window_ms)",
        ge=1,
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers",
    )
    expose_client_id: bool = Field(
        True,
        description="Return the derived client id (X-Client-ID / clientId) for debugging",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )

    @property
    def effective_sweep_interval_ms(self) -> int:
        return self.sweep_interval_ms or self.window_ms


class UpstreamSettings(BaseSettings):
    """Recommendation webhook configuration."""

    webhook_url: str = Field(
        "https://semmyhkm.app.n8n.cloud/webhook/resto-reco",
        description="Recommendation webhook URL",
    )
    timeout_seconds: float = Field(30.0, description="Upstream request timeout in seconds")
    user_agent: str = Field(
        "Restaurant-Discovery-App/1.0",
        description="User-Agent sent to the webhook",
    )
    default_radius: int = Field(300, description="Search radius in meters when omitted", ge=1)

    model_config = SettingsConfigDict(
        env_prefix="UPSTREAM_",
        case_sensitive=False,
    )


class ClientLimitSettings(BaseSettings):
    """Defaults for the browser-side admission gate."""

    max_requests: int = Field(2, ge=1)
    window_ms: int = Field(DAY_MS, ge=1)
    storage_key: str = Field("restaurant-search-rate-limit")
    cookie_max_age_seconds: int = Field(24 * 60 * 60, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="CLIENT_LIMIT_",
        case_sensitive=False,
    )


class ServerSettings(BaseSettings):
    """Address the bundled uvicorn runner binds to."""

    host: str = Field("127.0.0.1", description="Bind address")
    port: int = Field(8000, ge=1, le=65535, description="Bind port")

    model_config = SettingsConfigDict(
        env_prefix="SERVER_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    server: ServerSettings = Field(default_factory=ServerSettings)
    log: LogSettings = Field(default_factory=LogSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    upstream: UpstreamSettings = Field(default_factory=UpstreamSettings)
    client_limit: ClientLimitSettings = Field(default_factory=ClientLimitSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()

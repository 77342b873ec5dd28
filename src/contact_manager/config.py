"""
Application configuration with environment-driven settings.
"""

import os
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "contact-manager"
    app_env: Literal["dev", "qa", "uat", "prod"] = "dev"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./contacts.db",
        description="Async SQLAlchemy connection URL",
    )
    database_auto_create: bool = Field(
        default=True,
        description="Create missing tables at application startup.",
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:8000",
        description="Comma-separated list of allowed CORS origins",
    )

    # Realtime channel
    ws_ping_interval_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Interval between liveness pings sent to each WebSocket client.",
    )
    ws_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Connections without a pong for longer than this are dropped.",
    )

    # CSV import
    csv_max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1,
        description="Maximum accepted CSV upload size in bytes.",
    )
    csv_encoding: str = Field(
        default="utf-8-sig",
        description="Text encoding used to decode uploaded CSV files.",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def _get_settings_cached() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


_settings: Settings | None = None


def get_settings() -> Settings:
    # Under pytest env vars are monkeypatched between tests, so never freeze them.
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return Settings()
    return _get_settings_cached()

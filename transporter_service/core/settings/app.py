"""HTTP application settings.

Environment variables use APP_ prefix.
Example: APP_DEBUG=true, APP_PORT=8080
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """FastAPI application configuration."""

    title: str = Field(default="Transporter Service")
    version: str = Field(default="0.1.0")
    debug: bool = Field(default=False)

    api_prefix: str = Field(
        default="/api/v1",
        description="Prefix for all API routes.",
    )

    host: str = Field(default="127.0.0.1", description="Bind address for `server run`.")
    port: int = Field(default=8000, ge=1, le=65535)

    create_tables_on_startup: bool = Field(
        default=True,
        description="Create missing tables when the application starts.",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

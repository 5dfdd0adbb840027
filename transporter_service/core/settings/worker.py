"""Work queue worker settings.

Environment variables use WORKER_ prefix.
Example: WORKER_MAX_RUN_TIME_SECONDS=7200
"""

from __future__ import annotations

import os
import socket

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_worker_name() -> str:
    return f"host:{socket.gethostname()} pid:{os.getpid()}"


class WorkerSettings(BaseSettings):
    """Polling worker configuration for the transporter work queue."""

    name: str = Field(
        default_factory=_default_worker_name,
        description="Identifier written into locked_by when a task is claimed.",
    )

    sleep_delay_seconds: float = Field(
        default=5.0,
        gt=0,
        description="How long the worker sleeps when the queue is empty.",
    )

    max_run_time_seconds: int = Field(
        default=4 * 3600,
        ge=60,
        description=(
            "Locks older than this belong to a crashed worker; "
            "the task becomes claimable again."
        ),
    )

    batch_size: int = Field(
        default=100,
        ge=1,
        le=10_000,
        description="Maximum tasks processed by one work_off() call.",
    )

    model_config = SettingsConfigDict(
        env_prefix="WORKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

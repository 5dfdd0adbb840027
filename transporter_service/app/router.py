"""Router registration."""

from __future__ import annotations

from fastapi import FastAPI

from transporter_service.core.settings import AppSettings
from transporter_service.features.jobs.router import router as jobs_router


def setup_routers(app: FastAPI, app_settings: AppSettings) -> None:
    """Mount feature routers under the API prefix."""
    app.include_router(jobs_router, prefix=app_settings.api_prefix)

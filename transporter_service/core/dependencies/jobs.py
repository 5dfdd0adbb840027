"""Job lifecycle dependencies for FastAPI route handlers."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from transporter_service.core.dependencies.database import get_db_session
from transporter_service.core.settings import get_transporter_settings
from transporter_service.infra.tasks.jobs import DatabaseWorkQueue, JobLifecycle, JobStore


def get_log_directory() -> Path:
    """Directory holding per-job log files."""
    return get_transporter_settings().output_log_directory


def get_job_store() -> JobStore:
    return JobStore()


def get_job_lifecycle(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    log_directory: Annotated[Path, Depends(get_log_directory)],
) -> JobLifecycle:
    """Lifecycle bound to the request session and its database work queue."""
    return JobLifecycle(session, DatabaseWorkQueue(session), log_directory=log_directory)


SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
JobStoreDep = Annotated[JobStore, Depends(get_job_store)]
JobLifecycleDep = Annotated[JobLifecycle, Depends(get_job_lifecycle)]
LogDirectoryDep = Annotated[Path, Depends(get_log_directory)]

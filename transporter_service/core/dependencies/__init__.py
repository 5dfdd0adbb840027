"""FastAPI dependencies."""

from .database import get_db_session
from .jobs import (
    JobLifecycleDep,
    JobStoreDep,
    LogDirectoryDep,
    SessionDep,
    get_job_lifecycle,
    get_job_store,
    get_log_directory,
)

__all__ = [
    "JobLifecycleDep",
    "JobStoreDep",
    "LogDirectoryDep",
    "SessionDep",
    "get_db_session",
    "get_job_lifecycle",
    "get_job_store",
    "get_log_directory",
]

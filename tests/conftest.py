"""Pytest configuration and shared fixtures.

Organization:
    - Database Fixtures: SQLite engine per test, session factory, accounts
    - Job Fixtures: fake work queue, fake transporter runner, lifecycle
    - Application Fixtures: FastAPI app with overridden dependencies, HTTP client
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Mapping
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

from httpx import ASGITransport, AsyncClient
import pytest

if TYPE_CHECKING:
    from fastapi import FastAPI
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

    from transporter_service.infra.tasks.jobs import Account, JobLifecycle

# Ensure tests run without external infrastructure
os.environ.setdefault("TASK_ENABLED", "false")
os.environ.setdefault("APP_CREATE_TABLES_ON_STARTUP", "false")
os.environ.setdefault("LOG_CONSOLE_ENABLED", "false")


# ============================================================================
# Fakes
# ============================================================================


class FakeWorkQueue:
    """In-memory work queue that records every call.

    Set ``fail_with`` to make ``enqueue`` raise.
    """

    def __init__(self) -> None:
        self.tasks: dict[int, tuple[dict[str, Any], int]] = {}
        self.enqueued: list[tuple[dict[str, Any], int]] = []
        self.deleted: list[int] = []
        self.fail_with: Exception | None = None
        self._next_id = 100

    async def enqueue(self, payload: dict[str, Any], priority: int) -> int:
        if self.fail_with is not None:
            raise self.fail_with
        self._next_id += 1
        self.tasks[self._next_id] = (dict(payload), priority)
        self.enqueued.append((dict(payload), priority))
        return self._next_id

    async def delete(self, task_id: int) -> None:
        self.deleted.append(task_id)
        self.tasks.pop(task_id, None)

    async def minimum_priority(self) -> int:
        if not self.tasks:
            return 0
        return min(priority for _, priority in self.tasks.values())


class FakeRunner:
    """Transporter runner that records calls instead of spawning a process.

    ``output`` is appended to the job log, ``error`` is raised after that.
    """

    def __init__(
        self,
        result: Any = None,
        error: Exception | None = None,
        output: bytes = b"",
    ) -> None:
        self.result = {"command": "fake", "exit_status": 0} if result is None else result
        self.error = error
        self.output = output
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def run(self, command: str, options: Mapping[str, Any]) -> Any:
        self.calls.append((command, dict(options)))
        if self.output and options.get("log"):
            with Path(options["log"]).open("ab") as fh:
                fh.write(self.output)
        if self.error is not None:
            raise self.error
        return self.result


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """SQLite database file per test with every table created.

    A file (rather than :memory:) lets the worker and the API open
    independent connections to the same data.
    """
    from transporter_service.core.database import Base
    from transporter_service.core.settings import DatabaseSettings
    from transporter_service.infra.database import create_engine_from_settings
    from transporter_service.infra.tasks.jobs import models  # noqa: F401

    engine = create_engine_from_settings(
        DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    from transporter_service.infra.database import create_sessionmaker

    return create_sessionmaker(db_engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture
async def account(db_session: AsyncSession) -> Account:
    """A committed account with every credential set."""
    from transporter_service.infra.tasks.jobs import Account

    acct = Account(
        username="uploader@example.com",
        password="s3cret",
        shortname="acme",
        itc_provider="AcmeProvider",
    )
    db_session.add(acct)
    await db_session.commit()
    return acct


# ============================================================================
# Job Fixtures
# ============================================================================


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    path = tmp_path / "logs"
    path.mkdir()
    return path


@pytest.fixture
def fake_queue() -> FakeWorkQueue:
    return FakeWorkQueue()


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def lifecycle(db_session: AsyncSession, fake_queue: FakeWorkQueue, log_dir: Path) -> JobLifecycle:
    """Lifecycle over the test session and the in-memory queue."""
    from transporter_service.infra.tasks.jobs import JobLifecycle

    return JobLifecycle(db_session, fake_queue, log_directory=log_dir)


@pytest.fixture
def make_runner():
    """Build a FakeRunner with custom behaviour.

    Example:
        def test_failure(make_runner):
            runner = make_runner(error=RuntimeError("boom"))
    """
    return FakeRunner


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app(session_factory: async_sessionmaker[AsyncSession], log_dir: Path) -> FastAPI:
    """FastAPI app bound to the test database and log directory."""
    from transporter_service.app.main import create_app
    from transporter_service.core.dependencies import get_db_session, get_log_directory

    application = create_app()

    async def override_db_session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db_session] = override_db_session
    application.dependency_overrides[get_log_directory] = lambda: log_dir
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """HTTP client for the test app; lifespan is not run."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

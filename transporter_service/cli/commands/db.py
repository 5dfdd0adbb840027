"""Database management commands."""

from __future__ import annotations

import click

from transporter_service.cli.utils import coro, error, info, success


@click.group()
def db() -> None:
    """Create or drop the jobs schema."""


@db.command()
@coro
async def init() -> None:
    """Create all tables that do not exist yet.

    Example:
        transporter-service db init
    """
    from transporter_service.infra.database import init_database

    try:
        await init_database()
    except Exception as e:
        error(f"Failed to initialize database: {e}")
        raise click.Abort() from e
    success("Database tables created")


@db.command()
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@coro
async def drop(yes: bool) -> None:
    """Drop all tables. This deletes every job, account and queued task.

    Example:
        transporter-service db drop --yes
    """
    from transporter_service.core.database import Base
    from transporter_service.infra.database import get_engine
    from transporter_service.infra.tasks.jobs import models  # noqa: F401

    if not yes and not click.confirm("Drop every job, account and queued task?"):
        info("Aborted.")
        return

    try:
        async with get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    except Exception as e:
        error(f"Failed to drop tables: {e}")
        raise click.Abort() from e
    success("All tables dropped")

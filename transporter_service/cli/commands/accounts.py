"""Account management commands."""

from __future__ import annotations

import click

from transporter_service.cli.utils import coro, error, success, table


@click.group()
def accounts() -> None:
    """Manage iTunes Connect accounts jobs run under."""


@accounts.command("add")
@click.argument("username")
@click.password_option("--password", "-p", help="Account password")
@click.option("--shortname", default=None, help="Provider short name")
@click.option("--itc-provider", default=None, help="iTunes Connect provider")
@coro
async def add_account(
    username: str,
    password: str,
    shortname: str | None,
    itc_provider: str | None,
) -> None:
    """Add an account.

    Example:
        transporter-service accounts add user@example.com --shortname acme
    """
    from transporter_service.infra.database import get_async_session
    from transporter_service.infra.tasks.jobs import Account, AccountStore

    async with get_async_session() as session:
        store = AccountStore()
        if await store.find_by_username(session, username) is not None:
            error(f"Account {username} already exists")
            raise click.Abort()
        account = await store.create(
            session,
            Account(
                username=username,
                password=password,
                shortname=shortname,
                itc_provider=itc_provider,
            ),
        )
        await session.commit()
    success(f"Created account {account.id} ({username})")


@accounts.command("list")
@coro
async def list_accounts() -> None:
    """List accounts."""
    from transporter_service.infra.database import get_async_session
    from transporter_service.infra.tasks.jobs import AccountStore

    async with get_async_session() as session:
        rows = await AccountStore().list(session, limit=1000)

    table(
        ("ID", "USERNAME", "SHORTNAME", "PROVIDER"),
        ((a.id, a.username, a.shortname, a.itc_provider) for a in rows),
    )

"""Main CLI entry point for transporter-service management commands."""

import click

from transporter_service import __version__
from transporter_service.cli.commands import accounts, db, server, worker
from transporter_service.infra.logging import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="transporter-service")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Transporter Service CLI.

    \b
    Command Groups:
      db        Create or drop tables
      accounts  Manage iTunes Connect accounts
      worker    Run queued transporter jobs
      server    Run the jobs API

    \b
    Quick Start:
      transporter-service db init
      transporter-service accounts add user@example.com
      transporter-service worker run
    """
    ctx.ensure_object(dict)
    setup_logging()


cli.add_command(db.db)
cli.add_command(accounts.accounts)
cli.add_command(worker.worker)
cli.add_command(server.server)


if __name__ == "__main__":
    cli()

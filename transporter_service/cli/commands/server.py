"""HTTP server commands."""

from __future__ import annotations

import subprocess
import sys

import click

from transporter_service.cli.utils import error, info


@click.group()
def server() -> None:
    """Run the jobs API."""


@server.command()
@click.option("--host", default=None, help="Bind address (default: APP_HOST)")
@click.option("--port", type=int, default=None, help="Port (default: APP_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def run(host: str | None, port: int | None, reload: bool) -> None:
    """Start uvicorn serving the API.

    Example:
        transporter-service server run --port 8080
    """
    from transporter_service.core.settings import get_app_settings

    app_settings = get_app_settings()
    cmd = [
        sys.executable,
        "-m",
        "uvicorn",
        "transporter_service.app.main:app",
        "--host",
        host or app_settings.host,
        "--port",
        str(port or app_settings.port),
    ]
    if reload:
        cmd.append("--reload")

    try:
        info(f"Serving on http://{cmd[5]}:{cmd[7]}")
        subprocess.run(cmd, check=False)
    except KeyboardInterrupt:
        info("Shutting down server...")
    except OSError as e:
        error(f"Failed to start server: {e}")
        sys.exit(1)

"""Terminal output for CLI commands."""

from collections.abc import Iterable, Mapping, Sequence

import click


def success(message: str) -> None:
    click.secho(message, fg="green")


def error(message: str) -> None:
    click.secho(f"error: {message}", fg="red", err=True)


def warning(message: str) -> None:
    click.secho(message, fg="yellow")


def info(message: str) -> None:
    click.echo(message)


def table(columns: Sequence[str], rows: Iterable[Sequence[object]]) -> None:
    """Print rows left-aligned under bold column titles."""
    cells = [[("" if value is None else str(value)) for value in row] for row in rows]
    widths = [
        max([len(title), *(len(row[i]) for row in cells)]) for i, title in enumerate(columns)
    ]
    click.secho("  ".join(t.ljust(w) for t, w in zip(columns, widths, strict=True)), bold=True)
    for row in cells:
        click.echo("  ".join(v.ljust(w) for v, w in zip(row, widths, strict=True)).rstrip())


def work_summary(counts: Mapping[str, int]) -> None:
    """Report a work-off pass; yellow when any job failed."""
    line = f"{counts['succeeded']} succeeded, {counts['failed']} failed"
    if counts["failed"]:
        warning(line)
    else:
        success(line)

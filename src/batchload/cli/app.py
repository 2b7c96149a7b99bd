"""Main Typer application, the entry point for the ``batchload`` CLI."""

from __future__ import annotations

import typer

from batchload import __version__
from batchload.cli.run import run_cmd

app = typer.Typer(
    name="batchload",
    help="Fire batches of concurrent HTTP requests at one URL and count the results.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("run", help="Run a batched load test against a URL.")(run_cmd)


def _version_callback(value: bool) -> None:
    """Print version and exit.

    Args:
        value: True if --version was passed.
    """
    if value:
        typer.echo(f"batchload {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """batchload: fire batches of concurrent HTTP requests at one URL."""

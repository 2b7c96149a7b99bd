"""``batchload run``: fire batches of requests at a URL with live progress."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from batchload._internal.config import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_METHOD,
    DEFAULT_TOTAL_REQUESTS,
    load_client_settings,
    resolve_config,
)
from batchload._internal.errors import BatchLoadError
from batchload.engine.runner import LoadRunner
from batchload.metrics.export import DEFAULT_LOGS_DIR, export_error_logs
from batchload.metrics.progress import format_progress_line

if TYPE_CHECKING:
    from batchload._internal.config import RunConfig
    from batchload.metrics.models import ProgressSnapshot, RunResult

console = Console(stderr=True)


def _banner(config: RunConfig) -> Panel:
    mode = (
        f"repeat for {config.duration:g}s"
        if config.repeat_until_deadline
        else "single pass"
    )
    return Panel(
        f"[bold]Target:[/bold]   {config.method.upper()} {config.url}\n"
        f"[bold]Requests:[/bold] {config.total_requests} per pass\n"
        f"[bold]Batch:[/bold]    {config.batch_size}\n"
        f"[bold]Body:[/bold]     {len(config.body)} bytes\n"
        f"[bold]Mode:[/bold]     {mode}",
        title="batchload",
        border_style="cyan",
    )


def _print_summary(result: RunResult) -> None:
    """Print the final per-status table and run totals.

    Args:
        result: Completed run result.
    """
    summary = result.summary
    processed = summary.total_processed

    status_table = Table(
        title="Final Results",
        show_header=True,
        header_style="bold green",
        expand=True,
    )
    status_table.add_column("Status", style="bold")
    status_table.add_column("Count", justify="right")
    status_table.add_column("Share", justify="right")
    for status in summary.statuses.values():
        share = status.count / processed * 100 if processed else 0.0
        status_table.add_row(str(status.status_code), str(status.count), f"{share:.2f}%")
    console.print(status_table)

    totals = Table(show_header=False, expand=True)
    totals.add_column("Metric", style="bold")
    totals.add_column("Value", justify="right")
    totals.add_row("Processed", f"{processed}")
    totals.add_row("Success Rate", f"{summary.success_rate:.2f}%")
    totals.add_row("Passes", str(result.passes_completed))
    totals.add_row("Batches", str(result.batches_completed))
    totals.add_row("Mean Latency", f"{summary.latency.mean:.1f}ms")
    totals.add_row("p50 Latency", f"{summary.latency.p50:.1f}ms")
    totals.add_row("p95 Latency", f"{summary.latency.p95:.1f}ms")
    totals.add_row("p99 Latency", f"{summary.latency.p99:.1f}ms")
    if result.stop_reason is not None:
        totals.add_row("Stopped", result.stop_reason)
    totals.add_row("Total Time", f"{summary.elapsed_seconds:.3f}s")
    console.print(totals)


def run_cmd(
    url: str = typer.Option(
        "",
        "--url",
        help="Target URL.",
    ),
    method: str = typer.Option(
        DEFAULT_METHOD,
        "--method",
        "-m",
        help="HTTP method (GET, POST, PUT, ...).",
    ),
    total_requests: int = typer.Option(
        DEFAULT_TOTAL_REQUESTS,
        "--requests",
        "-n",
        help="Total number of requests per pass.",
        min=1,
    ),
    batch_size: int = typer.Option(
        DEFAULT_BATCH_SIZE,
        "--batch",
        "-B",
        help="Requests issued concurrently per batch.",
        min=1,
    ),
    body_file: Path | None = typer.Option(
        None,
        "--body",
        "-b",
        help="File whose contents are sent as the request body (JSON).",
    ),
    repeat: bool = typer.Option(
        False,
        "--repeat",
        "-r",
        help="Repeat full passes until --duration elapses.",
    ),
    duration: float = typer.Option(
        0.0,
        "--duration",
        "-t",
        help="Duration in seconds for repeat mode.",
    ),
    logs_dir: Path = typer.Option(
        DEFAULT_LOGS_DIR,
        "--logs-dir",
        help="Directory for non-200 response logs.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
    log_json: bool = typer.Option(
        False,
        "--log-json",
        help="Emit log records as one JSON object per line.",
    ),
) -> None:
    """Send batches of concurrent requests and report status counts."""
    try:
        config = resolve_config(
            url,
            method=method,
            total_requests=total_requests,
            batch_size=batch_size,
            body_file=body_file,
            repeat=repeat,
            duration=duration,
        )
        client_settings = load_client_settings()
    except BatchLoadError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(_banner(config))

    try:
        with Live(
            Text("Starting..."),
            console=console,
            auto_refresh=False,
        ) as live:

            def _on_progress(snapshot: ProgressSnapshot) -> None:
                live.update(Text(format_progress_line(snapshot)), refresh=True)

            load_runner = LoadRunner(
                config,
                client_settings=client_settings,
                on_progress=_on_progress,
                log_level=logging.DEBUG if verbose else logging.INFO,
                log_json=log_json,
            )
            result = load_runner.run()
            live.update(
                Text(format_progress_line(result.summary.as_progress())),
                refresh=True,
            )
    except BatchLoadError as exc:
        console.print(f"[red]Load run failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    console.print()
    _print_summary(result)

    for export in export_error_logs(result.summary, logs_dir):
        if export.ok:
            console.print(f"response {export.status_code}: is saved in {export.path}")
        else:
            console.print(
                f"[yellow]response {export.status_code}: not saved:[/yellow] {export.error}"
            )


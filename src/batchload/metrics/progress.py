"""Formatting of the single-line live progress display."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from batchload.metrics.models import ProgressSnapshot


def format_progress_line(snapshot: ProgressSnapshot) -> str:
    """Render a progress snapshot as one line.

    Example::

        Processed: 250/1000 (96.00% success) | Status 200: 240/1000 | Status 500: 10/1000 | Time: 3s

    Args:
        snapshot: The snapshot to render.

    Returns:
        The progress line, without a trailing newline.
    """
    parts = [
        f"Processed: {snapshot.processed}/{snapshot.target_total} "
        f"({snapshot.success_rate:.2f}% success)"
    ]
    parts.extend(
        f"Status {code}: {count}/{snapshot.target_total}"
        for code, count in snapshot.status_counts
    )
    parts.append(f"Time: {int(snapshot.elapsed_seconds)}s")
    return " | ".join(parts)

"""Export of non-200 response payloads to timestamped log files."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from batchload._internal.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from batchload.metrics.models import RunSummary

logger = get_logger("metrics.export")

DEFAULT_LOGS_DIR = Path("logs")


@dataclass(frozen=True)
class LogExport:
    """Result of exporting one status's payload.

    Attributes:
        status_code: Status whose first-seen payload was exported.
        path: File written, or None if the export failed.
        error: Failure description, or None on success.
    """

    status_code: int
    path: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Return True if the file was written."""
        return self.error is None


def error_log_filename(status_code: int, timestamp_ms: int) -> str:
    """Return the log file name for ``status_code`` at ``timestamp_ms``."""
    return f"Error{status_code}_{timestamp_ms}.txt"


def export_error_logs(
    summary: RunSummary,
    logs_dir: Path = DEFAULT_LOGS_DIR,
    *,
    clock: Callable[[], float] = time.time,
) -> list[LogExport]:
    """Write each non-200 status's first-seen payload to its own file.

    Files are named ``Error<status>_<unix millis>.txt`` and hold the
    payload byte for byte. Failures are logged and reported in the result;
    they never raise.

    Args:
        summary: Final run summary.
        logs_dir: Directory to write into, created if missing.
        clock: Wall clock returning Unix seconds, replaceable in tests.

    Returns:
        One entry per exported status, ascending by status.
    """
    statuses = summary.error_statuses()
    if not statuses:
        return []

    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        error = f"Error creating logs directory: {exc}"
        logger.warning(error)
        return [LogExport(status_code=s.status_code, error=error) for s in statuses]

    exports: list[LogExport] = []
    for status in statuses:
        timestamp_ms = int(clock() * 1000)
        path = logs_dir / error_log_filename(status.status_code, timestamp_ms)
        try:
            path.write_bytes(status.first_payload)
        except OSError as exc:
            error = f"Error writing to log file: {exc}"
            logger.warning("Status %d: %s", status.status_code, error)
            exports.append(LogExport(status_code=status.status_code, error=error))
            continue
        logger.debug("Saved status %d payload to %s", status.status_code, path)
        exports.append(LogExport(status_code=status.status_code, path=path))

    return exports

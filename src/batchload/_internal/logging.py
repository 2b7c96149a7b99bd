"""Logging setup for batchload.

Log records go to stderr so they share the stream with the live progress
line and never mix with anything a caller pipes from stdout.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

_ROOT_LOGGER = "batchload"
_HUMAN_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_HUMAN_DATEFMT = "%Y-%m-%d %H:%M:%S"

# aiohttp logs connection churn at DEBUG; under load that drowns our own output.
_NOISY_LOGGERS = ("aiohttp.client", "aiohttp.internal")


class _JsonFormatter(logging.Formatter):
    """One-line JSON log formatter.

    Keys: timestamp, level, logger, message, and ``task`` when the record
    was emitted from inside an asyncio task.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, str] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        task_name = getattr(record, "taskName", None)
        if task_name:
            entry["task"] = task_name
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(
    level: int = logging.INFO,
    *,
    json_format: bool = False,
) -> logging.Logger:
    """Configure and return the ``batchload`` root logger.

    Repeated calls only adjust the level of the existing handler, so the
    CLI and the runner can both call this without duplicating output.

    Args:
        level: Logging level (e.g., ``logging.DEBUG``). Defaults to INFO.
        json_format: Emit one JSON object per line instead of plain text.

    Returns:
        The configured ``batchload`` logger.
    """
    logger = logging.getLogger(_ROOT_LOGGER)
    logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if json_format:
        formatter: logging.Formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter(_HUMAN_FORMAT, datefmt=_HUMAN_DATEFMT)

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``batchload`` namespace.

    Args:
        name: Dotted suffix, e.g. ``get_logger("engine.dispatcher")`` returns
            ``logging.getLogger("batchload.engine.dispatcher")``.

    Returns:
        The child logger.
    """
    return logging.getLogger(f"{_ROOT_LOGGER}.{name}")

"""Run configuration and client settings for batchload."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from batchload._internal.errors import ConfigError

DEFAULT_METHOD = "GET"
DEFAULT_TOTAL_REQUESTS = 100_000
DEFAULT_BATCH_SIZE = 1000


@dataclass(frozen=True)
class RunConfig:
    """Resolved, immutable parameters of one load run.

    Attributes:
        url: Target URL every request is sent to.
        method: HTTP method (upper-cased when the request is built).
        total_requests: Request budget of one pass.
        batch_size: Requests issued concurrently per batch. This is also the
            effective concurrency bound of the run.
        body: Request body bytes, empty when no body file was given.
        repeat: Re-run full passes until ``duration`` elapses.
        duration: Repeat-mode duration in seconds. Ignored unless
            ``repeat`` is set.
    """

    url: str
    method: str = DEFAULT_METHOD
    total_requests: int = DEFAULT_TOTAL_REQUESTS
    batch_size: int = DEFAULT_BATCH_SIZE
    body: bytes = b""
    repeat: bool = False
    duration: float = 0.0

    @property
    def repeat_until_deadline(self) -> bool:
        """Return True when passes repeat until a duration timer fires."""
        return self.repeat and self.duration > 0


@dataclass(frozen=True)
class ClientSettings:
    """Connection and timeout settings shared by every pooled client.

    Attributes:
        request_timeout: Upper bound for one whole request, in seconds.
        connect_timeout: Upper bound for establishing a connection.
        idle_timeout: How long an idle keep-alive connection is kept open.
        max_connections: Bound on open connections (0 means unbounded).
        max_connections_per_host: Per-host bound (0 means unbounded).
    """

    request_timeout: float = 30.0
    connect_timeout: float = 30.0
    idle_timeout: float = 30.0
    max_connections: int = 0
    max_connections_per_host: int = 0


def load_body(path: str | Path | None) -> bytes:
    """Read the request body from ``path``.

    Args:
        path: Body file path, or None/empty for an empty body.

    Returns:
        The file contents, or ``b""`` when no path was given.

    Raises:
        ConfigError: If the file cannot be read.
    """
    if not path:
        return b""
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        msg = f"Error reading body file: {exc}"
        raise ConfigError(msg) from exc


def resolve_config(
    url: str,
    *,
    method: str = DEFAULT_METHOD,
    total_requests: int = DEFAULT_TOTAL_REQUESTS,
    batch_size: int = DEFAULT_BATCH_SIZE,
    body_file: str | Path | None = None,
    repeat: bool = False,
    duration: float = 0.0,
) -> RunConfig:
    """Validate raw run parameters and build a RunConfig.

    Args:
        url: Target URL.
        method: HTTP method.
        total_requests: Request budget of one pass.
        batch_size: Requests per batch.
        body_file: Optional path of the request body file.
        repeat: Enable repeat mode.
        duration: Repeat-mode duration in seconds.

    Returns:
        The resolved configuration.

    Raises:
        ConfigError: If the URL is missing, a count is not positive, the
            method is blank, or the body file cannot be read.
    """
    url = url.strip()
    if not url:
        msg = "URL is required"
        raise ConfigError(msg)

    method = method.strip()
    if not method:
        msg = "HTTP method must not be empty"
        raise ConfigError(msg)

    if total_requests < 1:
        msg = f"Total requests must be >= 1, got: {total_requests}"
        raise ConfigError(msg)

    if batch_size < 1:
        msg = f"Batch size must be >= 1, got: {batch_size}"
        raise ConfigError(msg)

    return RunConfig(
        url=url,
        method=method,
        total_requests=total_requests,
        batch_size=batch_size,
        body=load_body(body_file),
        repeat=repeat,
        duration=duration,
    )


def _env_positive_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        msg = f"{name} must be a number, got: {raw!r}"
        raise ConfigError(msg) from None
    if value <= 0:
        msg = f"{name} must be positive, got: {value}"
        raise ConfigError(msg)
    return value


def _env_non_negative_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        msg = f"{name} must be an integer, got: {raw!r}"
        raise ConfigError(msg) from None
    if value < 0:
        msg = f"{name} must be >= 0, got: {value}"
        raise ConfigError(msg)
    return value


def load_client_settings() -> ClientSettings:
    """Load client settings from environment variables with defaults.

    Environment variables:
        BATCHLOAD_TIMEOUT: Request timeout in seconds (default: 30.0).
        BATCHLOAD_CONNECT_TIMEOUT: Connect timeout in seconds (default: 30.0).
        BATCHLOAD_IDLE_TIMEOUT: Idle connection timeout in seconds (default: 30.0).
        BATCHLOAD_MAX_CONNECTIONS: Open connection bound, 0 for none (default: 0).
        BATCHLOAD_MAX_CONNECTIONS_PER_HOST: Per-host bound, 0 for none (default: 0).

    Returns:
        Populated ClientSettings instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    defaults = ClientSettings()
    return ClientSettings(
        request_timeout=_env_positive_float("BATCHLOAD_TIMEOUT", defaults.request_timeout),
        connect_timeout=_env_positive_float(
            "BATCHLOAD_CONNECT_TIMEOUT", defaults.connect_timeout
        ),
        idle_timeout=_env_positive_float("BATCHLOAD_IDLE_TIMEOUT", defaults.idle_timeout),
        max_connections=_env_non_negative_int(
            "BATCHLOAD_MAX_CONNECTIONS", defaults.max_connections
        ),
        max_connections_per_host=_env_non_negative_int(
            "BATCHLOAD_MAX_CONNECTIONS_PER_HOST", defaults.max_connections_per_host
        ),
    )

"""Data passed between the dispatcher, the workers and the aggregator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from batchload._internal.config import RunConfig
    from batchload._internal.types import Headers, StatusCode

# Status reported for requests that never produced an HTTP response.
FAILURE_STATUS = 500
SUCCESS_STATUS = 200
CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class RequestSpec:
    """The request every worker sends, shared read-only for the whole run.

    Attributes:
        method: HTTP method as configured; upper-cased when sent.
        url: Target URL.
        body: Request body, possibly empty.
        content_type: Value of the ``Content-Type`` header.
    """

    method: str
    url: str
    body: bytes = b""
    content_type: str = CONTENT_TYPE

    @classmethod
    def from_config(cls, config: RunConfig) -> RequestSpec:
        """Build the request from a resolved run configuration."""
        return cls(method=config.method, url=config.url, body=config.body)

    @property
    def headers(self) -> Headers:
        """Return the fixed request headers."""
        return {"Content-Type": self.content_type}


@dataclass(frozen=True)
class Outcome:
    """Result of exactly one request attempt.

    Attributes:
        status_code: Real HTTP status, or ``FAILURE_STATUS`` for a
            synthetic outcome.
        payload: Response body, or the UTF-8 error description.
        latency_ms: Time from checkout to fully read body (or failure).
        error: Error description for synthetic outcomes, None otherwise.
    """

    status_code: StatusCode
    payload: bytes
    latency_ms: float = 0.0
    error: str | None = None

    @property
    def synthetic(self) -> bool:
        """Return True if no HTTP response backs this outcome."""
        return self.error is not None

    @classmethod
    def failure(cls, exc: BaseException, latency_ms: float = 0.0) -> Outcome:
        """Build the synthetic outcome for a local request failure.

        Args:
            exc: The exception that aborted the request.
            latency_ms: Time spent before the failure.

        Returns:
            An outcome carrying ``FAILURE_STATUS`` and the error text.
        """
        error = f"{type(exc).__name__}: {exc}"
        return cls(
            status_code=FAILURE_STATUS,
            payload=error.encode("utf-8"),
            latency_ms=latency_ms,
            error=error,
        )

"""Result dataclasses produced by the aggregator and the runner."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from batchload.engine.protocol import SUCCESS_STATUS

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = [
    "LatencySummary",
    "ProgressSnapshot",
    "RunResult",
    "RunSummary",
    "StatusSummary",
]


def _success_rate(success_count: int, total: int) -> float:
    return success_count / total * 100 if total > 0 else 0.0


@dataclass(frozen=True)
class StatusSummary:
    """Final tally for one status code.

    Attributes:
        status_code: HTTP (or synthetic) status code.
        count: Outcomes seen with this status.
        first_payload: Payload of the first outcome seen with this status.
    """

    status_code: int
    count: int
    first_payload: bytes


@dataclass(frozen=True)
class ProgressSnapshot:
    """Point-in-time view rendered as the live progress line.

    Attributes:
        processed: Outcomes consumed so far.
        target_total: Request budget of one pass.
        status_counts: ``(status, count)`` pairs in ascending status order.
        elapsed_seconds: Seconds since the run started.
    """

    processed: int
    target_total: int
    status_counts: tuple[tuple[int, int], ...]
    elapsed_seconds: float

    @property
    def success_rate(self) -> float:
        """Return the share of 200 responses as a percentage."""
        success = dict(self.status_counts).get(SUCCESS_STATUS, 0)
        return _success_rate(success, self.processed)


@dataclass(frozen=True)
class LatencySummary:
    """Latency distribution in milliseconds over the whole run."""

    mean: float = 0.0
    p50: float = 0.0
    p95: float = 0.0
    p99: float = 0.0
    max: float = 0.0


@dataclass(frozen=True)
class RunSummary:
    """Frozen aggregate state at the end of a run.

    Attributes:
        target_total: Request budget of one pass.
        total_processed: Outcomes consumed over the whole run.
        elapsed_seconds: Seconds from run start to the final drain.
        statuses: Read-only per-status tallies keyed by status, ascending.
        latency: Latency distribution over all outcomes.
    """

    target_total: int
    total_processed: int
    elapsed_seconds: float
    statuses: Mapping[int, StatusSummary] = field(default_factory=dict)
    latency: LatencySummary = field(default_factory=LatencySummary)

    def __post_init__(self) -> None:
        object.__setattr__(self, "statuses", MappingProxyType(dict(self.statuses)))

    @property
    def success_rate(self) -> float:
        """Return the share of 200 responses as a percentage."""
        success = self.statuses.get(SUCCESS_STATUS)
        return _success_rate(success.count if success else 0, self.total_processed)

    def count(self, status_code: int) -> int:
        """Return the number of outcomes seen with ``status_code``."""
        summary = self.statuses.get(status_code)
        return summary.count if summary else 0

    def error_statuses(self) -> list[StatusSummary]:
        """Return every non-200 status summary, ascending."""
        return [s for code, s in self.statuses.items() if code != SUCCESS_STATUS]

    def as_progress(self) -> ProgressSnapshot:
        """Return the final state in progress-line form."""
        return ProgressSnapshot(
            processed=self.total_processed,
            target_total=self.target_total,
            status_counts=tuple((s.status_code, s.count) for s in self.statuses.values()),
            elapsed_seconds=self.elapsed_seconds,
        )


@dataclass(frozen=True)
class RunResult:
    """Everything a finished run hands to output code.

    Attributes:
        summary: Final aggregate snapshot.
        passes_completed: Full passes over the request budget.
        batches_completed: Batches that ran to their barrier.
        requests_dispatched: Requests started across all passes.
        stop_reason: Why dispatch stopped early, None if it ran out of work.
    """

    summary: RunSummary
    passes_completed: int
    batches_completed: int
    requests_dispatched: int
    stop_reason: str | None = None

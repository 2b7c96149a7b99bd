"""Cumulative per-status counters owned by the aggregator."""

from __future__ import annotations

import bisect
from dataclasses import dataclass
from typing import TYPE_CHECKING

from batchload.metrics.histogram import LatencyHistogram
from batchload.metrics.models import LatencySummary, StatusSummary

if TYPE_CHECKING:
    from batchload._internal.types import StatusCode
    from batchload.engine.protocol import Outcome


@dataclass
class StatusRecord:
    """Running tally for one status code."""

    count: int
    first_payload: bytes


class AggregateState:
    """Per-status counts, the sorted list of seen statuses, and a total.

    Not thread-safe on its own; the aggregator serializes access.

    Invariants after every ``record()``:
        - ``total_processed`` equals the sum of all counts.
        - ``status_codes`` is ascending and free of duplicates.
        - a status is in ``status_codes`` iff it has a record.
    """

    def __init__(self) -> None:
        self._records: dict[StatusCode, StatusRecord] = {}
        self._order: list[StatusCode] = []
        self._latency = LatencyHistogram()
        self.total_processed = 0

    @property
    def status_codes(self) -> tuple[StatusCode, ...]:
        """Return the distinct statuses seen so far, ascending."""
        return tuple(self._order)

    def record(self, outcome: Outcome) -> None:
        """Fold one outcome into the state.

        The payload is only kept for the first outcome of each status.

        Args:
            outcome: The outcome to count.
        """
        record = self._records.get(outcome.status_code)
        if record is None:
            record = StatusRecord(count=0, first_payload=outcome.payload)
            self._records[outcome.status_code] = record
            bisect.insort(self._order, outcome.status_code)
        record.count += 1
        self.total_processed += 1
        self._latency.record(outcome.latency_ms)

    def count(self, status_code: StatusCode) -> int:
        """Return the count for ``status_code`` (0 if never seen)."""
        record = self._records.get(status_code)
        return record.count if record else 0

    def first_payload(self, status_code: StatusCode) -> bytes | None:
        """Return the first payload seen for ``status_code``, if any."""
        record = self._records.get(status_code)
        return record.first_payload if record else None

    def status_counts(self) -> tuple[tuple[StatusCode, int], ...]:
        """Return ``(status, count)`` pairs in ascending status order."""
        return tuple((code, self._records[code].count) for code in self._order)

    def status_summaries(self) -> dict[StatusCode, StatusSummary]:
        """Return an immutable copy of every record, ascending by status."""
        return {
            code: StatusSummary(
                status_code=code,
                count=self._records[code].count,
                first_payload=self._records[code].first_payload,
            )
            for code in self._order
        }

    def latency_summary(self) -> LatencySummary:
        """Return the latency distribution recorded so far."""
        return LatencySummary(
            mean=self._latency.mean(),
            p50=self._latency.percentile(50.0),
            p95=self._latency.percentile(95.0),
            p99=self._latency.percentile(99.0),
            max=self._latency.max(),
        )

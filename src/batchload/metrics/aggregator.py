"""Single consumer of worker outcomes.

The ``Aggregator`` is the only code that touches the run's
``AggregateState``. Workers hand it outcomes through an ``asyncio.Queue``;
it folds each one into the state and, at most once per tick, publishes a
``ProgressSnapshot`` for the live display.
"""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING

from batchload._internal.logging import get_logger
from batchload.metrics.models import ProgressSnapshot, RunSummary
from batchload.metrics.state import AggregateState

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Callable

    from batchload.engine.protocol import Outcome

logger = get_logger("metrics.aggregator")

DEFAULT_TICK_INTERVAL = 0.1


class Aggregator:
    """Drains the outcome queue and maintains cumulative per-status counts.

    ``None`` on the queue is the close sentinel: ``run()`` returns once it
    has consumed every outcome queued before ``close()``.

    Progress rendering is sampled, not scheduled. After each outcome the
    aggregator checks, without waiting, whether a tick is due; if the
    queue is quiet nothing is rendered, and skipped ticks are not made up.

    A ``threading.Lock`` guards the state so ``snapshot()`` can be called
    from another thread (e.g. a display refresh thread) while the event
    loop keeps consuming.

    Attributes:
        target_total: Request budget of one pass, shown in progress.
        tick_interval: Minimum seconds between progress callbacks.
    """

    def __init__(
        self,
        outcomes: asyncio.Queue[Outcome | None],
        *,
        target_total: int,
        on_progress: Callable[[ProgressSnapshot], None] | None = None,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        start_time: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the aggregator.

        Args:
            outcomes: Queue the workers report into.
            target_total: Request budget of one pass.
            on_progress: Called with a snapshot whenever a tick is due.
            tick_interval: Minimum seconds between progress callbacks.
            start_time: Clock reading of run start. Defaults to now.
            clock: Monotonic clock, replaceable in tests.
        """
        self._outcomes = outcomes
        self.target_total = target_total
        self.tick_interval = tick_interval
        self._on_progress = on_progress
        self._clock = clock
        self._start_time = clock() if start_time is None else start_time
        self._last_tick = self._start_time

        self._state = AggregateState()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def total_processed(self) -> int:
        """Return the number of outcomes consumed so far."""
        with self._lock:
            return self._state.total_processed

    async def run(self) -> None:
        """Consume outcomes until the close sentinel arrives."""
        logger.debug("Aggregator started")
        while True:
            outcome = await self._outcomes.get()
            if outcome is None:
                break
            self._consume(outcome)
        logger.debug("Aggregator drained %d outcomes", self.total_processed)

    async def close(self) -> None:
        """Queue the close sentinel behind every outcome sent so far.

        Call only after all producers have finished.
        """
        if self._closed:
            return
        self._closed = True
        await self._outcomes.put(None)

    def snapshot(self) -> ProgressSnapshot:
        """Return the current progress."""
        with self._lock:
            return self._snapshot_locked()

    def final_summary(self) -> RunSummary:
        """Freeze the state into a RunSummary.

        Returns:
            Summary of every outcome consumed, with elapsed time measured
            from run start to now.
        """
        with self._lock:
            return RunSummary(
                target_total=self.target_total,
                total_processed=self._state.total_processed,
                elapsed_seconds=self._clock() - self._start_time,
                statuses=self._state.status_summaries(),
                latency=self._state.latency_summary(),
            )

    def _consume(self, outcome: Outcome) -> None:
        progress: ProgressSnapshot | None = None
        with self._lock:
            self._state.record(outcome)
            now = self._clock()
            if now - self._last_tick >= self.tick_interval:
                self._last_tick = now
                progress = self._snapshot_locked(now)

        if progress is not None and self._on_progress is not None:
            try:
                self._on_progress(progress)
            except Exception:
                # The queue must keep draining or workers block on put().
                logger.exception("Progress callback failed")

    def _snapshot_locked(self, now: float | None = None) -> ProgressSnapshot:
        if now is None:
            now = self._clock()
        return ProgressSnapshot(
            processed=self._state.total_processed,
            target_total=self.target_total,
            status_counts=self._state.status_counts(),
            elapsed_seconds=now - self._start_time,
        )

"""Batch dispatcher: runs the request budget as a series of joined batches."""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from batchload._internal.logging import get_logger
from batchload.engine.worker import execute_request

if TYPE_CHECKING:
    from collections.abc import Callable

    from batchload.client.pool import ClientPool
    from batchload.engine.protocol import Outcome, RequestSpec
    from batchload.engine.timer import StopSignal

logger = get_logger("engine.dispatcher")

DEFAULT_REQUEST_STAGGER = 0.001
DEFAULT_BATCH_PAUSE = 0.1


@dataclass(frozen=True)
class Batch:
    """One batch of a pass.

    Attributes:
        pass_index: Zero-based pass this batch belongs to.
        index: Zero-based position of the batch within its pass.
        size: Number of requests in the batch.
    """

    pass_index: int
    index: int
    size: int


@dataclass
class DispatchStats:
    """Counters describing how much work the dispatcher started.

    Attributes:
        passes_completed: Full passes over the request budget.
        batches_completed: Batches that ran to their barrier.
        requests_dispatched: Worker tasks launched.
    """

    passes_completed: int = 0
    batches_completed: int = 0
    requests_dispatched: int = 0


def plan_batches(total_requests: int, batch_size: int) -> list[int]:
    """Return the batch sizes of one pass.

    There are ``ceil(total / batch_size)`` batches; all but the last hold
    ``batch_size`` requests, the last holds the remainder.

    Args:
        total_requests: Request budget of the pass.
        batch_size: Maximum requests per batch.

    Returns:
        List of batch sizes summing to ``total_requests``.

    Raises:
        ValueError: If either argument is not positive.
    """
    if total_requests < 1:
        msg = f"total_requests must be >= 1, got {total_requests}"
        raise ValueError(msg)
    if batch_size < 1:
        msg = f"batch_size must be >= 1, got {batch_size}"
        raise ValueError(msg)

    count = math.ceil(total_requests / batch_size)
    last = total_requests - batch_size * (count - 1)
    return [batch_size] * (count - 1) + [last]


class BatchDispatcher:
    """Drives the run batch by batch.

    Each batch launches one worker task per request inside an
    ``asyncio.TaskGroup`` and waits for all of them before the next batch
    starts. The stop signal is only consulted between batches, so a batch
    that has started always finishes.

    Attributes:
        total_requests: Request budget of one pass.
        batch_size: Maximum requests per batch.
        repeat: Keep starting new passes until the stop signal fires.
    """

    def __init__(
        self,
        pool: ClientPool,
        spec: RequestSpec,
        outcomes: asyncio.Queue[Outcome | None],
        *,
        total_requests: int,
        batch_size: int,
        repeat: bool = False,
        stop_signal: StopSignal | None = None,
        request_stagger: float = DEFAULT_REQUEST_STAGGER,
        batch_pause: float = DEFAULT_BATCH_PAUSE,
        on_batch: Callable[[Batch], None] | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            pool: Client pool shared by all workers.
            spec: The request every worker sends.
            outcomes: Queue the workers report into.
            total_requests: Request budget of one pass.
            batch_size: Maximum requests per batch.
            repeat: Repeat passes until ``stop_signal`` fires. Without a
                stop signal there is nothing to end the repetition, so a
                single pass runs.
            stop_signal: Checked before every batch.
            request_stagger: Seconds each worker lingers after reporting.
            batch_pause: Seconds to pause after each batch barrier.
            on_batch: Called with each batch after its barrier.
        """
        self._batch_sizes = plan_batches(total_requests, batch_size)
        self.total_requests = total_requests
        self.batch_size = batch_size
        self.repeat = repeat and stop_signal is not None
        self._pool = pool
        self._spec = spec
        self._outcomes = outcomes
        self._stop_signal = stop_signal
        self._request_stagger = request_stagger
        self._batch_pause = batch_pause
        self._on_batch = on_batch
        self._stats = DispatchStats()

    @property
    def stats(self) -> DispatchStats:
        """Return the live dispatch counters."""
        return self._stats

    def _stop_requested(self) -> bool:
        return self._stop_signal is not None and self._stop_signal.fired

    async def run(self) -> DispatchStats:
        """Dispatch batches until the budget is spent or a stop is requested.

        Returns:
            Counters for the work that was started.
        """
        logger.debug(
            "Dispatching %d requests per pass in %d batches of up to %d (repeat=%s)",
            self.total_requests,
            len(self._batch_sizes),
            self.batch_size,
            self.repeat,
        )

        pass_index = 0
        while True:
            for index, size in enumerate(self._batch_sizes):
                if self._stop_requested():
                    logger.debug(
                        "Stop observed before batch %d of pass %d", index, pass_index
                    )
                    return self._stats

                batch = Batch(pass_index=pass_index, index=index, size=size)
                await self._run_batch(batch)
                await asyncio.sleep(self._batch_pause)

            self._stats.passes_completed += 1
            pass_index += 1
            if not self.repeat:
                return self._stats

    async def _run_batch(self, batch: Batch) -> None:
        async with asyncio.TaskGroup() as group:
            for _ in range(batch.size):
                group.create_task(
                    execute_request(
                        self._pool,
                        self._spec,
                        self._outcomes,
                        stagger=self._request_stagger,
                    )
                )
        self._stats.batches_completed += 1
        self._stats.requests_dispatched += batch.size

        logger.debug(
            "Batch %d of pass %d complete (%d requests)",
            batch.index,
            batch.pass_index,
            batch.size,
        )
        if self._on_batch is not None:
            self._on_batch(batch)

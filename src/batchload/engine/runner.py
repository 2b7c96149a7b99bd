"""Top-level load run orchestrator."""

from __future__ import annotations

import asyncio
import contextlib
import signal
import sys
import time
from typing import TYPE_CHECKING, Any

from batchload._internal.errors import EngineError
from batchload._internal.logging import get_logger, setup_logging
from batchload.client.pool import ClientPool
from batchload.engine.dispatcher import (
    DEFAULT_BATCH_PAUSE,
    DEFAULT_REQUEST_STAGGER,
    BatchDispatcher,
)
from batchload.engine.protocol import RequestSpec
from batchload.engine.timer import DurationTimer, StopSignal
from batchload.metrics.aggregator import DEFAULT_TICK_INTERVAL, Aggregator
from batchload.metrics.models import RunResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from batchload._internal.config import ClientSettings, RunConfig
    from batchload.engine.dispatcher import Batch, DispatchStats
    from batchload.engine.protocol import Outcome
    from batchload.metrics.models import ProgressSnapshot

logger = get_logger("engine.runner")


def _loop_factory() -> Callable[[], asyncio.AbstractEventLoop] | None:
    """Return uvloop's loop factory when it can be used.

    Falls back to the default asyncio event loop on Windows or if uvloop
    is not installed.
    """
    if sys.platform == "win32":
        return None

    try:
        import uvloop
    except ImportError:
        logger.debug("uvloop not available, using default asyncio event loop")
        return None

    logger.debug("Using uvloop event loop")
    return uvloop.new_event_loop


class LoadRunner:
    """Runs one load test described by a RunConfig.

    Wires the client pool, dispatcher, aggregator and (in repeat mode)
    the duration timer, and turns SIGINT/SIGTERM into a graceful stop at
    the next batch boundary.

    Attributes:
        config: The resolved run configuration.
    """

    def __init__(
        self,
        config: RunConfig,
        *,
        client_settings: ClientSettings | None = None,
        on_progress: Callable[[ProgressSnapshot], None] | None = None,
        on_batch: Callable[[Batch], None] | None = None,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        request_stagger: float = DEFAULT_REQUEST_STAGGER,
        batch_pause: float = DEFAULT_BATCH_PAUSE,
        handle_signals: bool = True,
        log_level: int = 20,
        log_json: bool = False,
    ) -> None:
        """Initialize the runner.

        Args:
            config: The resolved run configuration.
            client_settings: Pool settings. Defaults to ``ClientSettings()``.
            on_progress: Called with each progress snapshot.
            on_batch: Called after each batch barrier.
            tick_interval: Minimum seconds between progress callbacks.
            request_stagger: Seconds each worker lingers after reporting.
            batch_pause: Seconds to pause between batches.
            handle_signals: Install SIGINT/SIGTERM handlers for the run.
            log_level: Logging level used by ``run()``.
            log_json: Emit one JSON object per log line from ``run()``.
        """
        self.config = config
        self._client_settings = client_settings
        self._on_progress = on_progress
        self._on_batch = on_batch
        self._tick_interval = tick_interval
        self._request_stagger = request_stagger
        self._batch_pause = batch_pause
        self._handle_signals = handle_signals
        self._log_level = log_level
        self._log_json = log_json

    def run(self) -> RunResult:
        """Run the load test on a fresh event loop and block until done.

        Returns:
            The run's final result.

        Raises:
            EngineError: If the engine fails unexpectedly.
        """
        setup_logging(level=self._log_level, json_format=self._log_json)
        with asyncio.Runner(loop_factory=_loop_factory()) as runner:
            return runner.run(self.run_async())

    async def run_async(self) -> RunResult:
        """Run the load test on the current event loop.

        Returns:
            The run's final result.

        Raises:
            EngineError: If the engine fails unexpectedly.
        """
        config = self.config
        logger.info(
            "Starting run: %s %s, requests=%d, batch=%d, repeat=%s, duration=%gs",
            config.method.upper(),
            config.url,
            config.total_requests,
            config.batch_size,
            config.repeat,
            config.duration,
        )

        start_time = time.monotonic()
        stop_signal = StopSignal()
        outcomes: asyncio.Queue[Outcome | None] = asyncio.Queue(maxsize=config.batch_size)
        aggregator = Aggregator(
            outcomes,
            target_total=config.total_requests,
            on_progress=self._on_progress,
            tick_interval=self._tick_interval,
            start_time=start_time,
        )
        timer = (
            DurationTimer(config.duration, stop_signal)
            if config.repeat_until_deadline
            else None
        )

        aggregator_task = asyncio.create_task(aggregator.run(), name="batchload-aggregator")
        signals_installed = self._install_signal_handlers(stop_signal)

        try:
            async with ClientPool(self._client_settings) as pool:
                dispatcher = BatchDispatcher(
                    pool,
                    RequestSpec.from_config(config),
                    outcomes,
                    total_requests=config.total_requests,
                    batch_size=config.batch_size,
                    repeat=config.repeat_until_deadline,
                    stop_signal=stop_signal,
                    request_stagger=self._request_stagger,
                    batch_pause=self._batch_pause,
                    on_batch=self._on_batch,
                )
                if timer is not None:
                    timer.start()
                dispatch_task = asyncio.create_task(
                    dispatcher.run(), name="batchload-dispatcher"
                )
                try:
                    stats = await self._dispatch_while_draining(dispatch_task, aggregator_task)
                finally:
                    await _cancel(dispatch_task)
        except Exception as exc:
            logger.exception("Load run failed")
            raise EngineError("Load run failed") from exc
        finally:
            if timer is not None:
                await timer.stop()
            if signals_installed:
                self._remove_signal_handlers()
            if not aggregator_task.done():
                await aggregator.close()
                await aggregator_task

        summary = aggregator.final_summary()
        logger.info(
            "Run complete: processed=%d, passes=%d, batches=%d, success=%.2f%%, "
            "elapsed=%.1fs",
            summary.total_processed,
            stats.passes_completed,
            stats.batches_completed,
            summary.success_rate,
            summary.elapsed_seconds,
        )

        return RunResult(
            summary=summary,
            passes_completed=stats.passes_completed,
            batches_completed=stats.batches_completed,
            requests_dispatched=stats.requests_dispatched,
            stop_reason=stop_signal.reason,
        )

    async def _dispatch_while_draining(
        self,
        dispatch_task: asyncio.Task[DispatchStats],
        aggregator_task: asyncio.Task[None],
    ) -> DispatchStats:
        """Wait for dispatch, failing fast if the aggregator exits first.

        Workers block on the bounded outcome queue once nothing drains it,
        so a dead aggregator would otherwise stall the batch barrier forever.

        Raises:
            RuntimeError: If the aggregator finished before dispatch did.
        """
        await asyncio.wait(
            {dispatch_task, aggregator_task},
            return_when=asyncio.FIRST_COMPLETED,
        )
        if dispatch_task.done():
            return dispatch_task.result()

        # Re-raises the aggregator's own failure when it has one.
        aggregator_task.result()
        msg = "Aggregator exited before dispatch finished"
        raise RuntimeError(msg)

    def _install_signal_handlers(self, stop_signal: StopSignal) -> bool:
        """Route SIGINT/SIGTERM to ``stop_signal``.

        Returns:
            True if handlers were installed and must be removed later.
        """
        if not self._handle_signals or sys.platform == "win32":
            return False

        loop = asyncio.get_running_loop()

        def _signal_handler(signum: int) -> None:
            stop_signal.fire(f"received {signal.Signals(signum).name}")

        try:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, _signal_handler, sig)
        except (RuntimeError, ValueError):
            # Only the main thread may install signal handlers.
            logger.debug("Signal handlers not installed outside the main thread")
            self._remove_signal_handlers()
            return False
        return True

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)


async def _cancel(task: asyncio.Task[Any]) -> None:
    """Cancel ``task`` if still pending and wait for it to unwind."""
    if task.done():
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task

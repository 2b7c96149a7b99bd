"""Stop signal and the repeat-mode duration timer."""

from __future__ import annotations

import asyncio
import contextlib

from batchload._internal.logging import get_logger

logger = get_logger("engine.timer")


class StopSignal:
    """One-way flag asking the dispatcher to stop starting batches.

    Firing is idempotent: only the first call records its reason, and
    once fired the signal stays fired.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def fired(self) -> bool:
        """Return True once the signal has been fired."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Return the reason passed to the first ``fire()`` call."""
        return self._reason

    def fire(self, reason: str) -> None:
        """Fire the signal.

        Args:
            reason: Short human-readable cause, kept only on the first call.
        """
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        logger.info("Stop requested: %s", reason)

    async def wait(self) -> None:
        """Wait until the signal fires."""
        await self._event.wait()


class DurationTimer:
    """Fires a StopSignal once, ``duration`` seconds after ``start()``."""

    def __init__(self, duration: float, signal: StopSignal) -> None:
        """Initialize the timer.

        Args:
            duration: Seconds to wait before firing. Must be positive.
            signal: Signal to fire.

        Raises:
            ValueError: If duration is not positive.
        """
        if duration <= 0:
            msg = f"duration must be positive, got {duration}"
            raise ValueError(msg)
        self.duration = duration
        self._signal = signal
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """Return True while the timer task is pending."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the timer task. Calling it twice is an error.

        Raises:
            RuntimeError: If the timer was already started.
        """
        if self._task is not None:
            msg = "DurationTimer already started"
            raise RuntimeError(msg)
        self._task = asyncio.create_task(self._run(), name="batchload-duration-timer")

    async def stop(self) -> None:
        """Cancel the timer if it has not fired yet."""
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task

    async def _run(self) -> None:
        await asyncio.sleep(self.duration)
        self._signal.fire(f"duration of {self.duration:g}s elapsed")

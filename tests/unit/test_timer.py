"""Tests for StopSignal and DurationTimer."""

from __future__ import annotations

import asyncio
import time

import pytest

from batchload.engine.timer import DurationTimer, StopSignal


class TestStopSignal:
    def test_starts_unfired(self):
        signal = StopSignal()
        assert signal.fired is False
        assert signal.reason is None

    def test_fire_is_one_way_and_idempotent(self):
        signal = StopSignal()
        signal.fire("first")
        signal.fire("second")

        assert signal.fired is True
        assert signal.reason == "first"
        assert signal.fired is True

    async def test_wait_returns_once_fired(self):
        signal = StopSignal()
        asyncio.get_running_loop().call_later(0.05, signal.fire, "later")
        await asyncio.wait_for(signal.wait(), timeout=2.0)
        assert signal.fired


class TestDurationTimer:
    @pytest.mark.parametrize("duration", [0, -1.0])
    def test_rejects_non_positive_duration(self, duration: float):
        with pytest.raises(ValueError, match="must be positive"):
            DurationTimer(duration, StopSignal())

    async def test_fires_after_duration(self):
        signal = StopSignal()
        timer = DurationTimer(0.2, signal)

        start = time.monotonic()
        timer.start()
        assert timer.running
        assert not signal.fired

        await asyncio.wait_for(signal.wait(), timeout=2.0)
        elapsed = time.monotonic() - start

        assert elapsed >= 0.15
        assert signal.reason is not None
        assert "0.2s" in signal.reason
        await timer.stop()

    async def test_stop_before_firing(self):
        signal = StopSignal()
        timer = DurationTimer(10.0, signal)
        timer.start()

        await timer.stop()

        assert not timer.running
        assert not signal.fired

    async def test_stop_without_start_is_noop(self):
        timer = DurationTimer(1.0, StopSignal())
        await timer.stop()
        assert not timer.running

    async def test_start_twice_raises(self):
        timer = DurationTimer(10.0, StopSignal())
        timer.start()
        with pytest.raises(RuntimeError, match="already started"):
            timer.start()
        await timer.stop()

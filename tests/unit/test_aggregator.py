"""Tests for the Aggregator."""

from __future__ import annotations

import asyncio
import random

from batchload.engine.protocol import Outcome
from batchload.metrics.aggregator import Aggregator
from batchload.metrics.models import ProgressSnapshot


class _FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _outcome(status: int, payload: bytes = b"") -> Outcome:
    return Outcome(status_code=status, payload=payload, latency_ms=1.0)


async def _run_with(aggregator: Aggregator, queue: asyncio.Queue[Outcome | None], outcomes):
    task = asyncio.create_task(aggregator.run())
    for outcome in outcomes:
        await queue.put(outcome)
    await aggregator.close()
    await asyncio.wait_for(task, timeout=5.0)


class TestAggregator:
    async def test_drains_everything_before_close(self):
        queue: asyncio.Queue[Outcome | None] = asyncio.Queue()
        aggregator = Aggregator(queue, target_total=10)

        await _run_with(aggregator, queue, [_outcome(200)] * 7 + [_outcome(404)] * 3)

        summary = aggregator.final_summary()
        assert summary.total_processed == 10
        assert summary.count(200) == 7
        assert summary.count(404) == 3
        assert queue.empty()

    async def test_outcomes_queued_before_run_are_consumed(self):
        queue: asyncio.Queue[Outcome | None] = asyncio.Queue()
        for _ in range(5):
            queue.put_nowait(_outcome(200))
        aggregator = Aggregator(queue, target_total=5)
        await aggregator.close()

        await asyncio.wait_for(aggregator.run(), timeout=5.0)

        assert aggregator.total_processed == 5

    async def test_close_is_idempotent(self):
        queue: asyncio.Queue[Outcome | None] = asyncio.Queue()
        aggregator = Aggregator(queue, target_total=1)
        await aggregator.close()
        await aggregator.close()
        assert queue.qsize() == 1

    async def test_first_payload_per_status(self):
        queue: asyncio.Queue[Outcome | None] = asyncio.Queue()
        aggregator = Aggregator(queue, target_total=3)

        await _run_with(
            aggregator,
            queue,
            [_outcome(503, b"first"), _outcome(503, b"second"), _outcome(200, b"ok")],
        )

        summary = aggregator.final_summary()
        assert list(summary.statuses) == [200, 503]
        assert summary.statuses[503].first_payload == b"first"

    async def test_totals_do_not_depend_on_arrival_order(self):
        statuses = [200] * 20 + [404] * 5 + [500] * 3
        shuffled = statuses[:]
        random.Random(3).shuffle(shuffled)

        results = []
        for order in (statuses, shuffled):
            queue: asyncio.Queue[Outcome | None] = asyncio.Queue()
            aggregator = Aggregator(queue, target_total=len(order))
            await _run_with(aggregator, queue, [_outcome(s) for s in order])
            results.append(aggregator.snapshot().status_counts)

        assert results[0] == results[1] == ((200, 20), (404, 5), (500, 3))

    async def test_progress_only_when_tick_due(self):
        clock = _FakeClock()
        queue: asyncio.Queue[Outcome | None] = asyncio.Queue()
        rendered: list[ProgressSnapshot] = []
        aggregator = Aggregator(
            queue,
            target_total=4,
            on_progress=rendered.append,
            tick_interval=1.0,
            clock=clock,
        )
        task = asyncio.create_task(aggregator.run())

        # Not due yet: nothing rendered.
        await queue.put(_outcome(200))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert rendered == []

        # Several ticks missed: exactly one render, no catching up.
        clock.now += 3.5
        await queue.put(_outcome(200))
        await queue.put(_outcome(500))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        clock.now += 1.0
        await queue.put(_outcome(200))
        await aggregator.close()
        await asyncio.wait_for(task, timeout=5.0)

        assert [s.processed for s in rendered] == [2, 4]
        assert rendered[0].elapsed_seconds == 3.5
        assert rendered[-1].status_counts == ((200, 3), (500, 1))
        assert rendered[-1].success_rate == 75.0

    async def test_progress_is_monotonic(self):
        queue: asyncio.Queue[Outcome | None] = asyncio.Queue()
        rendered: list[ProgressSnapshot] = []
        aggregator = Aggregator(
            queue, target_total=50, on_progress=rendered.append, tick_interval=0.0
        )

        await _run_with(aggregator, queue, [_outcome(200)] * 50)

        processed = [s.processed for s in rendered]
        assert processed == sorted(processed)
        assert processed[-1] == 50

    async def test_snapshot_before_any_outcome(self):
        queue: asyncio.Queue[Outcome | None] = asyncio.Queue()
        aggregator = Aggregator(queue, target_total=10)

        snapshot = aggregator.snapshot()

        assert snapshot.processed == 0
        assert snapshot.success_rate == 0.0
        assert snapshot.status_counts == ()

    async def test_elapsed_measured_from_start_time(self):
        clock = _FakeClock(now=50.0)
        queue: asyncio.Queue[Outcome | None] = asyncio.Queue()
        aggregator = Aggregator(queue, target_total=1, start_time=40.0, clock=clock)

        await _run_with(aggregator, queue, [_outcome(200)])

        assert aggregator.final_summary().elapsed_seconds == 10.0

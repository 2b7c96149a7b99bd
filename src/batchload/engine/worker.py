"""Request executor: one HTTP call in, exactly one Outcome out."""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

from batchload._internal.logging import get_logger
from batchload.engine.protocol import Outcome

if TYPE_CHECKING:
    from batchload.client.pool import ClientPool
    from batchload.engine.protocol import RequestSpec

logger = get_logger("engine.worker")


async def perform_request(pool: ClientPool, spec: RequestSpec) -> Outcome:
    """Send one request and turn whatever happens into an Outcome.

    Construction errors, transport errors, timeouts and body-read errors
    all become a synthetic failure outcome. Only task cancellation
    propagates.

    Args:
        pool: Pool to borrow a client from.
        spec: The request to send.

    Returns:
        The outcome of the attempt.
    """
    start = time.monotonic()
    try:
        async with pool.acquire() as client, client.request(
            spec.method.upper(),
            spec.url,
            data=spec.body or None,
            headers=spec.headers,
        ) as resp:
            payload = await resp.read()
            status_code = resp.status
    except Exception as exc:
        latency_ms = (time.monotonic() - start) * 1000
        logger.debug("Request to %s failed: %r", spec.url, exc)
        return Outcome.failure(exc, latency_ms)

    return Outcome(
        status_code=status_code,
        payload=payload,
        latency_ms=(time.monotonic() - start) * 1000,
    )


async def execute_request(
    pool: ClientPool,
    spec: RequestSpec,
    outcomes: asyncio.Queue[Outcome | None],
    *,
    stagger: float = 0.0,
) -> None:
    """Worker task body: perform one request and report its outcome.

    Args:
        pool: Pool to borrow a client from.
        spec: The request to send.
        outcomes: Queue consumed by the aggregator.
        stagger: Seconds to hold the task open after reporting, which
            spaces out consecutive batches slightly.
    """
    outcome = await perform_request(pool, spec)
    await outcomes.put(outcome)
    if stagger > 0:
        await asyncio.sleep(stagger)

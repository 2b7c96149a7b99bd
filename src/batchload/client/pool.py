"""Pool of reusable aiohttp client sessions over one shared connector."""

from __future__ import annotations

import contextlib
from collections import deque
from typing import TYPE_CHECKING

import aiohttp

from batchload._internal.config import ClientSettings
from batchload._internal.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger("client.pool")


class ClientPool:
    """Checkout/return pool of ``aiohttp.ClientSession`` objects.

    Every session shares one ``aiohttp.TCPConnector``, so keep-alive
    connections are reused no matter which session a worker borrows.
    Checkout never waits: when no session is idle a new one is built.

    Use as an async context manager; the connector only exists while the
    pool is open.

    Attributes:
        settings: Timeouts and connection bounds applied to every client.
    """

    def __init__(self, settings: ClientSettings | None = None) -> None:
        """Initialize the pool.

        Args:
            settings: Client settings. Defaults to ``ClientSettings()``.
        """
        self.settings = settings or ClientSettings()
        self._timeout = aiohttp.ClientTimeout(
            total=self.settings.request_timeout,
            sock_connect=self.settings.connect_timeout,
        )
        self._connector: aiohttp.TCPConnector | None = None
        self._idle: deque[aiohttp.ClientSession] = deque()
        self._clients: list[aiohttp.ClientSession] = []

    async def __aenter__(self) -> ClientPool:
        """Create the shared connector."""
        self._connector = aiohttp.TCPConnector(
            limit=self.settings.max_connections,
            limit_per_host=self.settings.max_connections_per_host,
            keepalive_timeout=self.settings.idle_timeout,
            force_close=False,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close every client built by the pool, then the connector."""
        for client in self._clients:
            await client.close()
        logger.debug("Closed %d pooled clients", len(self._clients))
        self._clients.clear()
        self._idle.clear()
        if self._connector is not None:
            await self._connector.close()
            self._connector = None

    @property
    def size(self) -> int:
        """Return the number of clients built so far."""
        return len(self._clients)

    @property
    def idle_count(self) -> int:
        """Return the number of clients currently checked in."""
        return len(self._idle)

    @contextlib.asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiohttp.ClientSession]:
        """Borrow a client for the duration of the ``async with`` block.

        The client goes back to the pool on every exit path, including
        when the block raises.

        Yields:
            A client session bound to the shared connector.

        Raises:
            RuntimeError: If the pool is used outside its context manager.
        """
        client = self._checkout()
        try:
            yield client
        finally:
            self._idle.append(client)

    def _checkout(self) -> aiohttp.ClientSession:
        if self._connector is None:
            msg = "ClientPool must be used as an async context manager"
            raise RuntimeError(msg)
        if self._idle:
            return self._idle.pop()
        client = aiohttp.ClientSession(
            connector=self._connector,
            connector_owner=False,
            timeout=self._timeout,
        )
        self._clients.append(client)
        return client

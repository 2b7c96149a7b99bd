"""Integration tests for the ClientPool."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from batchload._internal.config import ClientSettings
from batchload.client.pool import ClientPool

if TYPE_CHECKING:
    from tests.conftest import StubServer


class TestClientPool:
    async def test_acquire_outside_context_raises(self):
        pool = ClientPool()
        with pytest.raises(RuntimeError, match="async context manager"):
            async with pool.acquire():
                pass

    async def test_reuses_returned_client(self):
        async with ClientPool() as pool:
            async with pool.acquire() as first:
                pass
            async with pool.acquire() as second:
                pass

            assert first is second
            assert pool.size == 1
            assert pool.idle_count == 1

    async def test_builds_new_client_when_empty(self):
        async with ClientPool() as pool:
            async with pool.acquire() as first, pool.acquire() as second:
                assert first is not second
                assert pool.idle_count == 0

            assert pool.size == 2
            assert pool.idle_count == 2

    async def test_client_returned_when_block_raises(self):
        async with ClientPool() as pool:
            with pytest.raises(ValueError, match="boom"):
                async with pool.acquire():
                    raise ValueError("boom")

            assert pool.idle_count == 1

    async def test_clients_share_one_connector(self, stub_server: StubServer):
        async with ClientPool() as pool:
            async with pool.acquire() as first, pool.acquire() as second:
                assert first.connector is second.connector

                async with first.get(stub_server.url("/ok")) as resp:
                    assert resp.status == 200
                    assert await resp.text() == "ok"

    async def test_settings_applied_to_clients(self):
        settings = ClientSettings(request_timeout=7.0, connect_timeout=2.0)
        async with ClientPool(settings) as pool, pool.acquire() as client:
            assert client.timeout.total == 7.0
            assert client.timeout.sock_connect == 2.0

    async def test_exit_closes_clients(self):
        async with ClientPool() as pool, pool.acquire() as client:
            pass

        assert client.closed
        assert pool.size == 0

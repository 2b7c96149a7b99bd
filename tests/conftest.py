"""Shared test fixtures for the batchload test suite."""

from __future__ import annotations

import asyncio
import socket
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# Nothing listens on port 1, so connections are refused immediately.
_UNREACHABLE_URL = "http://127.0.0.1:1/"


# =============================================================================
# Stub HTTP server
# =============================================================================


@dataclass
class StubServer:
    """Handle on a running stub server.

    Attributes:
        base_url: e.g. ``http://127.0.0.1:54321``.
        hits: Requests received, keyed by path.
    """

    base_url: str
    hits: Counter[str] = field(default_factory=Counter)

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"


def _create_stub_app(hits: Counter[str]) -> web.Application:
    """Build the stub app.

    Routes:
        ``/ok``: 200 with body ``ok``.
        ``/status/{code}``: responds with ``code`` and body ``status <code>``.
        ``/echo``: 200 with the request method, content type and body as JSON.
        ``/delay``: 200 after ``?delay=`` seconds (default 0.1).
    """

    @web.middleware
    async def _count_hits(request: web.Request, handler):  # type: ignore[no-untyped-def]
        hits[request.path] += 1
        return await handler(request)

    async def _ok(request: web.Request) -> web.Response:
        return web.Response(text="ok")

    async def _status(request: web.Request) -> web.Response:
        code = int(request.match_info["code"])
        return web.Response(status=code, text=f"status {code}")

    async def _echo(request: web.Request) -> web.Response:
        body = await request.read()
        return web.json_response(
            {
                "method": request.method,
                "content_type": request.headers.get("Content-Type", ""),
                "body": body.decode("utf-8", errors="replace"),
            }
        )

    async def _delay(request: web.Request) -> web.Response:
        await asyncio.sleep(float(request.query.get("delay", "0.1")))
        return web.Response(text="late")

    app = web.Application(middlewares=[_count_hits])
    app.router.add_route("*", "/ok", _ok)
    app.router.add_route("*", "/status/{code}", _status)
    app.router.add_route("*", "/echo", _echo)
    app.router.add_get("/delay", _delay)
    return app


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def stub_server() -> AsyncIterator[StubServer]:
    """Stub server running on the test's own event loop."""
    server = StubServer(base_url="")
    runner = web.AppRunner(_create_stub_app(server.hits))
    await runner.setup()
    port = _get_free_port()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    server.base_url = f"http://127.0.0.1:{port}"
    yield server
    await runner.cleanup()


@pytest.fixture
def sync_stub_server() -> Iterator[StubServer]:
    """Stub server running in a background thread for sync tests.

    Needed wherever the code under test creates and blocks on its own
    event loop (``LoadRunner.run()``, the CLI).
    """
    port = _get_free_port()
    server = StubServer(base_url=f"http://127.0.0.1:{port}")
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        runner = web.AppRunner(_create_stub_app(server.hits))
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", port)
        loop.run_until_complete(site.start())
        loop_holder.append(loop)
        started.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    yield server

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)


@pytest.fixture
def unreachable_url() -> str:
    """URL whose connections are refused."""
    return _UNREACHABLE_URL

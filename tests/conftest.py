"""Shared test fixtures for the ccs-rescale test suite."""

from __future__ import annotations

import asyncio
import logging
import socket
import struct
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from collections.abc import Iterator


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


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host CCSRESCALE_* variables out of every test."""
    for name in (
        "CCSRESCALE_RESPONSE_TIMEOUT",
        "CCSRESCALE_CONNECT_TIMEOUT",
        "CCSRESCALE_LOG_LEVEL",
        "CCSRESCALE_JSON_LOGS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_logger() -> Iterator[None]:
    """Drop handlers bound to a previous test's captured stderr."""
    yield
    logger = logging.getLogger("ccsrescale")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


@pytest.fixture
def unused_port() -> int:
    """A localhost port with nothing listening on it."""
    return _get_free_port()


# =============================================================================
# Fake CCS server
# =============================================================================

_REQUEST_HEAD = struct.Struct(">iii32s")


@dataclass
class ReceivedRequest:
    """One request as decoded by the fake server."""

    security: int
    handler: str
    pe: int
    body: bytes


@dataclass
class FakeCcsServer:
    """Minimal CCS server speaking the unauthenticated request framing.

    Attributes:
        port: Listening port, set once started.
        pes_per_node: Layout returned from ``ccs_getinfo``.
        bitmap_reply: How ``set_bitmap`` is answered: ``"echo"`` replies with
            the request body, ``"oversize"`` with one extra byte, ``"short"``
            with a single byte, ``"close"`` hangs up, and ``"silent"`` keeps
            the connection open without replying.
        getinfo_reply: Raw ``ccs_getinfo`` body override, or None.
        requests: Every request received, in order.
    """

    port: int = 0
    pes_per_node: tuple[int, ...] = (2, 2)
    bitmap_reply: str = "echo"
    getinfo_reply: bytes | None = None
    requests: list[ReceivedRequest] = field(default_factory=list)

    @property
    def handlers(self) -> list[str]:
        return [r.handler for r in self.requests]

    def _getinfo_body(self) -> bytes:
        if self.getinfo_reply is not None:
            return self.getinfo_reply
        values = (len(self.pes_per_node), *self.pes_per_node)
        return struct.pack(f">{len(values)}i", *values)

    def _reply_for(self, request: ReceivedRequest) -> bytes | None:
        if request.handler == "ccs_getinfo":
            return self._getinfo_body()
        if self.bitmap_reply == "echo":
            return request.body
        if self.bitmap_reply == "oversize":
            return request.body + b"\x00"
        if self.bitmap_reply == "short":
            return request.body[:1]
        return None

    async def handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            head = await reader.readexactly(_REQUEST_HEAD.size)
            security, length, pe, handler = _REQUEST_HEAD.unpack(head)
            body = await reader.readexactly(length)
            request = ReceivedRequest(
                security=security,
                handler=handler.rstrip(b"\x00").decode("ascii"),
                pe=pe,
                body=body,
            )
            self.requests.append(request)

            reply = self._reply_for(request)
            if reply is not None:
                writer.write(struct.pack(">I", len(reply)) + reply)
                await writer.drain()
            elif self.bitmap_reply == "silent":
                # Returns once the client gives up and closes.
                await reader.read()
        except (asyncio.IncompleteReadError, ConnectionError):
            pass
        finally:
            writer.close()


@pytest.fixture
def ccs_server() -> Iterator[FakeCcsServer]:
    """Fake CCS server running in a background thread.

    The client under test is blocking, so the server gets its own event
    loop in a daemon thread.
    """
    server = FakeCcsServer(port=_get_free_port())
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        listener = loop.run_until_complete(
            asyncio.start_server(server.handle, "127.0.0.1", server.port),
        )
        loop_holder.append(loop)
        started.set()
        loop.run_forever()
        listener.close()
        loop.run_until_complete(listener.wait_closed())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    yield server

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)

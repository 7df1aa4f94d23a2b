"""Integration tests for CcsClient against a local fake CCS server."""

from __future__ import annotations

import struct
import time
from typing import TYPE_CHECKING

import pytest

from ccsrescale._internal.errors import (
    ConnectError,
    ReceiveError,
    ResponseTimeout,
    ResponseTooLarge,
    SendError,
)
from ccsrescale.transport.ccs import CcsClient

if TYPE_CHECKING:
    from tests.conftest import FakeCcsServer


def _client(server: FakeCcsServer) -> CcsClient:
    return CcsClient("127.0.0.1", server.port, connect_timeout=2.0)


class TestConnect:
    def test_connect_fetches_server_info(self, ccs_server: FakeCcsServer):
        ccs_server.pes_per_node = (4, 4, 2)
        with _client(ccs_server) as client:
            info = client.connect()

        assert info.num_nodes == 3
        assert info.num_pes == 10
        assert client.info is info
        (request,) = ccs_server.requests
        assert request.handler == "ccs_getinfo"
        assert request.security == 0
        assert request.pe == 0
        assert request.body == b""

    def test_connect_refused(self, unused_port: int):
        with CcsClient("127.0.0.1", unused_port, connect_timeout=1.0) as client:
            with pytest.raises(ConnectError, match="cannot reach"):
                client.connect()

    def test_connect_rejects_garbled_info(self, ccs_server: FakeCcsServer):
        ccs_server.getinfo_reply = struct.pack(">2i", 5, 1)
        with _client(ccs_server) as client, pytest.raises(ConnectError, match="invalid ccs_getinfo"):
            client.connect()


class TestRequestReply:
    def test_echoed_reply(self, ccs_server: FakeCcsServer):
        body = b"\x01\x00" + struct.pack("=i", 1) + b"\x00"
        with _client(ccs_server) as client:
            client.send_request("set_bitmap", 0, body)
            reply = client.recv_response(len(body), timeout=2.0)

        assert reply == body
        assert ccs_server.requests[-1].handler == "set_bitmap"
        assert ccs_server.requests[-1].body == body

    def test_shorter_reply_is_accepted(self, ccs_server: FakeCcsServer):
        ccs_server.bitmap_reply = "short"
        with _client(ccs_server) as client:
            client.send_request("set_bitmap", 0, b"\x01\x01\x01")
            assert client.recv_response(3, timeout=2.0) == b"\x01"

    def test_oversized_reply_rejected(self, ccs_server: FakeCcsServer):
        ccs_server.bitmap_reply = "oversize"
        with _client(ccs_server) as client:
            client.send_request("set_bitmap", 0, b"\x01\x01")
            with pytest.raises(ResponseTooLarge, match="exceeds the 2-byte buffer"):
                client.recv_response(2, timeout=2.0)

    def test_hang_up_without_reply(self, ccs_server: FakeCcsServer):
        ccs_server.bitmap_reply = "close"
        with _client(ccs_server) as client:
            client.send_request("set_bitmap", 0, b"\x01")
            with pytest.raises(ReceiveError, match="connection closed"):
                client.recv_response(1, timeout=2.0)

    def test_silent_server_times_out(self, ccs_server: FakeCcsServer):
        ccs_server.bitmap_reply = "silent"
        with _client(ccs_server) as client:
            client.send_request("set_bitmap", 0, b"\x01")
            started = time.monotonic()
            with pytest.raises(ResponseTimeout, match="no reply within 0.3s"):
                client.recv_response(1, timeout=0.3)
        assert time.monotonic() - started < 2.0

    def test_send_to_closed_port(self, unused_port: int):
        with CcsClient("127.0.0.1", unused_port, connect_timeout=1.0) as client:
            with pytest.raises(SendError, match="connect to"):
                client.send_request("set_bitmap", 0, b"\x01")

    def test_reply_consumes_the_connection(self, ccs_server: FakeCcsServer):
        with _client(ccs_server) as client:
            client.send_request("set_bitmap", 0, b"\x01")
            client.recv_response(1, timeout=2.0)
            with pytest.raises(ReceiveError, match="in flight"):
                client.recv_response(1, timeout=0.1)

"""Blocking client for the Charm++ Converse Client-Server (CCS) protocol.

Every CCS request travels on its own TCP connection::

    client -> server   [security: int32 = 0]
                       [len: int32] [pe: int32] [handler: 32 bytes, NUL padded]
                       [body: len bytes]
    server -> client   [len: uint32] [body: len bytes]

All integers in the framing are big-endian. The connection is closed once
the reply has been read.
"""

from __future__ import annotations

import socket
import struct
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from ccsrescale._internal.errors import (
    ConnectError,
    ReceiveError,
    ResponseTimeout,
    ResponseTooLarge,
    SendError,
    TransportError,
)
from ccsrescale._internal.logging import get_logger

if TYPE_CHECKING:
    from ccsrescale._internal.types import Address, PesPerNode

logger = get_logger("transport.ccs")

CCS_HANDLER_LEN = 32
SECURITY_NONE = 0
GETINFO_HANDLER = "ccs_getinfo"

_SECURITY = struct.Struct(">i")
_HEADER = struct.Struct(f">ii{CCS_HANDLER_LEN}s")
_REPLY_LEN = struct.Struct(">I")


@dataclass(frozen=True)
class ServerInfo:
    """Machine layout reported by the server's ``ccs_getinfo`` handler.

    Attributes:
        pes_per_node: Number of processing elements on each node.
    """

    pes_per_node: PesPerNode

    @property
    def num_nodes(self) -> int:
        return len(self.pes_per_node)

    @property
    def num_pes(self) -> int:
        return sum(self.pes_per_node)

    @classmethod
    def from_bytes(cls, data: bytes) -> ServerInfo:
        """Decode a ``ccs_getinfo`` reply of ``[num_nodes, pes_0, pes_1, ...]``.

        Raises:
            ValueError: If the reply is not a whole number of int32 values
                or disagrees with its own node count.
        """
        if not data or len(data) % 4:
            msg = f"ccs_getinfo reply must be a non-empty int32 array, got {len(data)} bytes"
            raise ValueError(msg)
        values = np.frombuffer(data, dtype=">i4")
        num_nodes = int(values[0])
        if num_nodes != len(values) - 1:
            msg = f"ccs_getinfo reports {num_nodes} nodes but carries {len(values) - 1} entries"
            raise ValueError(msg)
        return cls(pes_per_node=tuple(int(v) for v in values[1:]))


def encode_request(handler: str, pe: int, body: bytes) -> bytes:
    """Frame one unauthenticated CCS request.

    Handler names longer than ``CCS_HANDLER_LEN`` bytes are truncated.
    """
    name = handler.encode("ascii")[:CCS_HANDLER_LEN]
    return _SECURITY.pack(SECURITY_NONE) + _HEADER.pack(len(body), pe, name) + body


def _recv_exact(sock: socket.socket, size: int) -> bytes:
    chunks: list[bytes] = []
    remaining = size
    while remaining:
        chunk = sock.recv(remaining)
        if not chunk:
            msg = f"connection closed after {size - remaining} of {size} bytes"
            raise ReceiveError(msg)
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


class CcsClient:
    """Synchronous CCS client holding at most one in-flight request.

    Usage::

        with CcsClient("launcher", 1234) as client:
            client.connect()
            client.send_request("set_bitmap", 0, payload)
            reply = client.recv_response(len(payload), timeout=180.0)

    Attributes:
        host: Server hostname or address.
        port: Server TCP port.
        info: Machine layout learned by :meth:`connect`, None before that.
    """

    def __init__(self, host: str, port: int, *, connect_timeout: float = 120.0) -> None:
        """Initialize the client without touching the network.

        Args:
            host: Server hostname or address.
            port: Server TCP port.
            connect_timeout: Seconds allowed for each TCP connect, and for
                the ``ccs_getinfo`` reply read by :meth:`connect`.
        """
        self.host = host
        self.port = port
        self.info: ServerInfo | None = None
        self._connect_timeout = connect_timeout
        self._sock: socket.socket | None = None

    @property
    def address(self) -> Address:
        return (self.host, self.port)

    def __enter__(self) -> CcsClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        self.close()

    def connect(self) -> ServerInfo:
        """Check the server is reachable and fetch its machine layout.

        Returns:
            The decoded ``ccs_getinfo`` reply, also stored on :attr:`info`.

        Raises:
            ConnectError: If the request, the reply, or its decoding fails.
        """
        logger.debug("Connecting to CCS server %s:%d", self.host, self.port)
        try:
            self.send_request(GETINFO_HANDLER, 0, b"")
            reply = self.recv_response(None, timeout=self._connect_timeout)
            self.info = ServerInfo.from_bytes(reply)
        except TransportError as exc:
            msg = f"cannot reach CCS server {self.host}:{self.port}: {exc}"
            raise ConnectError(msg) from exc
        except ValueError as exc:
            msg = f"invalid ccs_getinfo reply from {self.host}:{self.port}: {exc}"
            raise ConnectError(msg) from exc

        logger.debug(
            "Server %s:%d runs %d PEs on %d nodes",
            self.host,
            self.port,
            self.info.num_pes,
            self.info.num_nodes,
        )
        return self.info

    def send_request(self, handler: str, pe: int, body: bytes) -> None:
        """Open a request connection and write one framed request.

        Any reply still pending from an earlier request is discarded.

        Args:
            handler: Registered CCS handler name on the server.
            pe: Destination processing element.
            body: Request body.

        Raises:
            SendError: If the connection cannot be opened or written.
        """
        self.close()
        frame = encode_request(handler, pe, body)
        try:
            sock = socket.create_connection(self.address, timeout=self._connect_timeout)
        except OSError as exc:
            msg = f"connect to {self.host}:{self.port} failed: {exc}"
            raise SendError(msg) from exc

        try:
            sock.sendall(frame)
        except OSError as exc:
            sock.close()
            msg = f"sending {handler!r} failed: {exc}"
            raise SendError(msg) from exc

        self._sock = sock
        logger.debug("Sent %r to pe %d (%d body bytes)", handler, pe, len(body))

    def recv_response(self, max_size: int | None, timeout: float) -> bytes:
        """Read the reply to the in-flight request and close its connection.

        Args:
            max_size: Largest acceptable reply body, or None for no limit.
            timeout: Seconds to wait on each read.

        Returns:
            The reply body.

        Raises:
            ResponseTimeout: If the server is silent for ``timeout`` seconds.
            ResponseTooLarge: If the announced length exceeds ``max_size``.
            ReceiveError: If no request is in flight or the read fails.
        """
        sock = self._sock
        if sock is None:
            msg = "no CCS request in flight"
            raise ReceiveError(msg)

        try:
            sock.settimeout(timeout)
            (length,) = _REPLY_LEN.unpack(_recv_exact(sock, _REPLY_LEN.size))
            if max_size is not None and length > max_size:
                msg = f"reply of {length} bytes exceeds the {max_size}-byte buffer"
                raise ResponseTooLarge(msg)
            body = _recv_exact(sock, length)
        except TimeoutError as exc:
            msg = f"no reply within {timeout:g}s"
            raise ResponseTimeout(msg) from exc
        except OSError as exc:
            msg = f"reading reply failed: {exc}"
            raise ReceiveError(msg) from exc
        finally:
            self.close()

        logger.debug("Received %d-byte reply", len(body))
        return body

    def close(self) -> None:
        """Close the in-flight request connection, if any."""
        if self._sock is not None:
            self._sock.close()
            self._sock = None

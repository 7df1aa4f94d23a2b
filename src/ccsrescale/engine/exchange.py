"""One-shot ``set_bitmap`` exchange with the control server.

A run walks ``START -> CONNECTING -> SENDING -> AWAITING_RESPONSE`` and ends
in ``SUCCESS`` or ``FAILED``; equal counts jump from ``START`` straight to
``NOOP`` without touching the network. Nothing is retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from ccsrescale._internal.config import RescaleConfig
from ccsrescale._internal.errors import TransportError
from ccsrescale._internal.logging import get_logger
from ccsrescale.protocol.bitmap import encode_bitmap
from ccsrescale.protocol.request import Mode, RescaleRequest
from ccsrescale.transport.ccs import CcsClient

if TYPE_CHECKING:
    from collections.abc import Callable

logger = get_logger("engine.exchange")

SET_BITMAP_HANDLER = "set_bitmap"
SET_BITMAP_PE = 0


class ExchangeState(Enum):
    START = auto()
    CONNECTING = auto()
    SENDING = auto()
    AWAITING_RESPONSE = auto()
    SUCCESS = auto()
    FAILED = auto()
    NOOP = auto()


class RescaleOutcome(Enum):
    """Terminal result of a rescale, with the character printed for it."""

    NOOP = "noop"
    FAILED = "failed"
    SUCCESS = "success"

    @property
    def signal(self) -> str:
        # Callers cannot tell a no-op from a failure.
        return "1" if self is RescaleOutcome.SUCCESS else "0"


@dataclass(frozen=True)
class ExchangeResult:
    """Result of :func:`execute_rescale`.

    Attributes:
        outcome: Terminal outcome of the exchange.
        last_state: The state the exchange was in when it ended; for a
            failure this names the step that failed.
        error: Description of the failure, None otherwise.
        response: The reply body on success, None otherwise.
    """

    outcome: RescaleOutcome
    last_state: ExchangeState
    error: str | None = None
    response: bytes | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is RescaleOutcome.SUCCESS


def execute_rescale(
    request: RescaleRequest,
    *,
    config: RescaleConfig | None = None,
    client_factory: Callable[..., CcsClient] = CcsClient,
) -> ExchangeResult:
    """Send one ``set_bitmap`` command and wait for its confirmation.

    Transport faults are never raised; they become a ``FAILED`` result.

    Args:
        request: Validated rescale request.
        config: Timeouts to use. Defaults to ``RescaleConfig()``.
        client_factory: Builds the CCS client from ``(host, port,
            connect_timeout=...)``. Tests substitute fakes here.

    Returns:
        The outcome and the state the exchange stopped in.
    """
    cfg = config or RescaleConfig()

    if request.mode is Mode.NOOP:
        logger.info("Old and new counts are both %d; nothing to do", request.old_count)
        return ExchangeResult(outcome=RescaleOutcome.NOOP, last_state=ExchangeState.NOOP)

    payload = encode_bitmap(request).to_bytes()
    logger.debug("Rescale %s with %d-byte bitmap", request.describe(), len(payload))

    state = ExchangeState.START
    with client_factory(request.host, request.port, connect_timeout=cfg.connect_timeout) as client:
        try:
            state = ExchangeState.CONNECTING
            client.connect()

            state = ExchangeState.SENDING
            client.send_request(SET_BITMAP_HANDLER, SET_BITMAP_PE, payload)

            state = ExchangeState.AWAITING_RESPONSE
            reply = client.recv_response(len(payload), timeout=cfg.response_timeout)
        except TransportError as exc:
            logger.info("Rescale failed while %s: %s", state.name.lower(), exc)
            return ExchangeResult(
                outcome=RescaleOutcome.FAILED,
                last_state=state,
                error=str(exc),
            )

    logger.info("Rescale confirmed: %s", request.describe())
    return ExchangeResult(
        outcome=RescaleOutcome.SUCCESS,
        last_state=ExchangeState.SUCCESS,
        response=reply,
    )


def signal_rescale(
    host: str,
    port: int,
    old_count: int,
    new_count: int,
    *,
    config: RescaleConfig | None = None,
) -> bool:
    """Ask the server at ``host:port`` to move from ``old_count`` to ``new_count`` slots.

    Counts are not validated here; use
    :func:`~ccsrescale.protocol.request.resolve_request` for untrusted input.

    Returns:
        True only when the server confirmed the change.
    """
    request = RescaleRequest(host=host, port=port, old_count=old_count, new_count=new_count)
    return execute_rescale(request, config=config).ok

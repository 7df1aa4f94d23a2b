"""ccs-rescale: tell a running Charm++ job to grow or shrink over CCS."""

from __future__ import annotations

from ccsrescale.engine.exchange import (
    ExchangeResult,
    ExchangeState,
    RescaleOutcome,
    execute_rescale,
    signal_rescale,
)
from ccsrescale.protocol.bitmap import BitmapPayload, encode_bitmap, payload_length
from ccsrescale.protocol.request import Mode, RescaleRequest, resolve_request
from ccsrescale.transport.ccs import CcsClient, ServerInfo

__version__ = "0.1.0"

__all__ = [
    "BitmapPayload",
    "CcsClient",
    "ExchangeResult",
    "ExchangeState",
    "Mode",
    "RescaleOutcome",
    "RescaleRequest",
    "ServerInfo",
    "encode_bitmap",
    "execute_rescale",
    "payload_length",
    "resolve_request",
    "signal_rescale",
]

"""Request model and wire payload for the ``set_bitmap`` command.

The resolver turns raw command-line values into a :class:`RescaleRequest`,
and :func:`encode_bitmap` turns a non-trivial request into the
:class:`BitmapPayload` the control server expects.
"""

from __future__ import annotations

from ccsrescale.protocol.bitmap import BitmapPayload, encode_bitmap, payload_length
from ccsrescale.protocol.request import Mode, RescaleRequest, derive_mode, resolve_request

__all__ = [
    "BitmapPayload",
    "Mode",
    "RescaleRequest",
    "derive_mode",
    "encode_bitmap",
    "payload_length",
    "resolve_request",
]

"""Encoding of the ``set_bitmap`` payload.

Layout, for a job currently running ``old_count`` slots::

    [slot_0 .. slot_{old_count-1}] [new_count: int32, native order] [0x00]

Each slot byte is 1 if that slot stays active and 0 if it is released.
The total length is always ``old_count + 5`` regardless of direction, and
the server echoes a reply of the same size.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from ccsrescale.protocol.request import Mode

if TYPE_CHECKING:
    from ccsrescale.protocol.request import RescaleRequest

SLOT_ACTIVE = 1
SLOT_INACTIVE = 0

# Native byte order, matching the server's in-memory int.
_COUNT_DTYPE = np.dtype("=i4")
_TERMINATOR = b"\x00"
TRAILER_SIZE = _COUNT_DTYPE.itemsize + len(_TERMINATOR)


def payload_length(old_count: int) -> int:
    """Return the encoded payload size for a job of ``old_count`` slots."""
    return old_count + TRAILER_SIZE


@dataclass(frozen=True)
class BitmapPayload:
    """Decoded form of a ``set_bitmap`` body.

    Attributes:
        slots: One byte per current slot, ``SLOT_ACTIVE`` or ``SLOT_INACTIVE``.
        new_count: Total slot count after the rescale.
    """

    slots: bytes
    new_count: int

    @property
    def old_count(self) -> int:
        return len(self.slots)

    @property
    def active_slots(self) -> list[int]:
        """Indices of the slots that stay active."""
        flags = np.frombuffer(self.slots, dtype=np.uint8)
        return [int(i) for i in np.flatnonzero(flags)]

    def to_bytes(self) -> bytes:
        count = np.array([self.new_count], dtype=_COUNT_DTYPE)
        return self.slots + count.tobytes() + _TERMINATOR

    def __len__(self) -> int:
        return payload_length(self.old_count)

    @classmethod
    def from_bytes(cls, data: bytes) -> BitmapPayload:
        """Decode a payload produced by :meth:`to_bytes`.

        Raises:
            ValueError: If *data* is too short, the terminator is missing,
                or a slot byte is not 0 or 1.
        """
        if len(data) < TRAILER_SIZE:
            msg = f"bitmap payload needs at least {TRAILER_SIZE} bytes, got {len(data)}"
            raise ValueError(msg)
        if data[-1:] != _TERMINATOR:
            msg = "bitmap payload is missing its zero terminator"
            raise ValueError(msg)

        old_count = len(data) - TRAILER_SIZE
        slots = data[:old_count]
        if np.any(np.frombuffer(slots, dtype=np.uint8) > SLOT_ACTIVE):
            msg = "bitmap slot bytes must be 0 or 1"
            raise ValueError(msg)

        count_field = data[old_count : old_count + _COUNT_DTYPE.itemsize]
        new_count = int(np.frombuffer(count_field, dtype=_COUNT_DTYPE)[0])
        return cls(slots=slots, new_count=new_count)


def encode_bitmap(request: RescaleRequest) -> BitmapPayload:
    """Build the slot bitmap for a rescale.

    Growing keeps every existing slot; the growth itself is carried only by
    the trailing count. Shrinking keeps the lowest-indexed ``new_count``
    slots and releases the rest.

    Args:
        request: A validated request whose mode is not ``Mode.NOOP``.

    Returns:
        The payload to send as the ``set_bitmap`` body.

    Raises:
        ValueError: If the request is a no-op.
    """
    mode = request.mode
    if mode is Mode.NOOP:
        msg = "a no-op rescale has no bitmap"
        raise ValueError(msg)

    if mode is Mode.EXPAND:
        flags = np.full(request.old_count, SLOT_ACTIVE, dtype=np.uint8)
    else:
        flags = (np.arange(request.old_count) < request.new_count).astype(np.uint8)

    return BitmapPayload(slots=flags.tobytes(), new_count=request.new_count)

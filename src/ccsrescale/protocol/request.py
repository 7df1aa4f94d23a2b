"""Rescale request model and command-line argument resolution."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from ccsrescale._internal.errors import UsageError

# The new count travels as a signed 32-bit integer.
INT32_MAX = 2**31 - 1
PORT_MAX = 65535


class Mode(Enum):
    """Direction of a rescale, derived from the old and new counts."""

    EXPAND = auto()
    SHRINK = auto()
    NOOP = auto()


def derive_mode(old_count: int, new_count: int) -> Mode:
    """Classify a count change.

    Args:
        old_count: Number of slots currently active.
        new_count: Number of slots requested.

    Returns:
        ``Mode.NOOP`` when the counts match, ``Mode.EXPAND`` when the job
        grows, ``Mode.SHRINK`` otherwise.
    """
    if new_count == old_count:
        return Mode.NOOP
    if new_count > old_count:
        return Mode.EXPAND
    return Mode.SHRINK


@dataclass(frozen=True)
class RescaleRequest:
    """A single request to move a job from ``old_count`` to ``new_count`` slots.

    Attributes:
        host: Control server hostname or IP address.
        port: Control server TCP port.
        old_count: Number of worker slots currently active.
        new_count: Number of worker slots requested.
    """

    host: str
    port: int
    old_count: int
    new_count: int

    @property
    def mode(self) -> Mode:
        return derive_mode(self.old_count, self.new_count)

    def describe(self) -> str:
        """Return a short human-readable summary for logs."""
        return (
            f"{self.mode.name.lower()} {self.old_count} -> {self.new_count} "
            f"via {self.host}:{self.port}"
        )


def _parse_int(value: str, name: str) -> int:
    """Parse a base-10 integer argument.

    Raises:
        UsageError: If *value* is not an integer.
    """
    try:
        return int(value.strip(), 10)
    except ValueError:
        msg = f"{name} must be an integer, got: {value!r}"
        raise UsageError(msg) from None


def _parse_count(value: str, name: str) -> int:
    count = _parse_int(value, name)
    if count < 1:
        msg = f"{name} must be >= 1, got: {count}"
        raise UsageError(msg)
    if count > INT32_MAX:
        msg = f"{name} must fit in a 32-bit signed integer, got: {count}"
        raise UsageError(msg)
    return count


def resolve_request(host: str, port: str, old_count: str, new_count: str) -> RescaleRequest:
    """Build a validated :class:`RescaleRequest` from raw command-line strings.

    Args:
        host: Control server hostname.
        port: Control server port, as text.
        old_count: Current slot count, as text.
        new_count: Requested slot count, as text.

    Returns:
        The validated request. Its :attr:`~RescaleRequest.mode` may be
        ``Mode.NOOP``; callers short-circuit on that before any network I/O.

    Raises:
        UsageError: If the host is empty, the port is outside 1..65535, or a
            count is not an integer in 1..2**31-1.
    """
    if not host.strip():
        msg = "hostname must not be empty"
        raise UsageError(msg)

    port_num = _parse_int(port, "port")
    if not 1 <= port_num <= PORT_MAX:
        msg = f"port must be between 1 and {PORT_MAX}, got: {port_num}"
        raise UsageError(msg)

    return RescaleRequest(
        host=host.strip(),
        port=port_num,
        old_count=_parse_count(old_count, "oldprocs"),
        new_count=_parse_count(new_count, "newprocs"),
    )

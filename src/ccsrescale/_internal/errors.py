"""Custom exception hierarchy for ccs-rescale."""

from __future__ import annotations


class RescaleError(Exception):
    """Base exception for all ccs-rescale errors.

    All custom exceptions raised by the client inherit from this class,
    making it easy to catch any rescale-specific error with a single
    except clause.
    """


class UsageError(RescaleError):
    """Raised when the command-line invocation is invalid.

    Examples:
        - Fewer than four positional arguments were supplied.
        - A process count is not an integer, or is below 1.
        - The port is outside 1..65535.
    """


class ConfigError(RescaleError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Required environment variable has an invalid value.
        - Configuration value is out of acceptable range.
    """


class TransportError(RescaleError):
    """Raised when a CCS request cannot be completed.

    The exchange client converts every transport error into a failed
    outcome; none of them reach the process exit code.
    """


class ConnectError(TransportError):
    """Raised when the server cannot be reached or ``ccs_getinfo`` fails."""


class SendError(TransportError):
    """Raised when a request header or body cannot be written."""


class ReceiveError(TransportError):
    """Raised when a reply cannot be read in full."""


class ResponseTimeout(ReceiveError):
    """Raised when no reply arrives within the response timeout."""


class ResponseTooLarge(ReceiveError):
    """Raised when the announced reply length exceeds the receive buffer."""

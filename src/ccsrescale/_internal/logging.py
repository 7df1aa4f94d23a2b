"""Logging setup for ccs-rescale.

Standard output is reserved for the ``0``/``1`` signal, so the one handler
installed here writes to standard error. Handlers attached to the
``ccsrescale`` logger by anyone else are left untouched.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

_LOGGER_NAME = "ccsrescale"
_HANDLER_NAME = "ccsrescale.stderr"
_TEXT_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _JsonFormatter(logging.Formatter):
    """One JSON object per record.

    Keys are ``ts``, ``level``, ``logger`` and ``msg``, plus ``exc`` when a
    traceback is attached.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, separators=(",", ":"))


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is when a record is emitted.

    Resolving the stream late keeps the handler valid when stderr is
    swapped, e.g. by a test runner capturing output.
    """

    def __init__(self) -> None:
        logging.Handler.__init__(self)
        self.set_name(_HANDLER_NAME)

    @property
    def stream(self):  # type: ignore[override]
        return sys.stderr


def _own_handler(logger: logging.Logger) -> logging.Handler | None:
    for handler in logger.handlers:
        if handler.get_name() == _HANDLER_NAME:
            return handler
    return None


def setup_logging(
    level: int = logging.WARNING,
    *,
    json_format: bool = False,
) -> logging.Logger:
    """Configure and return the ``ccsrescale`` logger.

    Installs the stderr handler on first use; later calls only change its
    level and format.

    Args:
        level: Logging level. Defaults to WARNING so that routine failures
            stay off the caller's combined output.
        json_format: Emit JSON lines instead of human-readable text.

    Returns:
        The ``ccsrescale`` logger.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)

    handler = _own_handler(logger)
    if handler is None:
        handler = _StderrHandler()
        logger.addHandler(handler)
        logger.propagate = False

    handler.setLevel(level)
    if json_format:
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT, datefmt=_DATE_FORMAT))
    return logger


def parse_level(name: str) -> int:
    """Translate a level name such as ``"debug"`` into its numeric value.

    Raises:
        ValueError: If ``name`` is not a standard level name.
    """
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        msg = f"Unknown log level: {name!r}"
        raise ValueError(msg)
    return level


def get_logger(name: str) -> logging.Logger:
    """Return ``ccsrescale.<name>``, e.g. ``get_logger("transport.ccs")``."""
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")

"""Configuration loading for ccs-rescale."""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, replace

from ccsrescale._internal.errors import ConfigError
from ccsrescale._internal.logging import parse_level

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"", "0", "false", "no", "off"})

# Upper bound for either timeout, in seconds.
MAX_TIMEOUT = 86400.0


@dataclass(frozen=True)
class RescaleConfig:
    """Global ccs-rescale configuration.

    Attributes:
        response_timeout: Seconds to wait for the ``set_bitmap`` reply.
        connect_timeout: Seconds allowed for the TCP connect and the
            ``ccs_getinfo`` round trip made on connect.
        log_level: Level for the ``ccsrescale`` logger.
        json_logs: Emit JSON log lines instead of human-readable ones.
    """

    response_timeout: float = 180.0
    connect_timeout: float = 120.0
    log_level: int = logging.WARNING
    json_logs: bool = False

    def with_overrides(
        self,
        *,
        response_timeout: float | None = None,
        connect_timeout: float | None = None,
    ) -> RescaleConfig:
        """Return a copy with any non-None timeout replaced.

        Raises:
            ConfigError: If an override is not a finite positive number
                within ``MAX_TIMEOUT``.
        """
        changes: dict[str, float] = {}
        if response_timeout is not None:
            changes["response_timeout"] = _require_positive("--timeout", response_timeout)
        if connect_timeout is not None:
            changes["connect_timeout"] = _require_positive("--connect-timeout", connect_timeout)
        return replace(self, **changes)


def _require_positive(name: str, value: float) -> float:
    if not math.isfinite(value):
        msg = f"{name} must be a finite number, got: {value}"
        raise ConfigError(msg)
    if value <= 0:
        msg = f"{name} must be positive, got: {value}"
        raise ConfigError(msg)
    if value > MAX_TIMEOUT:
        msg = f"{name} must be at most {MAX_TIMEOUT:g} seconds, got: {value:g}"
        raise ConfigError(msg)
    return value


def _float_from_env(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        value = float(raw)
    except ValueError:
        msg = f"{name} must be a number, got: {raw!r}"
        raise ConfigError(msg) from None
    return _require_positive(name, value)


def load_config() -> RescaleConfig:
    """Load configuration from environment variables with defaults.

    Environment variables:
        CCSRESCALE_RESPONSE_TIMEOUT: Reply timeout in seconds (default: 180).
        CCSRESCALE_CONNECT_TIMEOUT: Connect timeout in seconds (default: 120).
        CCSRESCALE_LOG_LEVEL: Logger level name (default: WARNING).
        CCSRESCALE_JSON_LOGS: ``1``/``true``/``yes`` for JSON logs.

    Returns:
        Populated RescaleConfig instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    response_timeout = _float_from_env("CCSRESCALE_RESPONSE_TIMEOUT", "180")
    connect_timeout = _float_from_env("CCSRESCALE_CONNECT_TIMEOUT", "120")

    level_str = os.environ.get("CCSRESCALE_LOG_LEVEL", "WARNING")
    try:
        log_level = parse_level(level_str)
    except ValueError:
        msg = f"CCSRESCALE_LOG_LEVEL must be a log level name, got: {level_str!r}"
        raise ConfigError(msg) from None

    json_str = os.environ.get("CCSRESCALE_JSON_LOGS", "").strip().lower()
    if json_str in _TRUTHY:
        json_logs = True
    elif json_str in _FALSY:
        json_logs = False
    else:
        msg = f"CCSRESCALE_JSON_LOGS must be a boolean, got: {json_str!r}"
        raise ConfigError(msg)

    return RescaleConfig(
        response_timeout=response_timeout,
        connect_timeout=connect_timeout,
        log_level=log_level,
        json_logs=json_logs,
    )

"""
Process-wide configuration for the request pipeline.

``FetchConfig`` groups the throttling, retry, breaker and fallback
settings. Updates are lenient: only fields present in the partial mapping
are touched, and malformed values are dropped so that bad configuration
never breaks a request in flight.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from app_store_fetch.resilience.circuit_breaker import CircuitBreakerConfig
from app_store_fetch.resilience.fallback import FallbackConfig
from app_store_fetch.resilience.retry import RetryConfig
from app_store_fetch.resilience.throttle import ThrottleConfig
from app_store_fetch.telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = get_logger("app_store_fetch.config")

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off"})

# Returned by a coercer handed this as the current value when input is invalid.
_INVALID: Any = object()


def _to_number(value: Any) -> float | None:
    """Interpret a value as a finite number, or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def coerce_bool(value: Any, current: bool) -> bool:
    """Coerce a flag, keeping ``current`` for unrecognized input."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return current


def coerce_positive_int(value: Any, current: int) -> int:
    """Coerce a strictly positive integer, keeping ``current`` otherwise."""
    number = _to_number(value)
    if number is None or int(number) <= 0:
        return current
    return int(number)


def coerce_non_negative_int(value: Any, current: int) -> int:
    """Coerce an integer >= 0, keeping ``current`` otherwise."""
    number = _to_number(value)
    if number is None or number < 0:
        return current
    return int(number)


def coerce_url(value: Any, current: str) -> str:
    """Accept an http(s) URL string, keeping ``current`` otherwise."""
    if isinstance(value, str) and value.startswith(("http://", "https://")):
        return value
    return current


# section -> accepted key -> (attribute, coercer)
_FIELDS: dict[str, dict[str, tuple[str, Any]]] = {
    "throttling": {
        "enabled": ("enabled", coerce_bool),
        "requests": ("requests", coerce_positive_int),
        "interval_ms": ("interval_ms", coerce_positive_int),
        "intervalMs": ("interval_ms", coerce_positive_int),
    },
    "retry": {
        "enabled": ("enabled", coerce_bool),
        "retries": ("retries", coerce_non_negative_int),
        "attempt_timeout_ms": ("attempt_timeout_ms", coerce_positive_int),
        "attemptTimeoutMs": ("attempt_timeout_ms", coerce_positive_int),
        "total_timeout_ms": ("total_timeout_ms", coerce_positive_int),
        "totalTimeoutMs": ("total_timeout_ms", coerce_positive_int),
        "backoff_base_ms": ("backoff_base_ms", coerce_positive_int),
        "backoffBaseMs": ("backoff_base_ms", coerce_positive_int),
    },
    "breaker": {
        "enabled": ("enabled", coerce_bool),
        "failure_threshold": ("failure_threshold", coerce_positive_int),
        "failureThreshold": ("failure_threshold", coerce_positive_int),
        "open_ms": ("open_ms", coerce_positive_int),
        "openMs": ("open_ms", coerce_positive_int),
        "half_open_probe_interval_ms": ("half_open_probe_interval_ms", coerce_positive_int),
        "halfOpenProbeIntervalMs": ("half_open_probe_interval_ms", coerce_positive_int),
    },
    "fallback": {
        "enabled": ("enabled", coerce_bool),
        "proxy_url": ("proxy_url", coerce_url),
        "proxyUrl": ("proxy_url", coerce_url),
    },
}

# environment variable -> (section, key)
_ENV_VARS: dict[str, tuple[str, str]] = {
    "APP_STORE_FETCH_THROTTLE_ENABLED": ("throttling", "enabled"),
    "APP_STORE_FETCH_THROTTLE_REQUESTS": ("throttling", "requests"),
    "APP_STORE_FETCH_THROTTLE_INTERVAL_MS": ("throttling", "interval_ms"),
    "APP_STORE_FETCH_RETRY_ENABLED": ("retry", "enabled"),
    "APP_STORE_FETCH_RETRIES": ("retry", "retries"),
    "APP_STORE_FETCH_ATTEMPT_TIMEOUT_MS": ("retry", "attempt_timeout_ms"),
    "APP_STORE_FETCH_TOTAL_TIMEOUT_MS": ("retry", "total_timeout_ms"),
    "APP_STORE_FETCH_BREAKER_ENABLED": ("breaker", "enabled"),
    "APP_STORE_FETCH_BREAKER_FAILURE_THRESHOLD": ("breaker", "failure_threshold"),
    "APP_STORE_FETCH_BREAKER_OPEN_MS": ("breaker", "open_ms"),
    "APP_STORE_FETCH_BREAKER_PROBE_INTERVAL_MS": ("breaker", "half_open_probe_interval_ms"),
    "APP_STORE_FETCH_PROXY_URL": ("fallback", "proxy_url"),
}


@dataclass
class FetchConfig:
    """Combined configuration for the request pipeline.

    The section objects are shared by reference with the components that
    read them, so updates apply to requests started afterwards.

    Attributes:
        throttling: Request throttler configuration
        retry: Retry controller configuration
        breaker: Circuit breaker configuration
        fallback: Fallback chain configuration
    """

    throttling: ThrottleConfig = field(default_factory=ThrottleConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    breaker: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    fallback: FallbackConfig = field(default_factory=FallbackConfig)

    @classmethod
    def default(cls) -> FetchConfig:
        """Create default configuration."""
        return cls()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> FetchConfig:
        """Create configuration from environment variables.

        Unset or malformed variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        partial: dict[str, dict[str, Any]] = {}
        for var, (section, key) in _ENV_VARS.items():
            if var in env:
                partial.setdefault(section, {})[key] = env[var]
        config = cls()
        config.update(partial)
        return config

    def update(self, partial: Mapping[str, Any] | None) -> FetchConfig:
        """Merge a partial configuration in place.

        Only keys present in ``partial`` are considered. Unknown keys and
        malformed values are ignored; nothing is raised.

        Args:
            partial: Mapping of section name to a mapping of fields

        Returns:
            Self for chaining
        """
        if not partial or not hasattr(partial, "items"):
            return self

        for section_name, values in partial.items():
            fields = _FIELDS.get(section_name)
            if fields is None:
                logger.debug("Ignoring unknown config section", section=section_name)
                continue
            if not values or not hasattr(values, "items"):
                continue

            section = getattr(self, section_name)
            for key, raw in values.items():
                spec = fields.get(key)
                if spec is None:
                    logger.debug(
                        "Ignoring unknown config key", section=section_name, key=key
                    )
                    continue
                attr, coerce = spec
                value = coerce(raw, _INVALID)
                if value is _INVALID:
                    logger.debug(
                        "Ignoring invalid config value",
                        section=section_name,
                        key=key,
                        value=repr(raw),
                    )
                    continue
                setattr(section, attr, value)

        return self

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Snapshot of all settings, keyed like ``update`` input."""
        return {
            name: {attr: getattr(getattr(self, name), attr) for attr, _ in fields.values()}
            for name, fields in _FIELDS.items()
        }

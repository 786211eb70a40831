"""Tests for the configuration store."""

import math

import pytest

from app_store_fetch.config import (
    FetchConfig,
    coerce_bool,
    coerce_non_negative_int,
    coerce_positive_int,
)
from app_store_fetch.request import configure
from app_store_fetch.resilience.context import ResilienceContext, get_default_context


class TestCoercion:
    """Tests for the lenient field coercers."""

    @pytest.mark.parametrize("value", ["abc", None, 0, -5, "0", math.nan, True, [], "-1"])
    def test_positive_int_keeps_current_on_bad_input(self, value: object) -> None:
        """Invalid or non-positive input keeps the previous value."""
        assert coerce_positive_int(value, 7) == 7

    def test_positive_int_accepts_numeric_strings(self) -> None:
        """Numeric strings are accepted."""
        assert coerce_positive_int("250", 7) == 250
        assert coerce_positive_int(12.0, 7) == 12

    def test_non_negative_int_accepts_zero(self) -> None:
        """Zero retries is a legal setting."""
        assert coerce_non_negative_int(0, 3) == 0
        assert coerce_non_negative_int(-1, 3) == 3
        assert coerce_non_negative_int("x", 3) == 3

    def test_bool(self) -> None:
        """Flags accept bools and common spellings only."""
        assert coerce_bool(False, True) is False
        assert coerce_bool("yes", False) is True
        assert coerce_bool("off", True) is False
        assert coerce_bool("maybe", True) is True
        assert coerce_bool(None, False) is False


class TestFetchConfig:
    """Tests for FetchConfig."""

    def test_defaults(self) -> None:
        """Test default configuration values."""
        config = FetchConfig()
        assert config.throttling.enabled is False
        assert config.throttling.requests == 10
        assert config.throttling.interval_ms == 1000
        assert config.retry.enabled is True
        assert config.retry.retries == 1
        assert config.retry.attempt_timeout_ms == 1500
        assert config.retry.total_timeout_ms == 4000
        assert config.breaker.enabled is True
        assert config.breaker.failure_threshold == 3
        assert config.breaker.open_ms == 120000
        assert config.breaker.half_open_probe_interval_ms == 30000

    def test_empty_update_is_noop(self) -> None:
        """configure({}) never changes any parameter."""
        config = FetchConfig()
        config.update({"retry": {"retries": 4}})
        before = config.to_dict()

        config.update({})
        config.update(None)
        config.update({"retry": {}})

        assert config.to_dict() == before

    def test_partial_update_touches_only_given_fields(self) -> None:
        """Absent fields keep their current values."""
        config = FetchConfig()
        config.update({"throttling": {"requests": 5}})
        assert config.throttling.requests == 5
        assert config.throttling.interval_ms == 1000
        assert config.throttling.enabled is False

    def test_camel_case_keys(self) -> None:
        """Upstream camelCase spellings are accepted."""
        config = FetchConfig()
        config.update(
            {
                "throttling": {"enabled": True, "intervalMs": 500},
                "retry": {"attemptTimeoutMs": 800, "totalTimeoutMs": 2000},
                "breaker": {"failureThreshold": 5, "openMs": 1000, "halfOpenProbeIntervalMs": 200},
            }
        )
        assert config.throttling.enabled is True
        assert config.throttling.interval_ms == 500
        assert config.retry.attempt_timeout_ms == 800
        assert config.retry.total_timeout_ms == 2000
        assert config.breaker.failure_threshold == 5
        assert config.breaker.open_ms == 1000
        assert config.breaker.half_open_probe_interval_ms == 200

    def test_malformed_values_are_dropped(self) -> None:
        """Malformed numbers never become 0 or NaN, and nothing raises."""
        config = FetchConfig()
        config.update(
            {
                "throttling": {"requests": 0, "intervalMs": "soon"},
                "retry": {"retries": -2, "attemptTimeoutMs": math.nan},
                "breaker": {"failureThreshold": 0, "openMs": None},
                "fallback": {"proxyUrl": "not a url"},
            }
        )
        assert config.throttling.requests == 10
        assert config.throttling.interval_ms == 1000
        assert config.retry.retries == 1
        assert config.retry.attempt_timeout_ms == 1500
        assert config.breaker.failure_threshold == 3
        assert config.breaker.open_ms == 120000
        assert config.fallback.proxy_url == "https://api.allorigins.win/get"

    def test_unknown_sections_and_keys_are_ignored(self) -> None:
        """Unknown input is ignored rather than raising."""
        config = FetchConfig()
        before = config.to_dict()
        config.update({"cache": {"ttl": 10}, "retry": {"jitter": "full"}, "breaker": "on"})
        assert config.to_dict() == before

    def test_from_env(self) -> None:
        """Environment variables override defaults, bad ones are ignored."""
        config = FetchConfig.from_env(
            {
                "APP_STORE_FETCH_RETRIES": "0",
                "APP_STORE_FETCH_BREAKER_FAILURE_THRESHOLD": "zero",
                "APP_STORE_FETCH_THROTTLE_ENABLED": "true",
                "APP_STORE_FETCH_PROXY_URL": "https://relay.example.com/get",
            }
        )
        assert config.retry.retries == 0
        assert config.breaker.failure_threshold == 3
        assert config.throttling.enabled is True
        assert config.fallback.proxy_url == "https://relay.example.com/get"


class TestConfigureSharedState:
    """Tests that configure() reaches the components sharing the config."""

    def test_context_components_see_updates(self) -> None:
        """Breaker and throttler read the same config objects."""
        context = ResilienceContext()
        context.configure({"breaker": {"failureThreshold": 9}, "throttling": {"requests": 2}})
        assert context.breaker.config.failure_threshold == 9
        assert context.throttler.config.requests == 2
        assert context.retry_policy().config is context.config.retry

    def test_module_configure_updates_default_context(self) -> None:
        """The module-level configure() acts on the process context."""
        configure({"retry": {"retries": 0}})
        assert get_default_context().config.retry.retries == 0

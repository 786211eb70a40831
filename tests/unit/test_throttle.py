"""Tests for the request throttler."""

import asyncio

import httpx
import pytest

from app_store_fetch.errors import TransportError
from app_store_fetch.resilience import RequestThrottler, ThrottleConfig


class Recorder:
    """Transport primitive stand-in tracking calls and concurrency."""

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.calls: list[tuple[str, dict]] = []
        self.fail_on = fail_on or set()

    async def __call__(self, url: str, **options) -> httpx.Response:
        self.calls.append((url, options))
        await asyncio.sleep(0)
        if url in self.fail_on:
            raise TransportError(f"unreachable: {url}", url=url)
        return httpx.Response(200, text=url)


class TestThrottleConfig:
    """Tests for ThrottleConfig."""

    def test_defaults(self) -> None:
        """Test default throttle configuration."""
        config = ThrottleConfig()
        assert config.enabled is False
        assert config.requests == 10
        assert config.interval_ms == 1000

    def test_from_rps(self) -> None:
        """Test building an enabled config from a rate."""
        config = ThrottleConfig.from_rps(4)
        assert config.enabled is True
        assert config.requests == 4


class TestRequestThrottler:
    """Tests for RequestThrottler."""

    @pytest.mark.asyncio
    async def test_batches_by_window(self, sleep) -> None:
        """Test at most `requests` entries run per window."""
        throttler = RequestThrottler(ThrottleConfig(requests=2, interval_ms=500), sleep=sleep)
        fetch = Recorder()

        futures = [throttler.submit(fetch, f"https://example.com/{i}") for i in range(5)]
        responses = await asyncio.gather(*futures)

        assert [r.text for r in responses] == [f"https://example.com/{i}" for i in range(5)]
        assert throttler.peak_in_flight == 2
        # Three batches (2, 2, 1); no wait after the last one.
        assert sleep.delays == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_fifo_order(self, sleep) -> None:
        """Test entries are dispatched in submission order."""
        throttler = RequestThrottler(ThrottleConfig(requests=1), sleep=sleep)
        fetch = Recorder()

        await asyncio.gather(*(throttler.submit(fetch, f"u{i}") for i in range(4)))
        assert [url for url, _ in fetch.calls] == ["u0", "u1", "u2", "u3"]

    @pytest.mark.asyncio
    async def test_single_request_does_not_sleep(self, sleep) -> None:
        """Test a lone request is dispatched without waiting."""
        throttler = RequestThrottler(ThrottleConfig(requests=3), sleep=sleep)
        response = await throttler.submit(Recorder(), "https://example.com")
        assert response.status_code == 200
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_head_limit_sizes_window(self, sleep) -> None:
        """Test the limit of the entry at the head of the queue sizes its batch."""
        throttler = RequestThrottler(ThrottleConfig(requests=10), sleep=sleep)
        fetch = Recorder()

        futures = [throttler.submit(fetch, f"u{i}", limit=3) for i in range(7)]
        await asyncio.gather(*futures)

        assert throttler.peak_in_flight == 3
        assert len(sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_options_forwarded(self, sleep) -> None:
        """Test queued options reach the transport primitive."""
        throttler = RequestThrottler(sleep=sleep)
        fetch = Recorder()

        await throttler.submit(fetch, "u", {"method": "GET", "headers": {"A": "1"}})
        assert fetch.calls == [("u", {"method": "GET", "headers": {"A": "1"}})]

    @pytest.mark.asyncio
    async def test_failure_settles_only_its_future(self, sleep) -> None:
        """Test a failing entry rejects its own future and others still succeed."""
        throttler = RequestThrottler(ThrottleConfig(requests=3), sleep=sleep)
        fetch = Recorder(fail_on={"bad"})

        good = throttler.submit(fetch, "good")
        bad = throttler.submit(fetch, "bad")
        results = await asyncio.gather(good, bad, return_exceptions=True)

        assert results[0].status_code == 200
        assert isinstance(results[1], TransportError)

    @pytest.mark.asyncio
    async def test_processor_restarts_after_drain(self, sleep) -> None:
        """Test the processing flag resets and a later submit starts a new batch."""
        throttler = RequestThrottler(ThrottleConfig(requests=2), sleep=sleep)
        fetch = Recorder()

        await throttler.submit(fetch, "first")
        await throttler.wait_idle()
        assert throttler.processing is False
        assert throttler.pending == 0

        await throttler.submit(fetch, "second")
        await throttler.wait_idle()
        assert len(fetch.calls) == 2
        assert throttler.in_flight == 0

    @pytest.mark.asyncio
    async def test_interval_read_per_batch(self, sleep) -> None:
        """Test config changes apply to batches started afterwards."""
        config = ThrottleConfig(requests=1, interval_ms=1000)
        throttler = RequestThrottler(config, sleep=sleep)
        config.interval_ms = 250

        await asyncio.gather(*(throttler.submit(Recorder(), f"u{i}") for i in range(3)))
        assert sleep.delays == [0.25, 0.25]

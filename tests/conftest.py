"""Root pytest fixtures for app-store-fetch tests."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from app_store_fetch.request import set_default_orchestrator
from app_store_fetch.resilience.context import set_default_context
from app_store_fetch.telemetry import FetchLogger

if TYPE_CHECKING:
    from collections.abc import Iterator


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Sleep replacement that records delays and only yields to the loop."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.delays: list[float] = []
        self._clock = clock

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        if self._clock is not None:
            self._clock.advance(seconds)
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> FakeClock:
    """A fake clock starting at t=1000s."""
    return FakeClock()


@pytest.fixture
def sleep(clock: FakeClock) -> RecordingSleep:
    """Instant sleep that advances the fake clock."""
    return RecordingSleep(clock)


@pytest.fixture(autouse=True)
def _isolate_process_state() -> Iterator[None]:
    """Each test starts with fresh process-wide state."""
    set_default_context(None)
    set_default_orchestrator(None)
    FetchLogger.reset_throttle()
    yield
    set_default_context(None)
    set_default_orchestrator(None)
    FetchLogger.reset_throttle()

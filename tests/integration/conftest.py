"""
Integration test helper utilities.

Shared fixtures for driving the request pipeline against a mocked
upstream: the direct path, the alternate-profile path and the relay proxy
are told apart by client profile and host.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import pytest

from app_store_fetch.config import FetchConfig
from app_store_fetch.request import RequestOrchestrator
from app_store_fetch.resilience.context import ResilienceContext
from app_store_fetch.transport import HttpTransport

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    Responder = Callable[[httpx.Request], httpx.Response | Awaitable[httpx.Response]]

PROXY_HOST = "api.allorigins.win"


def reply(status: int = 200, text: str = "", json: Any = None) -> Responder:
    """Responder building a fresh response per request."""

    def respond(request: httpx.Request) -> httpx.Response:
        if json is not None:
            return httpx.Response(status, json=json)
        return httpx.Response(status, text=text)

    return respond


def relay(contents: str) -> Responder:
    """Responder for a relay proxy wrapping ``contents`` in its envelope."""
    return reply(200, json={"contents": contents, "status": {"http_code": 200}})


def fail_connect(request: httpx.Request) -> httpx.Response:
    """Responder simulating a refused connection."""
    raise httpx.ConnectError("connection refused", request=request)


class Upstream:
    """Mock upstream routing requests by path and recording them.

    Each route takes one or more responders consumed in order; the last
    one repeats. Async responders are awaited by the mock transport.
    """

    reply = staticmethod(reply)
    relay = staticmethod(relay)
    fail_connect = staticmethod(fail_connect)

    def __init__(self) -> None:
        self.routes: dict[str, list[Responder]] = {
            "direct": [reply(500, "direct route not configured")],
            "alternate": [reply(500, "alternate route not configured")],
            "proxy": [reply(500, "proxy route not configured")],
        }
        self.calls: dict[str, list[httpx.Request]] = {
            "direct": [],
            "alternate": [],
            "proxy": [],
        }

    def on(self, route: str, *responders: Responder) -> Upstream:
        self.routes[route] = list(responders)
        return self

    @staticmethod
    def route_of(request: httpx.Request) -> str:
        if request.url.host == PROXY_HOST:
            return "proxy"
        if request.headers.get("User-Agent", "").startswith("AppStore/"):
            return "alternate"
        return "direct"

    def count(self, route: str) -> int:
        return len(self.calls[route])

    def __call__(self, request: httpx.Request) -> httpx.Response | Awaitable[httpx.Response]:
        route = self.route_of(request)
        index = len(self.calls[route])
        self.calls[route].append(request)
        responders = self.routes[route]
        return responders[min(index, len(responders) - 1)](request)


@pytest.fixture
def upstream() -> Upstream:
    """A mock upstream with every route failing until configured."""
    return Upstream()


@pytest.fixture
def make_orchestrator(upstream: Upstream, clock, sleep):
    """Factory for orchestrators wired to the mock upstream and fake time."""

    def factory(options: dict[str, Any] | None = None) -> RequestOrchestrator:
        context = ResilienceContext(FetchConfig(), clock=clock, sleep=sleep)
        context.configure(options)
        transport = HttpTransport(transport=httpx.MockTransport(upstream))
        return RequestOrchestrator(context, transport)

    return factory

"""
Header profiles and alternative retrieval strategies.

The direct path presents itself as the iTunes desktop client. When that
path is blocked or exhausted, the fallback stages retry the same URL with
the App Store device profile, then through a content relay that fetches
the page server side and wraps it in a JSON envelope.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

import httpx

from app_store_fetch.errors import HttpError, ProxyError
from app_store_fetch.resilience.fallback import FallbackChain, FallbackConfig
from app_store_fetch.telemetry import get_logger

if TYPE_CHECKING:
    from app_store_fetch.transport import HttpTransport

logger = get_logger("app_store_fetch.request.strategies")

DEFAULT_STORE_FRONT = "143441-1,29"

# Options the fallback stages derive themselves instead of copying.
_REBUILT_OPTIONS = frozenset({"method", "headers", "params"})

ALTERNATE_HEADERS: dict[str, str] = {
    "User-Agent": "AppStore/3.0 CFNetwork/1240.0.4 Darwin/20.6.0",
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.9",
    "X-Apple-Store-Front": DEFAULT_STORE_FRONT,
    "X-Apple-Tz": "28800",
}

PROXY_HEADERS: dict[str, str] = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json",
}


def default_headers() -> dict[str, str]:
    """Headers of a legitimate iTunes client, with a fresh request UUID."""
    return {
        "User-Agent": "iTunes/12.12.0 (Macintosh; OS X 10.15.7) AppleWebKit/605.1.15",
        "Accept": "application/json, text/javascript, */*; q=0.01",
        "Accept-Language": "en-us",
        "Accept-Encoding": "gzip, deflate, br",
        "X-Apple-Store-Front": DEFAULT_STORE_FRONT,
        "X-Apple-Tz": "28800",
        "X-Apple-Request-UUID": str(uuid.uuid4()),
    }


@dataclass
class RequestContext:
    """Everything one logical request needs; owned by a single call.

    Attributes:
        url: Target URL
        headers: Final headers of the direct path (defaults + overrides)
        header_overrides: Headers supplied by the caller
        options: Transport options supplied by the caller
        limit: Per-call window size for throttling
        request_id: Identifier used in logs
    """

    url: str
    headers: dict[str, str] = field(default_factory=dict)
    header_overrides: dict[str, str] = field(default_factory=dict)
    options: dict[str, Any] = field(default_factory=dict)
    limit: int | None = None
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    @classmethod
    def build(
        cls,
        url: str,
        headers: dict[str, str] | None = None,
        options: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> RequestContext:
        """Merge caller headers over the default client profile."""
        overrides = dict(headers or {})
        return cls(
            url=url,
            headers={**default_headers(), **overrides},
            header_overrides=overrides,
            options=dict(options or {}),
            limit=limit,
        )

    def fetch_options(self) -> dict[str, Any]:
        """Keyword options for the direct-path transport call."""
        opts: dict[str, Any] = {"method": "GET", **self.options}
        opts["headers"] = self.headers
        return opts

    def effective_url(self) -> str:
        """The URL actually requested, with caller ``params`` merged into the query."""
        params = self.options.get("params")
        if not params:
            return self.url
        return str(httpx.URL(self.url).copy_merge_params(params))

    def passthrough_options(self) -> dict[str, Any]:
        """Caller options for re-issuing the request with other headers."""
        return {k: v for k, v in self.options.items() if k not in _REBUILT_OPTIONS}


async def fetch_direct_alternate(
    transport: HttpTransport, context: RequestContext
) -> str:
    """Reissue the URL with the App Store device profile, once.

    Raises:
        HttpError: If the response is not OK
    """
    url = context.effective_url()
    logger.debug("Trying direct request with alternate headers", url=url)
    response = await transport.fetch(
        url,
        method=context.options.get("method", "GET"),
        headers=dict(ALTERNATE_HEADERS),
        **context.passthrough_options(),
    )
    if response.is_success:
        return response.text
    raise HttpError.from_response(response)


async def fetch_via_proxy(
    transport: HttpTransport, context: RequestContext, proxy_url: str
) -> str:
    """Fetch the URL through the content relay and unwrap its envelope.

    Raises:
        ProxyError: If the relay fails or returns no contents
    """
    relay_url = f"{proxy_url}?{urlencode({'url': context.effective_url()})}"
    logger.debug("Using relay proxy", proxy=relay_url)

    response = await transport.fetch(relay_url, method="GET", headers=dict(PROXY_HEADERS))
    if not response.is_success:
        raise ProxyError(
            f"Proxy request failed: {response.status_code}",
            status_code=response.status_code,
        )

    try:
        envelope = response.json()
    except ValueError as e:
        raise ProxyError("Proxy returned a non-JSON envelope") from e

    contents = envelope.get("contents") if isinstance(envelope, dict) else None
    if not contents:
        raise ProxyError(
            f"Proxy request failed: {response.status_code}",
            status_code=response.status_code,
        )
    return contents if isinstance(contents, str) else str(contents)


def build_default_chain(
    transport: HttpTransport, config: FallbackConfig | None = None
) -> FallbackChain:
    """Build the standard chain: alternate headers first, then the relay."""
    config = config or FallbackConfig()

    async def direct_alternate(context: RequestContext) -> str:
        return await fetch_direct_alternate(transport, context)

    async def relay_proxy(context: RequestContext) -> str:
        # Read at call time so configure() changes apply.
        return await fetch_via_proxy(transport, context, config.proxy_url)

    return (
        FallbackChain(config)
        .add_strategy("direct_alternate", direct_alternate)
        .add_strategy("relay_proxy", relay_proxy)
    )

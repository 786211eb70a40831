"""HTTP 传输层：基于 httpx 的异步 HTTP 客户端。

HTTP transport using httpx for async requests.

Provides the transport primitive the request pipeline is built on:
``fetch`` returns every received response, OK or not, and raises
``TransportError`` only when no response was obtained.
"""

from __future__ import annotations

import os
from contextlib import suppress
from typing import Any

import httpx

from app_store_fetch.errors import TransportError
from app_store_fetch.telemetry import get_logger

logger = get_logger("app_store_fetch.transport.http")

# Default timeouts
_DEFAULT_TIMEOUT = 30.0
_DEFAULT_CONNECT_TIMEOUT = 10.0

# Per-request keyword options forwarded to httpx
_FORWARDED_OPTIONS = frozenset(
    {"params", "content", "data", "json", "cookies", "timeout", "follow_redirects"}
)


def _trust_env_enabled() -> bool:
    """Use env proxy settings only when explicitly enabled."""
    return os.getenv("APP_STORE_FETCH_TRUST_ENV", "0") == "1"


class HttpTransport:
    """HTTP transport for upstream communication.

    Example:
        >>> transport = HttpTransport()
        >>> response = await transport.fetch(
        ...     "https://itunes.apple.com/lookup?id=553834731",
        ...     headers={"Accept": "application/json"},
        ... )
        >>> response.status_code
        200
    """

    def __init__(
        self,
        *,
        timeout: float | None = None,
        proxy: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize HTTP transport.

        Args:
            timeout: Request timeout in seconds
            proxy: Outbound proxy URL
            transport: Custom httpx transport (e.g. ``httpx.MockTransport``)
            client: Pre-built client; the transport will not close it
        """
        self._timeout = timeout
        if self._timeout is None:
            env_timeout = os.getenv("APP_STORE_FETCH_TIMEOUT_SECS")
            if env_timeout:
                with suppress(ValueError):
                    self._timeout = float(env_timeout)
        if self._timeout is None:
            self._timeout = _DEFAULT_TIMEOUT

        self._proxy = proxy
        self._transport = transport
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            timeout = httpx.Timeout(self._timeout, connect=_DEFAULT_CONNECT_TIMEOUT)
            self._client = httpx.AsyncClient(
                timeout=timeout,
                proxy=self._proxy,
                transport=self._transport,
                follow_redirects=True,
                trust_env=_trust_env_enabled(),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        **options: Any,
    ) -> httpx.Response:
        """Issue one request and return whatever response comes back.

        Args:
            url: Absolute URL
            method: HTTP method
            headers: Request headers
            **options: Extra httpx request options (params, timeout, ...);
                unsupported options are dropped

        Returns:
            The response, with its body read

        Raises:
            TransportError: On network/connection errors (no response)
        """
        dropped = set(options) - _FORWARDED_OPTIONS
        if dropped:
            logger.debug("Dropping unsupported fetch options", options=sorted(dropped))
        kwargs = {k: v for k, v in options.items() if k in _FORWARDED_OPTIONS}

        client = self._get_client()
        try:
            response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.ConnectError as e:
            raise TransportError(f"Connection failed: {e}", url=url, cause=e) from e
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timed out: {e}", url=url, cause=e) from e
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP error: {e}", url=url, cause=e) from e

        logger.debug(
            "Response received",
            status=response.status_code,
            reason=response.reason_phrase,
        )
        return response

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

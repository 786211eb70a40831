"""
iTunes lookup endpoint.

Builds the lookup URL, fetches it through the resilient pipeline and maps
software records onto ``App``.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

from app_store_fetch.request.orchestrator import get_default_orchestrator
from app_store_fetch.types.app import App

if TYPE_CHECKING:
    from collections.abc import Iterable

    from app_store_fetch.request.orchestrator import RequestOrchestrator

LOOKUP_URL = "https://itunes.apple.com/lookup"


def build_lookup_url(
    ids: Iterable[int | str],
    id_field: str = "id",
    country: str = "us",
    lang: str | None = None,
) -> str:
    """Build a lookup URL for one or more identifiers.

    Args:
        ids: Track ids or bundle ids
        id_field: Query field the ids are matched on (``id``, ``bundleId``)
        country: Storefront country code
        lang: Optional response language

    Returns:
        Absolute lookup URL
    """
    params: dict[str, str] = {
        id_field: ",".join(str(i) for i in ids),
        "country": country,
        "entity": "software",
    }
    if lang:
        params["lang"] = lang
    return f"{LOOKUP_URL}?{urlencode(params, safe=',')}"


def parse_lookup_response(body: str) -> list[App]:
    """Parse a lookup body, keeping software records only.

    Raises:
        json.JSONDecodeError: If the body is not JSON
        pydantic.ValidationError: If a software record has mistyped fields
    """
    payload: dict[str, Any] = json.loads(body)
    results = payload.get("results") or []
    return [
        App.from_upstream(record)
        for record in results
        if record.get("wrapperType") in (None, "software")
    ]


async def lookup(
    ids: Iterable[int | str],
    id_field: str | None = None,
    country: str | None = None,
    lang: str | None = None,
    options: dict[str, Any] | None = None,
    limit: int | None = None,
    *,
    orchestrator: RequestOrchestrator | None = None,
) -> list[App]:
    """Look up applications by id.

    Args:
        ids: Identifiers to look up
        id_field: Query field (default ``id``)
        country: Storefront country code (default ``us``)
        lang: Optional response language
        options: Transport options for the request
        limit: Requests per throttle window
        orchestrator: Orchestrator to use (process default if omitted)

    Returns:
        Apps found, in upstream order

    Raises:
        FetchError: If the request fails on every path
        json.JSONDecodeError: If the body is not JSON
        pydantic.ValidationError: If a software record has mistyped fields
    """
    url = build_lookup_url(ids, id_field or "id", country or "us", lang)
    orchestrator = orchestrator or get_default_orchestrator()
    body = await orchestrator.request(url, {}, options, limit)
    return parse_lookup_response(body)

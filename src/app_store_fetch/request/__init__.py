"""
Request layer - the resilient pipeline entry point.

Provides:
- RequestOrchestrator: breaker-gated, retried, throttled fetch with fallback
- RequestContext: per-call request description
- Header profiles and the default fallback strategies
- Module-level ``configure`` and ``request`` bound to the process context
"""

from app_store_fetch.request.orchestrator import (
    RequestOrchestrator,
    configure,
    get_default_orchestrator,
    request,
    set_default_orchestrator,
)
from app_store_fetch.request.strategies import (
    ALTERNATE_HEADERS,
    PROXY_HEADERS,
    RequestContext,
    build_default_chain,
    default_headers,
    fetch_direct_alternate,
    fetch_via_proxy,
)

__all__ = [
    "ALTERNATE_HEADERS",
    "PROXY_HEADERS",
    "RequestContext",
    "RequestOrchestrator",
    "build_default_chain",
    "configure",
    "default_headers",
    "fetch_direct_alternate",
    "fetch_via_proxy",
    "get_default_orchestrator",
    "request",
    "set_default_orchestrator",
]

#!/usr/bin/env python3
"""
Resilience patterns example.

This example demonstrates the request pipeline against the live iTunes
lookup endpoint:
- Tuning retry, breaker and throttling through configure()
- Throttled concurrent lookups with a per-call limit
- Inspecting breaker state after requests

Usage:
    export APP_STORE_FETCH_LOG_LEVEL=debug   # optional, shows pipeline decisions
    python examples/resilience.py
"""

import asyncio

from app_store_fetch import (
    FetchError,
    configure,
    get_default_context,
    lookup,
    store_id,
)

APP_IDS = [553834731, 284882215, 389801252, 324684580, 310633997]


async def single_lookup() -> None:
    """Look up one app with the default pipeline."""
    print("Looking up a single app...")
    apps = await lookup([553834731], country="us")
    for app in apps:
        print(f"  {app.title} by {app.developer} (free: {app.free})")
    print()


async def tuned_pipeline() -> None:
    """Tighten retry and breaker settings for a flaky network."""
    print("=" * 50)
    print("Configuring the pipeline...")
    configure(
        {
            "retry": {"retries": 2, "attemptTimeoutMs": 1000, "totalTimeoutMs": 3000},
            "breaker": {"failureThreshold": 5, "openMs": 60000},
        }
    )
    print(f"  config: {get_default_context().config.to_dict()}")
    print()


async def concurrent_lookups() -> None:
    """Run several lookups at once, at most two per window."""
    print("=" * 50)
    print(f"Starting {len(APP_IDS)} concurrent lookups (2 per window)...")

    async def one(app_id: int) -> str:
        try:
            apps = await lookup([app_id], country="gb", limit=2)
        except FetchError as e:
            return f"  {app_id}: failed ({e})"
        title = apps[0].title if apps else "not found"
        return f"  {app_id}: {title}"

    for line in await asyncio.gather(*(one(i) for i in APP_IDS)):
        print(line)

    context = get_default_context()
    print()
    print(f"Storefront for GB: {store_id('gb')}")
    print(f"Peak in-flight: {context.throttler.peak_in_flight}")
    print(f"Breaker: {context.breaker!r}")


async def main() -> None:
    """Run resilience examples."""
    await single_lookup()
    await tuned_pipeline()
    await concurrent_lookups()


if __name__ == "__main__":
    asyncio.run(main())

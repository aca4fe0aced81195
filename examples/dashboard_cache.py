"""
dashboard_cache.py - Shared data cache behind a rentals dashboard.

Demonstrates read-through loading, cache hits across views, and refresh
after a write is announced on the invalidation bus.

Usage:
    export RENTALCORE_CACHE_SLOT=file
    python examples/dashboard_cache.py
"""

import asyncio

from rentalcore import CacheSettings, DataCache, DataSourceOptions

RENTALS = [
    {"id": "r1", "client": "Acme", "status": "open"},
    {"id": "r2", "client": "Globex", "status": "closed"},
]


async def fetch_rentals(params, token):
    await asyncio.sleep(0.05)
    status = params.get("status")
    return [row for row in RENTALS if status is None or row["status"] == status]


async def main() -> None:
    async with DataCache(CacheSettings.from_env()) as cache:
        board = cache.source("rentals", fetch_rentals, {"status": "open"})
        sidebar = cache.source(
            "rentals",
            fetch_rentals,
            {"status": "open"},
            DataSourceOptions(auto_refresh=True, refresh_interval_s=30),
        )
        await board.start()
        outcome = await sidebar.start()
        print("board:", board.data)
        print("sidebar served from cache:", outcome is not None and outcome.from_cache)

        RENTALS.append({"id": "r3", "client": "Initech", "status": "open"})
        await cache.notify_change("rentals", "create", source="example")
        await asyncio.sleep(0.1)
        print("board after create:", board.data)
        print("stats:", cache.stats())


if __name__ == "__main__":
    asyncio.run(main())

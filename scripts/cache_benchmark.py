#!/usr/bin/env python3
"""
Cache benchmark utility for de-duplication and hit-rate characterization.

Fires bursts of concurrent loads at a few keys and reports how many backend
fetches they turned into.

Usage examples:
  PYTHONPATH=src python scripts/cache_benchmark.py --slot memory
  PYTHONPATH=src python scripts/cache_benchmark.py --slot file --slot-file /tmp/rentalcore.json
  PYTHONPATH=src python scripts/cache_benchmark.py --slot redis --redis-url redis://localhost:6379/0
"""

from __future__ import annotations

import argparse
import asyncio
import statistics
import time
import uuid

from rentalcore import DataCache, LoadOptions
from rentalcore.cache import (
    InMemoryCacheMetrics,
    InMemoryCacheSlot,
    JSONFileCacheSlot,
    RedisCacheSlot,
)
from rentalcore.settings import CacheSettings


async def run_benchmark(
    *,
    slot_backend: str,
    bursts: int,
    burst_size: int,
    keys: int,
    latency_ms: float,
    slot_file: str,
    redis_url: str | None,
) -> None:
    client = None
    if slot_backend == "memory":
        slot = InMemoryCacheSlot()
    elif slot_backend == "file":
        slot = JSONFileCacheSlot(slot_file)
    elif slot_backend == "redis":
        if not redis_url:
            raise ValueError("--redis-url is required for redis slot")
        import redis.asyncio as redis

        client = redis.Redis.from_url(redis_url)
        slot = RedisCacheSlot(client, key=f"bench:cache:{uuid.uuid4().hex}")
    else:
        raise ValueError(f"Unsupported slot: {slot_backend}")

    metrics = InMemoryCacheMetrics()
    fetches = 0
    latencies: list[float] = []

    async def fetch_rentals(params, token):
        nonlocal fetches
        fetches += 1
        await asyncio.sleep(latency_ms / 1000.0)
        return [{"id": f"r{params['page']}-{i}"} for i in range(25)]

    async def timed_load(cache: DataCache, page: int, force: bool) -> str:
        started = time.perf_counter()
        outcome = await cache.load(
            "rentals",
            fetch_rentals,
            {"page": page},
            LoadOptions(force_refresh=force),
        )
        latencies.append(time.perf_counter() - started)
        return outcome.status

    statuses: dict[str, int] = {}
    started = time.time()
    async with DataCache(CacheSettings(), slot=slot, metrics=metrics) as cache:
        for burst in range(bursts):
            # Every other burst forces a refresh so superseding is exercised.
            force = burst % 2 == 1
            results = await asyncio.gather(
                *(timed_load(cache, i % keys, force) for i in range(burst_size))
            )
            for status in results:
                statuses[status] = statuses.get(status, 0) + 1
        if slot_backend == "redis":
            await cache.clear()
    elapsed = time.time() - started
    if client is not None:
        await client.aclose()

    requests = bursts * burst_size
    p50 = statistics.median(latencies) if latencies else 0.0
    p95 = sorted(latencies)[int(0.95 * (len(latencies) - 1))] if latencies else 0.0

    print(f"slot={slot_backend}")
    print(f"requests={requests}")
    print(f"backend_fetches={fetches}")
    print(f"dedup_ratio={requests / fetches if fetches else 0.0:.2f}")
    for status in sorted(statuses):
        print(f"outcome_{status}={statuses[status]}")
    for name in sorted(metrics.counters):
        print(f"{name}={metrics.counters[name]}")
    print(f"elapsed_s={elapsed:.3f}")
    print(f"load_p50_ms={p50 * 1000:.2f}")
    print(f"load_p95_ms={p95 * 1000:.2f}")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cache benchmark utility")
    parser.add_argument("--slot", choices=("memory", "file", "redis"), default="memory")
    parser.add_argument("--bursts", type=int, default=20)
    parser.add_argument("--burst-size", type=int, default=50)
    parser.add_argument("--keys", type=int, default=4)
    parser.add_argument("--latency-ms", type=float, default=10.0)
    parser.add_argument("--slot-file", type=str, default=".rentalcore/bench-cache.json")
    parser.add_argument("--redis-url", type=str, default=None)
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    asyncio.run(
        run_benchmark(
            slot_backend=args.slot,
            bursts=args.bursts,
            burst_size=args.burst_size,
            keys=args.keys,
            latency_ms=args.latency_ms,
            slot_file=args.slot_file,
            redis_url=args.redis_url,
        )
    )


if __name__ == "__main__":
    main()

"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Durable slot backends for cache snapshots and env-driven selection.
"""

from __future__ import annotations

import asyncio
import os
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..errors import CacheSlotError
from .base import CacheSlot

if TYPE_CHECKING:
    from ..settings import CacheSettings


class NullCacheSlot(CacheSlot):
    """Slot that persists nothing; every start is cold."""

    slot_id = "none"

    async def save(self, payload: str) -> None:
        _ = payload

    async def load(self) -> str | None:
        return None

    async def clear(self) -> None:
        return None


class InMemoryCacheSlot(CacheSlot):
    """
    Process-local slot suitable for development/test workloads.

    Sharing one instance between two stores simulates a process restart.
    """

    slot_id = "memory"

    def __init__(self, payload: str | None = None) -> None:
        self.payload = payload
        self.save_count = 0

    async def save(self, payload: str) -> None:
        self.payload = payload
        self.save_count += 1

    async def load(self) -> str | None:
        return self.payload

    async def clear(self) -> None:
        self.payload = None


class JSONFileCacheSlot(CacheSlot):
    """
    File-backed slot with a process-local lock.

    Writes go to a sibling temp file first and are renamed into place so a
    crash mid-write never leaves a truncated snapshot behind.
    """

    slot_id = "file"

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _write(self, payload: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with self._lock:
            with tmp.open("w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp, self._path)

    def _read(self) -> str | None:
        with self._lock:
            if not self._path.exists():
                return None
            return self._path.read_text(encoding="utf-8")

    def _remove(self) -> None:
        with self._lock:
            self._path.unlink(missing_ok=True)

    async def save(self, payload: str) -> None:
        await asyncio.to_thread(self._write, payload)

    async def load(self) -> str | None:
        return await asyncio.to_thread(self._read)

    async def clear(self) -> None:
        await asyncio.to_thread(self._remove)


class RedisCacheSlot(CacheSlot):
    """
    Redis-backed slot for deployments that restart on fresh hosts.

    Requires ``redis.asyncio`` (``pip install redis``).
    """

    slot_id = "redis"

    def __init__(self, redis_client: Any, *, key: str = "rentalcore:data-cache") -> None:
        self._redis = redis_client
        self._key = key

    async def save(self, payload: str) -> None:
        await self._redis.set(self._key, payload)

    async def load(self) -> str | None:
        blob = await self._redis.get(self._key)
        if blob is None:
            return None
        if isinstance(blob, bytes):
            return blob.decode("utf-8")
        return str(blob)

    async def clear(self) -> None:
        await self._redis.delete(self._key)


def create_cache_slot_from_env(
    settings: CacheSettings | None = None,
    *,
    redis_client: Any | None = None,
) -> CacheSlot:
    """
    Create a durable cache slot from settings (default: `CacheSettings.from_env()`).

    Backends:
    - `memory` (default)
    - `file`
    - `redis`
    - `none`
    """
    if settings is None:
        from ..settings import CacheSettings

        settings = CacheSettings.from_env()

    backend = settings.slot_backend.strip().lower()
    if backend in ("mem", "memory", "inmemory", "in_memory"):
        return InMemoryCacheSlot()

    if backend in ("none", "null", "off"):
        return NullCacheSlot()

    if backend in ("file", "json"):
        return JSONFileCacheSlot(settings.slot_file)

    if backend in ("redis",):
        client = redis_client
        if client is None:
            try:
                import redis.asyncio as redis
            except ModuleNotFoundError as exc:  # pragma: no cover
                raise CacheSlotError(
                    "Redis cache slot requires `redis` to be installed."
                ) from exc
            client = redis.Redis.from_url(settings.redis_url or "redis://localhost:6379/0")
        return RedisCacheSlot(client, key=settings.redis_key)

    raise CacheSlotError(f"Unknown RENTALCORE_CACHE_SLOT: {backend}")

"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

TTL-aware in-memory store of fetched collections mirrored to a durable slot.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..clock import ClockSource, SystemClock
from ..types import JsonValue
from .base import CacheEntry, CacheSlot
from .keys import DEFAULT_TTL_S, DEFAULT_TTLS_S, CacheKey, CacheKind, as_cache_key, kind_name
from .metrics import CacheMetrics, NoOpCacheMetrics
from .slots import InMemoryCacheSlot

if TYPE_CHECKING:
    from ..invalidation.types import InvalidationBus, InvalidationEvent

logger = logging.getLogger("rentalcore.cache.store")

SNAPSHOT_VERSION = 1


class _SnapshotRow(BaseModel):
    """One persisted entry; unknown fields are ignored for forward compat."""

    model_config = ConfigDict(extra="ignore")

    key: str = Field(min_length=1)
    data: Any = None
    fetched_at: float
    ttl_s: float = Field(gt=0)


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Point-in-time summary of store contents."""

    size: int
    fresh: int
    stale: int
    keys: list[str] = field(default_factory=list)


class CacheStore:
    """
    Keyed store of fetched collections with per-kind TTL defaults.

    Mutations are applied under a lock in a single assignment so readers
    never observe a half-written entry. After every mutation the whole
    snapshot is written to the durable slot; slot failures are logged and
    otherwise ignored.

    Returned entries carry deep copies of the stored data.
    """

    def __init__(
        self,
        *,
        slot: CacheSlot | None = None,
        clock: ClockSource | None = None,
        ttls_s: Mapping[str, float] | None = None,
        default_ttl_s: float = DEFAULT_TTL_S,
        metrics: CacheMetrics | None = None,
    ) -> None:
        if default_ttl_s <= 0:
            raise ValueError("default_ttl_s must be > 0")
        self._slot: CacheSlot = slot if slot is not None else InMemoryCacheSlot()
        self._clock: ClockSource = clock or SystemClock()
        self._ttls_s = dict(ttls_s or {})
        self._default_ttl_s = default_ttl_s
        self._metrics: CacheMetrics = metrics or NoOpCacheMetrics()
        self._entries: dict[CacheKey, CacheEntry[Any]] = {}
        self._lock = threading.RLock()
        self._save_lock = asyncio.Lock()
        self._unsubscribe: Callable[[], None] | None = None
        self._initialized = False

    @property
    def clock(self) -> ClockSource:
        return self._clock

    @property
    def initialized(self) -> bool:
        return self._initialized

    def ttl_for(self, kind: CacheKind | str) -> float:
        """Default TTL for one kind, honoring constructor overrides."""
        name = kind_name(kind)
        if name in self._ttls_s:
            return float(self._ttls_s[name])
        return DEFAULT_TTLS_S.get(name, self._default_ttl_s)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self) -> int:
        """
        Rehydrate from the durable slot, dropping entries already stale.

        Returns:
            Number of entries restored.
        """
        restored = await self._rehydrate()
        self._initialized = True
        logger.info(
            "CacheStore initialized (slot=%s, restored=%d)",
            getattr(self._slot, "slot_id", type(self._slot).__name__),
            restored,
        )
        return restored

    async def dispose(self) -> None:
        """Detach from any bus and flush the current snapshot."""
        self.detach()
        await self._persist()
        self._initialized = False

    def attach(self, bus: InvalidationBus) -> None:
        """
        Drop a kind's entries whenever a change to it is published.

        The store registers as a catch-all subscriber so it runs before the
        per-kind readers that re-fetch.
        """
        if self._unsubscribe is not None:
            return
        self._unsubscribe = bus.subscribe_all(self._on_invalidation)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _on_invalidation(self, event: InvalidationEvent) -> None:
        await self.invalidate_kind(event.kind)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(
        self,
        key: CacheKey | CacheKind | str,
        params: Mapping[str, JsonValue] | None = None,
    ) -> CacheEntry[Any] | None:
        """Return the entry only while it is fresh. Never fetches."""
        cache_key = as_cache_key(key, params)
        now = self._clock.now()
        with self._lock:
            entry = self._entries.get(cache_key)
            if entry is None or not entry.is_fresh(now):
                return None
            return _snapshot(entry)

    def peek(
        self,
        key: CacheKey | CacheKind | str,
        params: Mapping[str, JsonValue] | None = None,
    ) -> CacheEntry[Any] | None:
        """Return the entry even when stale (last-known-good reads)."""
        cache_key = as_cache_key(key, params)
        with self._lock:
            entry = self._entries.get(cache_key)
            return None if entry is None else _snapshot(entry)

    def is_stale(
        self,
        key: CacheKey | CacheKind | str,
        params: Mapping[str, JsonValue] | None = None,
    ) -> bool:
        """True when the entry is absent or expired."""
        cache_key = as_cache_key(key, params)
        now = self._clock.now()
        with self._lock:
            entry = self._entries.get(cache_key)
            return entry is None or not entry.is_fresh(now)

    def keys(self) -> list[CacheKey]:
        with self._lock:
            return list(self._entries.keys())

    def stats(self) -> CacheStats:
        now = self._clock.now()
        with self._lock:
            fresh = sum(1 for entry in self._entries.values() if entry.is_fresh(now))
            return CacheStats(
                size=len(self._entries),
                fresh=fresh,
                stale=len(self._entries) - fresh,
                keys=sorted(str(key) for key in self._entries),
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def put(
        self,
        key: CacheKey | CacheKind | str,
        data: Any,
        ttl_s: float | None = None,
        *,
        params: Mapping[str, JsonValue] | None = None,
    ) -> CacheEntry[Any]:
        """
        Overwrite the entry for `key`, stamping ``fetched_at = now()``.

        Args:
            key: Cache key, kind enum or kind name.
            data: Collection payload. The store keeps its own copy.
            ttl_s: Explicit TTL; defaults to the per-kind TTL.
            params: Query parameters when `key` is a kind.
        """
        cache_key = as_cache_key(key, params)
        ttl = self.ttl_for(cache_key.kind) if ttl_s is None else float(ttl_s)
        if ttl <= 0:
            raise ValueError("ttl_s must be > 0")
        entry = CacheEntry(
            data=copy.deepcopy(data),
            fetched_at=self._clock.now(),
            ttl_s=ttl,
        )
        with self._lock:
            self._entries[cache_key] = entry
        logger.debug("cache put %s (ttl=%.1fs)", cache_key, ttl)
        await self._persist()
        return _snapshot(entry)

    async def invalidate(
        self,
        key: CacheKey | CacheKind | str | None = None,
        params: Mapping[str, JsonValue] | None = None,
    ) -> int:
        """
        Remove one entry, or every entry when `key` is None.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            kind = "*"
            if key is None:
                removed = len(self._entries)
                self._entries.clear()
            else:
                cache_key = as_cache_key(key, params)
                kind = cache_key.kind
                removed = 1 if self._entries.pop(cache_key, None) is not None else 0
        self._metrics.incr("cache_invalidation_total", removed, tags={"kind": kind})
        logger.debug("cache invalidate %s (removed=%d)", key if key is not None else "*", removed)
        await self._persist()
        return removed

    async def invalidate_kind(self, kind: CacheKind | str) -> int:
        """Remove every parameter variant of one kind."""
        name = kind_name(kind)
        with self._lock:
            doomed = [key for key in self._entries if key.kind == name]
            for key in doomed:
                del self._entries[key]
        self._metrics.incr("cache_invalidation_total", len(doomed), tags={"kind": name})
        logger.debug("cache invalidate kind=%s (removed=%d)", name, len(doomed))
        await self._persist()
        return len(doomed)

    async def prune(self) -> int:
        """Drop expired entries. Returns the number removed."""
        now = self._clock.now()
        with self._lock:
            doomed = [key for key, entry in self._entries.items() if not entry.is_fresh(now)]
            for key in doomed:
                del self._entries[key]
        if doomed:
            await self._persist()
        return len(doomed)

    async def clear(self) -> None:
        """Remove all entries and the persisted snapshot."""
        with self._lock:
            self._entries.clear()
        async with self._save_lock:
            try:
                await self._slot.clear()
            except Exception:  # noqa: BLE001
                logger.warning("CacheStore failed to clear durable slot", exc_info=True)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _serialize(self) -> str:
        with self._lock:
            rows = [
                {
                    "key": str(key),
                    "data": entry.data,
                    "fetched_at": entry.fetched_at,
                    "ttl_s": entry.ttl_s,
                }
                for key, entry in self._entries.items()
            ]
        return json.dumps({"version": SNAPSHOT_VERSION, "entries": rows}, ensure_ascii=True)

    async def _persist(self) -> None:
        async with self._save_lock:
            try:
                payload = self._serialize()
                await self._slot.save(payload)
            except Exception:  # noqa: BLE001
                logger.warning("CacheStore failed to persist snapshot", exc_info=True)

    async def _rehydrate(self) -> int:
        try:
            raw = await self._slot.load()
        except Exception:  # noqa: BLE001
            logger.warning("CacheStore failed to load durable slot", exc_info=True)
            return 0
        if not raw:
            return 0

        try:
            blob = json.loads(raw)
        except ValueError:
            logger.warning("CacheStore ignored unreadable snapshot")
            return 0
        rows = blob.get("entries") if isinstance(blob, dict) else None
        if not isinstance(rows, list):
            return 0

        now = self._clock.now()
        restored = 0
        with self._lock:
            for raw_row in rows:
                try:
                    row = _SnapshotRow.model_validate(raw_row)
                    cache_key = CacheKey.parse(row.key)
                except (ValidationError, ValueError):
                    logger.debug("CacheStore skipped malformed snapshot row")
                    continue
                entry = CacheEntry(data=row.data, fetched_at=row.fetched_at, ttl_s=row.ttl_s)
                if not entry.is_fresh(now):
                    continue
                if cache_key in self._entries:
                    continue
                self._entries[cache_key] = entry
                restored += 1
        return restored


def _snapshot(entry: CacheEntry[Any]) -> CacheEntry[Any]:
    return CacheEntry(
        data=copy.deepcopy(entry.data),
        fetched_at=entry.fetched_at,
        ttl_s=entry.ttl_s,
    )

"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Application root wiring one shared store, bus and coordinator.
"""

from __future__ import annotations

import logging
import weakref
from collections.abc import Mapping
from typing import Any

from .cache.base import CacheSlot
from .cache.keys import CacheKind, kind_name
from .cache.metrics import CacheMetrics, NoOpCacheMetrics
from .cache.slots import create_cache_slot_from_env
from .cache.store import CacheStats, CacheStore
from .clock import ClockSource, SystemClock
from .fetch.coordinator import FetchCoordinator
from .fetch.source import DataSource, DataSourceOptions
from .fetch.types import FetchOutcome, Fetcher, LoadOptions
from .invalidation.memory import InMemoryInvalidationBus
from .invalidation.types import ChangeOperation, InvalidationBus, InvalidationEvent
from .settings import CacheSettings
from .types import JsonValue

logger = logging.getLogger("rentalcore.runtime")


class DataCache:
    """
    Explicitly constructed owner of the process-wide cache.

    Usage::

        async with DataCache(settings=CacheSettings.from_env()) as cache:
            rentals = cache.source("rentals", fetch_rentals, {"limit": 50})
            await rentals.start()
            ...
            await cache.notify_change("rentals", "update")
    """

    def __init__(
        self,
        settings: CacheSettings | None = None,
        *,
        slot: CacheSlot | None = None,
        clock: ClockSource | None = None,
        bus: InvalidationBus | None = None,
        metrics: CacheMetrics | None = None,
    ) -> None:
        self._settings = settings or CacheSettings()
        self._metrics: CacheMetrics = metrics or NoOpCacheMetrics()
        self._clock: ClockSource = clock or SystemClock()
        self._bus: InvalidationBus = bus or InMemoryInvalidationBus()
        self._store = CacheStore(
            slot=slot if slot is not None else create_cache_slot_from_env(self._settings),
            clock=self._clock,
            ttls_s=self._settings.ttls_s,
            default_ttl_s=self._settings.default_ttl_s,
            metrics=self._metrics,
        )
        self._coordinator = FetchCoordinator(self._store, metrics=self._metrics)
        self._sources: weakref.WeakSet[DataSource[Any]] = weakref.WeakSet()
        self._started = False

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def bus(self) -> InvalidationBus:
        return self._bus

    @property
    def coordinator(self) -> FetchCoordinator:
        return self._coordinator

    @property
    def clock(self) -> ClockSource:
        return self._clock

    @property
    def started(self) -> bool:
        return self._started

    async def __aenter__(self) -> DataCache:
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    async def init(self) -> None:
        """Rehydrate the store and attach it to the bus. Idempotent."""
        if self._started:
            return
        await self._store.init()
        self._store.attach(self._bus)
        self._started = True

    async def dispose(self) -> None:
        """Stop every data source, abort in-flight work and flush the store."""
        if not self._started:
            return
        for source in list(self._sources):
            await source.stop()
        await self._coordinator.aclose()
        await self._store.dispose()
        self._started = False
        logger.info("DataCache disposed")

    def source(
        self,
        kind: CacheKind | str,
        fetcher: Fetcher,
        params: Mapping[str, JsonValue] | None = None,
        options: DataSourceOptions | None = None,
    ) -> DataSource[Any]:
        """Create a data source bound to this cache. Call ``start()`` on it."""
        source: DataSource[Any] = DataSource(
            self._coordinator,
            self._bus,
            kind,
            fetcher,
            params,
            options,
            default_refresh_interval_s=self._settings.refresh_interval_s,
        )
        self._sources.add(source)
        return source

    async def load(
        self,
        kind: CacheKind | str,
        fetcher: Fetcher,
        params: Mapping[str, JsonValue] | None = None,
        options: LoadOptions | None = None,
    ) -> FetchOutcome[Any]:
        return await self._coordinator.load(kind, fetcher, params, options)

    async def notify_change(
        self,
        kind: CacheKind | str,
        operation: ChangeOperation = "update",
        *,
        source: str | None = None,
    ) -> InvalidationEvent:
        """Publish a write so every reader of `kind` refreshes."""
        return await self._bus.publish(kind_name(kind), operation, source=source)

    async def invalidate(self, kind: CacheKind | str | None = None) -> int:
        """Drop cached entries for one kind, or all entries, without publishing."""
        if kind is None:
            return await self._store.invalidate()
        return await self._store.invalidate_kind(kind)

    async def clear(self) -> None:
        await self._store.clear()

    def stats(self) -> CacheStats:
        return self._store.stats()

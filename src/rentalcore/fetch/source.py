"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Per-consumer data handle: initial load, invalidation re-fetch and auto-refresh.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ..cache.keys import CacheKey, CacheKind, as_cache_key
from ..invalidation.types import InvalidationBus, InvalidationEvent, Unsubscribe
from ..types import JsonValue
from .coordinator import FetchCoordinator
from .types import FetchOutcome, Fetcher, LoadOptions

logger = logging.getLogger("rentalcore.fetch.source")

T = TypeVar("T")

ErrorCallback = Callable[[BaseException], None]


@dataclass(frozen=True, slots=True)
class DataSourceOptions:
    """
    Configuration for one data source.

    Attributes:
        use_cache: Read through and populate the shared store.
        ttl_s: TTL for results stored by this source.
        auto_refresh: Poll with forced loads while started.
        refresh_interval_s: Seconds between polls; falls back to the value
            given by the owning ``DataCache``.
        allow_stale: Serve expired entries while revalidating.
        refetch_on_invalidate: Re-fetch when the kind is invalidated.
        on_error: Called with every load failure.
    """

    use_cache: bool = True
    ttl_s: float | None = None
    auto_refresh: bool = False
    refresh_interval_s: float | None = None
    allow_stale: bool = False
    refetch_on_invalidate: bool = True
    on_error: ErrorCallback | None = None


class DataSource(Generic[T]):
    """
    Live view of one ``(kind, params)`` collection for one consumer.

    A failed load keeps the last-known-good ``data`` and records ``error``
    so the consumer can show both. When another consumer supersedes this
    source's load of the same key, the source adopts that consumer's result.
    """

    def __init__(
        self,
        coordinator: FetchCoordinator,
        bus: InvalidationBus,
        kind: CacheKind | str,
        fetcher: Fetcher,
        params: Mapping[str, JsonValue] | None = None,
        options: DataSourceOptions | None = None,
        *,
        default_refresh_interval_s: float = 60.0,
    ) -> None:
        self._coordinator = coordinator
        self._bus = bus
        self._key: CacheKey = as_cache_key(kind, params)
        self._fetcher = fetcher
        self._options = options or DataSourceOptions()
        self._default_refresh_interval_s = default_refresh_interval_s

        self._data: T | None = None
        self._error: BaseException | None = None
        self._running = 0
        self._last_outcome: FetchOutcome[T] | None = None
        self._active = False
        self._unsubscribe: Unsubscribe | None = None
        self._timer: asyncio.Task[None] | None = None
        self._pending: set[asyncio.Task[Any]] = set()

    @property
    def key(self) -> CacheKey:
        return self._key

    @property
    def kind(self) -> str:
        return self._key.kind

    @property
    def data(self) -> T | None:
        return self._data

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def loading(self) -> bool:
        return self._running > 0

    @property
    def last_outcome(self) -> FetchOutcome[T] | None:
        return self._last_outcome

    @property
    def active(self) -> bool:
        return self._active

    @property
    def refresh_interval_s(self) -> float:
        if self._options.refresh_interval_s is not None:
            return self._options.refresh_interval_s
        return self._default_refresh_interval_s

    async def __aenter__(self) -> DataSource[T]:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def start(self) -> FetchOutcome[T] | None:
        """
        Begin observing the key: subscribe, load once and start polling.

        Calling ``start()`` on an active source is a no-op.
        """
        if self._active:
            return self._last_outcome
        if self._options.auto_refresh and self.refresh_interval_s <= 0:
            raise ValueError("refresh_interval_s must be > 0")

        self._active = True
        if self._options.refetch_on_invalidate:
            self._unsubscribe = self._bus.subscribe(self.kind, self._on_invalidation)
        initial = asyncio.create_task(self.refresh(), name=f"rentalcore-load:{self._key}")
        self._pending.add(initial)
        initial.add_done_callback(self._pending.discard)
        try:
            outcome = await initial
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling() > 0:
                raise
            # stop() aborted the initial load.
            return None
        if self._active and self._options.auto_refresh:
            self._timer = asyncio.create_task(
                self._refresh_loop(),
                name=f"rentalcore-autorefresh:{self._key}",
            )
        return outcome

    async def stop(self) -> None:
        """Stop observing: cancel the poll timer, unsubscribe, drop pending work."""
        self._active = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        tasks: list[asyncio.Task[Any]] = list(self._pending)
        if self._timer is not None:
            tasks.append(self._timer)
            self._timer = None
        for task in tasks:
            if task is not asyncio.current_task():
                task.cancel()
        await asyncio.gather(
            *(t for t in tasks if t is not asyncio.current_task()),
            return_exceptions=True,
        )
        self._pending.clear()

    async def refresh(self, force: bool = False) -> FetchOutcome[T] | None:
        """
        Load the collection, bypassing fresh cache entries when `force`.

        When another consumer's load of the same key supersedes this one,
        the source follows that load and takes its result instead.

        Returns:
            The outcome, or None when the load failed (see ``error``).
        """
        self._running += 1
        self._error = None
        try:
            outcome: FetchOutcome[T] = await self._coordinator.load(
                self._key,
                self._fetcher,
                options=LoadOptions(
                    use_cache=self._options.use_cache,
                    force_refresh=force,
                    ttl_s=self._options.ttl_s,
                    allow_stale=self._options.allow_stale and not force,
                ),
            )
            if outcome.cancelled and self._active:
                followed = await self._coordinator.follow(self._key)
                if followed is not None:
                    outcome = followed
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            self._error = exc
            logger.warning("DataSource load failed for %s: %s", self._key, exc)
            if self._options.on_error is not None:
                self._options.on_error(exc)
            return None
        finally:
            self._running -= 1

        self._last_outcome = outcome
        if not outcome.cancelled:
            self._data = outcome.value
        return outcome

    async def invalidate_cache(self) -> int:
        """Drop every cached variant of this source's kind without re-fetching."""
        return await self._coordinator.store.invalidate_kind(self.kind)

    def _on_invalidation(self, event: InvalidationEvent) -> None:
        if not self._active:
            return
        logger.debug(
            "DataSource %s re-fetching after %s on %s", self._key, event.operation, event.kind
        )
        task = asyncio.create_task(
            self.refresh(force=True),
            name=f"rentalcore-refetch:{self._key}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _refresh_loop(self) -> None:
        interval = self.refresh_interval_s
        while self._active:
            try:
                await asyncio.sleep(interval)
                if not self._active:
                    break
                await self.refresh(force=True)
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                logger.exception("DataSource auto-refresh failed for %s", self._key)

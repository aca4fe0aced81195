"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Single-flight read-through loader on top of ``CacheStore``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..cache.keys import CacheKey, CacheKind, as_cache_key
from ..cache.metrics import CacheMetrics, NoOpCacheMetrics
from ..cache.store import CacheStore
from ..errors import FetchCancelledError
from ..types import JsonValue
from .types import CancelToken, FetchOutcome, Fetcher, LoadOptions

logger = logging.getLogger("rentalcore.fetch")


@dataclass(slots=True)
class _Flight:
    key: CacheKey
    token: CancelToken
    task: asyncio.Task[Any] | None = None
    superseded: bool = False


class FetchCoordinator:
    """
    Read-through loader with last-request-wins de-duplication.

    At most one request per ``(kind, params)`` is outstanding. A newer load
    for the same key cancels the older one; the older caller receives a
    ``cancelled`` outcome and its result, if it still arrives, is never
    written to the store. A superseded caller that still wants the data
    can ``follow`` the winning request. Fetcher errors propagate verbatim
    and leave the store untouched.
    """

    def __init__(self, store: CacheStore, *, metrics: CacheMetrics | None = None) -> None:
        self._store = store
        self._metrics: CacheMetrics = metrics or NoOpCacheMetrics()
        self._flights: dict[CacheKey, _Flight] = {}
        self._background: set[asyncio.Task[Any]] = set()

    @property
    def store(self) -> CacheStore:
        return self._store

    def in_flight_keys(self) -> list[CacheKey]:
        return list(self._flights.keys())

    async def load(
        self,
        key: CacheKey | CacheKind | str,
        fetcher: Fetcher,
        params: Mapping[str, JsonValue] | None = None,
        options: LoadOptions | None = None,
    ) -> FetchOutcome[Any]:
        """
        Return data for `key`, fetching only when no fresh entry exists.

        Args:
            key: Cache key, kind enum or kind name.
            fetcher: Backend accessor called as ``fetcher(params, token)``.
            params: Query parameters distinguishing entries of one kind.
            options: Load behavior overrides.

        Returns:
            Outcome with status ``cached``, ``stale``, ``loaded`` or
            ``cancelled``.

        Raises:
            FetchCancelledError: When superseded and ``raise_on_cancel`` is set.
            Exception: Whatever the fetcher raised.
        """
        opts = options or LoadOptions()
        cache_key = as_cache_key(key, params)
        tags = {"kind": cache_key.kind}

        if opts.use_cache and not opts.force_refresh:
            entry = self._store.get(cache_key)
            if entry is not None:
                self._metrics.incr("cache_hit_total", tags={**tags, "stale": "false"})
                logger.debug("cache hit %s", cache_key)
                return FetchOutcome(
                    key=cache_key,
                    status="cached",
                    value=entry.data,
                    fetched_at=entry.fetched_at,
                )
            if opts.allow_stale:
                stale = self._store.peek(cache_key)
                if stale is not None:
                    self._metrics.incr("cache_hit_total", tags={**tags, "stale": "true"})
                    logger.debug("stale hit %s, revalidating", cache_key)
                    self._revalidate(cache_key, fetcher, opts)
                    return FetchOutcome(
                        key=cache_key,
                        status="stale",
                        value=stale.data,
                        fetched_at=stale.fetched_at,
                    )

        self._metrics.incr("cache_miss_total", tags=tags)
        flight = self._start(cache_key, fetcher, opts)
        return await self._wait(flight, opts)

    async def refresh(
        self,
        key: CacheKey | CacheKind | str,
        fetcher: Fetcher,
        params: Mapping[str, JsonValue] | None = None,
        *,
        ttl_s: float | None = None,
    ) -> FetchOutcome[Any]:
        """Shorthand for a forced load."""
        return await self.load(
            key,
            fetcher,
            params,
            LoadOptions(force_refresh=True, ttl_s=ttl_s),
        )

    async def follow(
        self,
        key: CacheKey | CacheKind | str,
        params: Mapping[str, JsonValue] | None = None,
    ) -> FetchOutcome[Any] | None:
        """
        Wait for whichever request currently owns `key` and return its result.

        Used by a consumer whose own load was superseded by another consumer's
        load of the same key. Following never aborts the flight it waits on,
        and a flight that is itself superseded hands over to its successor.
        With nothing in flight, the stored entry (fresh or not) is returned as
        ``cached``, or None when the store holds nothing for the key.

        Raises:
            Exception: Whatever the followed fetcher raised.
        """
        cache_key = as_cache_key(key, params)
        while True:
            flight = self._flights.get(cache_key)
            if flight is None or flight.task is None:
                entry = self._store.peek(cache_key)
                if entry is None:
                    return None
                return FetchOutcome(
                    key=cache_key,
                    status="cached",
                    value=entry.data,
                    fetched_at=entry.fetched_at,
                )
            try:
                value = await asyncio.shield(flight.task)
            except asyncio.CancelledError:
                current = asyncio.current_task()
                if current is not None and current.cancelling() > 0:
                    raise
                continue
            except FetchCancelledError:
                continue
            entry = self._store.peek(cache_key)
            return FetchOutcome(
                key=cache_key,
                status="loaded",
                value=value,
                fetched_at=entry.fetched_at if entry is not None else None,
            )

    def cancel(
        self,
        key: CacheKey | CacheKind | str,
        params: Mapping[str, JsonValue] | None = None,
    ) -> bool:
        """Abort the in-flight request for one key. Returns True if one existed."""
        flight = self._flights.pop(as_cache_key(key, params), None)
        if flight is None:
            return False
        self._abort(flight, reason="cancelled")
        return True

    def cancel_all(self) -> int:
        flights = list(self._flights.values())
        self._flights.clear()
        for flight in flights:
            self._abort(flight, reason="cancelled")
        return len(flights)

    async def aclose(self) -> None:
        """Abort every in-flight and background request and wait for them."""
        tasks = [f.task for f in self._flights.values() if f.task is not None]
        self.cancel_all()
        background = list(self._background)
        for task in background:
            task.cancel()
        await asyncio.gather(*tasks, *background, return_exceptions=True)
        self._background.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _start(self, key: CacheKey, fetcher: Fetcher, opts: LoadOptions) -> _Flight:
        previous = self._flights.get(key)
        if previous is not None:
            logger.debug("superseding in-flight request for %s", key)
            self._metrics.incr("cache_fetch_superseded_total", tags={"kind": key.kind})
            self._abort(previous, reason="superseded")

        flight = _Flight(key=key, token=CancelToken())
        flight.task = asyncio.create_task(
            self._run(flight, fetcher, opts),
            name=f"rentalcore-fetch:{key}",
        )
        self._flights[key] = flight
        return flight

    def _abort(self, flight: _Flight, *, reason: str) -> None:
        flight.superseded = True
        flight.token.cancel(reason)
        if flight.task is not None and not flight.task.done():
            flight.task.cancel()

    async def _run(self, flight: _Flight, fetcher: Fetcher, opts: LoadOptions) -> Any:
        key = flight.key
        try:
            self._metrics.incr("cache_fetch_total", tags={"kind": key.kind})
            try:
                result = fetcher(key.params, flight.token)
                if inspect.isawaitable(result):
                    result = await result
            except (asyncio.CancelledError, FetchCancelledError):
                raise
            except Exception:
                self._metrics.incr("cache_fetch_error_total", tags={"kind": key.kind})
                raise

            # The abort was not honored downstream; drop the late result.
            if flight.token.cancelled:
                raise FetchCancelledError(str(key))

            if opts.use_cache:
                await self._store.put(key, result, opts.ttl_s)
            return result
        finally:
            if self._flights.get(key) is flight:
                del self._flights[key]

    async def _wait(self, flight: _Flight, opts: LoadOptions) -> FetchOutcome[Any]:
        assert flight.task is not None
        try:
            value = await flight.task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            caller_cancelled = current is not None and current.cancelling() > 0
            if not flight.superseded or caller_cancelled:
                flight.token.cancel("caller cancelled")
                # A task cancelled before its first step never reaches _run's cleanup.
                if self._flights.get(flight.key) is flight:
                    del self._flights[flight.key]
                raise
            return self._cancelled(flight, opts)
        except FetchCancelledError:
            return self._cancelled(flight, opts)

        entry = self._store.peek(flight.key) if opts.use_cache else None
        return FetchOutcome(
            key=flight.key,
            status="loaded",
            value=value,
            fetched_at=entry.fetched_at if entry is not None else None,
        )

    def _cancelled(self, flight: _Flight, opts: LoadOptions) -> FetchOutcome[Any]:
        logger.debug("request for %s resolved as cancelled", flight.key)
        if opts.raise_on_cancel:
            raise FetchCancelledError(str(flight.key))
        return FetchOutcome(key=flight.key, status="cancelled")

    def _revalidate(self, key: CacheKey, fetcher: Fetcher, opts: LoadOptions) -> None:
        if key in self._flights:
            return
        refresh_opts = LoadOptions(
            use_cache=True,
            force_refresh=True,
            ttl_s=opts.ttl_s,
        )
        task = asyncio.create_task(
            self.load(key, fetcher, options=refresh_opts),
            name=f"rentalcore-revalidate:{key}",
        )
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("background revalidation failed: %s", exc)

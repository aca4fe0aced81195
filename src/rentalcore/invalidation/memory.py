"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

In-memory invalidation bus.
"""

from __future__ import annotations

import inspect
import itertools
import logging

from ..cache.keys import CacheKind, kind_name
from .types import (
    ChangeOperation,
    InvalidationBus,
    InvalidationEvent,
    InvalidationHandler,
    Unsubscribe,
)

logger = logging.getLogger("rentalcore.invalidation")


class InMemoryInvalidationBus(InvalidationBus):
    """
    In-process observer registry.

    Handlers are invoked in subscription order, catch-all handlers first.
    Async handlers are awaited before the next handler runs. A failing
    handler is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._by_kind: dict[str, dict[int, InvalidationHandler]] = {}
        self._catch_all: dict[int, InvalidationHandler] = {}
        self._published = 0

    @property
    def published_count(self) -> int:
        """Total events published since construction."""
        return self._published

    async def publish(
        self,
        kind: CacheKind | str,
        operation: ChangeOperation = "update",
        *,
        source: str | None = None,
    ) -> InvalidationEvent:
        event = InvalidationEvent(kind=kind_name(kind), operation=operation, source=source)
        self._published += 1
        # Snapshot so handlers that (un)subscribe during delivery do not
        # affect this round.
        handlers = list(self._catch_all.values()) + list(
            self._by_kind.get(event.kind, {}).values()
        )
        logger.debug(
            "publish kind=%s op=%s source=%s -> %d handler(s)",
            event.kind,
            event.operation,
            event.source,
            len(handlers),
        )
        for handler in handlers:
            try:
                outcome = handler(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:  # noqa: BLE001
                logger.warning(
                    "Invalidation handler failed (kind=%s, op=%s)",
                    event.kind,
                    event.operation,
                    exc_info=True,
                )
        return event

    def subscribe(self, kind: CacheKind | str, handler: InvalidationHandler) -> Unsubscribe:
        name = kind_name(kind)
        token = next(self._ids)
        self._by_kind.setdefault(name, {})[token] = handler

        def _unsubscribe() -> None:
            handlers = self._by_kind.get(name)
            if handlers is None:
                return
            handlers.pop(token, None)
            if not handlers:
                self._by_kind.pop(name, None)

        return _unsubscribe

    def subscribe_all(self, handler: InvalidationHandler) -> Unsubscribe:
        token = next(self._ids)
        self._catch_all[token] = handler

        def _unsubscribe() -> None:
            self._catch_all.pop(token, None)

        return _unsubscribe

    def subscriber_count(self, kind: CacheKind | str | None = None) -> int:
        if kind is None:
            return len(self._catch_all) + sum(len(h) for h in self._by_kind.values())
        return len(self._by_kind.get(kind_name(kind), {}))

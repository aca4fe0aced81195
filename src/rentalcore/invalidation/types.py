"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Invalidation event types and the abstract bus.
"""

from __future__ import annotations

import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Literal

ChangeOperation = Literal["create", "update", "delete", "status", "refresh"]


@dataclass(frozen=True, slots=True)
class InvalidationEvent:
    """
    Notice that the data behind one collection kind has changed.

    Attributes:
        kind: Collection kind name (e.g. ``"rentals"``).
        operation: Kind of write that caused the change.
        source: Optional name of the publisher.
        id: Unique event identifier.
        timestamp: Unix timestamp when the event was created.
    """

    kind: str
    operation: ChangeOperation = "update"
    source: str | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: float = field(default_factory=time.time)


InvalidationHandler = Callable[[InvalidationEvent], Awaitable[None] | None]
Unsubscribe = Callable[[], None]


class InvalidationBus(ABC):
    """
    Publish/subscribe channel keyed by collection kind.

    Delivery is fan-out to the handlers subscribed at publish time. Missed
    events are not persisted or replayed.
    """

    @abstractmethod
    async def publish(
        self,
        kind: str,
        operation: ChangeOperation = "update",
        *,
        source: str | None = None,
    ) -> InvalidationEvent:
        """
        Deliver a change notice to every current subscriber of `kind`.

        Args:
            kind: Collection kind name or enum.
            operation: Kind of write that caused the change.
            source: Optional publisher name for logs.

        Returns:
            The published event.
        """
        ...

    @abstractmethod
    def subscribe(self, kind: str, handler: InvalidationHandler) -> Unsubscribe:
        """
        Register `handler` for one kind.

        Returns:
            Disposer that removes exactly this registration. Calling it more
            than once is a no-op.
        """
        ...

    @abstractmethod
    def subscribe_all(self, handler: InvalidationHandler) -> Unsubscribe:
        """Register `handler` for every kind. Catch-all handlers run first."""
        ...

    @abstractmethod
    def subscriber_count(self, kind: str | None = None) -> int:
        """Number of handlers for `kind`, or of all registrations when None."""
        ...

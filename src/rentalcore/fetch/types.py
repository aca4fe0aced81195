"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Fetch request/outcome types and the cooperative cancellation token.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

from ..cache.keys import CacheKey
from ..errors import FetchCancelledError
from ..types import JsonValue

T = TypeVar("T")

FetchStatus = Literal["cached", "loaded", "stale", "cancelled"]


class CancelToken:
    """
    Cooperative abort signal handed to fetchers.

    Fetchers that talk to slow backends may poll ``cancelled`` or await
    ``wait()``; results produced after cancellation are discarded anyway.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "superseded") -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self, key: str = "") -> None:
        if self._event.is_set():
            raise FetchCancelledError(key)


Fetcher = Callable[[Mapping[str, JsonValue], CancelToken], Awaitable[Any] | Any]


@dataclass(frozen=True, slots=True)
class LoadOptions:
    """
    Per-call load behavior.

    Attributes:
        use_cache: Read from and write to the store. When False the store is
            bypassed entirely.
        force_refresh: Skip the fresh-entry short circuit.
        ttl_s: TTL for the stored result; defaults to the kind's TTL.
        raise_on_cancel: Raise ``FetchCancelledError`` instead of returning a
            ``cancelled`` outcome when this request is superseded.
        allow_stale: Return an expired entry immediately and refresh it in
            the background.
    """

    use_cache: bool = True
    force_refresh: bool = False
    ttl_s: float | None = None
    raise_on_cancel: bool = False
    allow_stale: bool = False


@dataclass(frozen=True, slots=True)
class FetchOutcome(Generic[T]):
    """Result of one ``FetchCoordinator.load`` call."""

    key: CacheKey
    status: FetchStatus
    value: T | None = None
    fetched_at: float | None = None

    @property
    def cancelled(self) -> bool:
        return self.status == "cancelled"

    @property
    def from_cache(self) -> bool:
        return self.status in ("cached", "stale")

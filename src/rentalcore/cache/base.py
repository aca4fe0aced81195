"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/base.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """One cached collection with the time it was fetched and its TTL."""

    data: T
    fetched_at: float
    ttl_s: float

    def age_s(self, now: float) -> float:
        return now - self.fetched_at

    def is_fresh(self, now: float) -> bool:
        """An entry is fresh iff ``now - fetched_at < ttl``."""
        return (now - self.fetched_at) < self.ttl_s

    @property
    def expires_at(self) -> float:
        return self.fetched_at + self.ttl_s


class CacheSlot(Protocol):
    """
    Durable local slot that mirrors the whole store snapshot.

    Implementations are best-effort; the store treats any raised exception
    as a degraded (uncached) state.
    """

    slot_id: str

    async def save(self, payload: str) -> None: ...

    async def load(self) -> str | None: ...

    async def clear(self) -> None: ...

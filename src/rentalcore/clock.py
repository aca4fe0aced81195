"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Injectable time sources.
"""

from __future__ import annotations

import time
from datetime import date, datetime, timezone
from typing import Protocol


class ClockSource(Protocol):
    """Protocol implemented by clocks consumed by the cache and scheduler."""

    def now(self) -> float:
        """Return current Unix epoch time in seconds."""
        ...

    def today(self) -> date:
        """Return the current local calendar date."""
        ...


class SystemClock:
    """Wall-clock time source."""

    def now(self) -> float:
        return time.time()

    def today(self) -> date:
        return date.today()


class ManualClock:
    """
    Deterministic clock advanced explicitly by tests.

    ``today()`` is derived from ``now()`` in UTC so both stay consistent.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def today(self) -> date:
        return datetime.fromtimestamp(self._now, tz=timezone.utc).date()

    def advance(self, seconds: float) -> float:
        """Move the clock forward and return the new timestamp."""
        if seconds < 0:
            raise ValueError("seconds must be >= 0")
        self._now += seconds
        return self._now

    def set(self, ts: float) -> None:
        """Jump to an absolute timestamp."""
        self._now = float(ts)

"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Metrics adapters for cache observability.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol


class CacheMetrics(Protocol):
    """Minimal metrics interface for cache instrumentation."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        """Increment a counter metric."""


class NoOpCacheMetrics:
    """Default metrics sink when no metrics backend is provided."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        _ = name
        _ = value
        _ = tags


class InMemoryCacheMetrics:
    """Counter sink that keeps totals in a dict, keyed by metric name."""

    def __init__(self) -> None:
        self.counters: dict[str, int] = {}

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        _ = tags
        self.counters[name] = self.counters.get(name, 0) + value


# Counter name -> (help text, label names). Every emission of one counter
# carries the same labels; missing label values fall back to _LABEL_DEFAULTS.
CACHE_COUNTERS: dict[str, tuple[str, tuple[str, ...]]] = {
    "cache_hit_total": (
        "Loads answered from the store, split by whether the entry was stale.",
        ("kind", "stale"),
    ),
    "cache_miss_total": ("Loads that had to go to the backend.", ("kind",)),
    "cache_fetch_total": ("Backend fetches started.", ("kind",)),
    "cache_fetch_error_total": ("Backend fetches that raised.", ("kind",)),
    "cache_fetch_superseded_total": (
        "In-flight fetches aborted by a newer load for the same key.",
        ("kind",),
    ),
    "cache_invalidation_total": ("Entries removed by invalidation.", ("kind",)),
}

_LABEL_DEFAULTS: dict[str, str] = {"kind": "*", "stale": "false"}


class PrometheusCacheMetrics:
    """
    Prometheus-backed cache metrics adapter.

    Counters listed in ``CACHE_COUNTERS`` are registered with their fixed
    label set on first use. Tags outside that set are ignored. A name not
    in the table is registered with the labels of its first emission and
    must keep them afterwards.

    Requires `prometheus_client` package.
    """

    def __init__(self, *, namespace: str = "rentalcore", registry=None) -> None:
        try:
            from prometheus_client import REGISTRY, Counter
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError(
                "PrometheusCacheMetrics requires `prometheus_client` to be installed."
            ) from exc

        self._Counter = Counter
        self._namespace = namespace
        self._registry = registry if registry is not None else REGISTRY
        self._counters: dict[str, tuple[object, tuple[str, ...]]] = {}

    def incr(self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None) -> None:
        tags = tags or {}
        registered = self._counters.get(name)
        if registered is None:
            documentation, label_names = CACHE_COUNTERS.get(
                name, (f"rentalcore cache counter {name}", tuple(sorted(tags)))
            )
            counter = self._Counter(
                name=name,
                documentation=documentation,
                namespace=self._namespace,
                labelnames=label_names,
                registry=self._registry,
            )
            registered = (counter, label_names)
            self._counters[name] = registered

        counter, label_names = registered
        if not label_names:
            counter.inc(value)
            return
        values = [str(tags.get(label, _LABEL_DEFAULTS.get(label, ""))) for label in label_names]
        counter.labels(*values).inc(value)

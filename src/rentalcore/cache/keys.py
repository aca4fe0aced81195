"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Cache key model: a collection kind plus normalized query parameters.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from ..types import JsonObject, JsonValue


class CacheKind(str, Enum):
    """Logical collections served through the cache."""

    CLIENTS = "clients"
    EQUIPMENTS = "equipments"
    BUDGETS = "budgets"
    RENTALS = "rentals"
    DASHBOARD_METRICS = "dashboard-metrics"


DEFAULT_TTL_S = 300.0

# Reference data changes rarely; transactional data and metrics often.
DEFAULT_TTLS_S: dict[str, float] = {
    CacheKind.CLIENTS.value: 600.0,
    CacheKind.EQUIPMENTS.value: 900.0,
    CacheKind.BUDGETS.value: 120.0,
    CacheKind.RENTALS.value: 120.0,
    CacheKind.DASHBOARD_METRICS.value: 60.0,
}


def kind_name(kind: CacheKind | str) -> str:
    """Normalize a kind enum or raw string into its wire name."""
    value = kind.value if isinstance(kind, CacheKind) else str(kind)
    value = value.strip().lower()
    if not value:
        raise ValueError("cache kind must be a non-empty string")
    return value


def _normalize_params(params: Mapping[str, JsonValue] | None) -> str:
    if not params:
        return ""
    cleaned = {str(k): v for k, v in params.items() if v is not None}
    if not cleaned:
        return ""
    return json.dumps(cleaned, sort_keys=True, separators=(",", ":"), default=str)


@dataclass(frozen=True, slots=True)
class CacheKey:
    """
    Identity of one cached collection.

    Two keys with the same kind but different parameters address different
    entries. ``None``-valued parameters are dropped before comparison.
    """

    kind: str
    params_json: str = ""

    @classmethod
    def of(
        cls,
        kind: CacheKind | str,
        params: Mapping[str, JsonValue] | None = None,
    ) -> CacheKey:
        """Build a key from a kind and a raw parameter mapping."""
        return cls(kind=kind_name(kind), params_json=_normalize_params(params))

    @classmethod
    def parse(cls, raw: str) -> CacheKey:
        """Inverse of ``str(key)``."""
        kind, sep, params_json = raw.partition("?")
        if not sep:
            return cls(kind=kind_name(kind))
        return cls(kind=kind_name(kind), params_json=params_json)

    @property
    def params(self) -> JsonObject:
        """Decoded parameter mapping."""
        if not self.params_json:
            return {}
        return json.loads(self.params_json)

    def __str__(self) -> str:
        if not self.params_json:
            return self.kind
        return f"{self.kind}?{self.params_json}"


def as_cache_key(
    key: CacheKey | CacheKind | str,
    params: Mapping[str, JsonValue] | None = None,
) -> CacheKey:
    """Coerce a key, enum or kind name (plus optional params) into a ``CacheKey``."""
    if isinstance(key, CacheKey):
        if params:
            raise ValueError("params cannot be combined with an explicit CacheKey")
        return key
    return CacheKey.of(key, params)

"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

TTL cache store, keys, durable slots and metrics.
"""

from .base import CacheEntry, CacheSlot
from .keys import (
    DEFAULT_TTL_S,
    DEFAULT_TTLS_S,
    CacheKey,
    CacheKind,
    as_cache_key,
    kind_name,
)
from .metrics import (
    CacheMetrics,
    InMemoryCacheMetrics,
    NoOpCacheMetrics,
    PrometheusCacheMetrics,
)
from .slots import (
    InMemoryCacheSlot,
    JSONFileCacheSlot,
    NullCacheSlot,
    RedisCacheSlot,
    create_cache_slot_from_env,
)
from .store import CacheStats, CacheStore

__all__ = [
    "CacheEntry",
    "CacheSlot",
    "CacheKey",
    "CacheKind",
    "DEFAULT_TTL_S",
    "DEFAULT_TTLS_S",
    "as_cache_key",
    "kind_name",
    "CacheMetrics",
    "NoOpCacheMetrics",
    "InMemoryCacheMetrics",
    "PrometheusCacheMetrics",
    "InMemoryCacheSlot",
    "JSONFileCacheSlot",
    "NullCacheSlot",
    "RedisCacheSlot",
    "create_cache_slot_from_env",
    "CacheStats",
    "CacheStore",
]

"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Cache runtime settings and explicit environment loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .cache.keys import DEFAULT_TTL_S, DEFAULT_TTLS_S, CacheKind


def _env_first(*names: str, default: str | None = None) -> str | None:
    """
    Return the first non-empty environment variable in `names`.

    Args:
        *names: Environment variable names to check in order.
        default: Value returned if no non-empty variable is found.
    """
    for name in names:
        raw = os.getenv(name)
        if raw is None:
            continue
        value = raw.strip()
        if value:
            return value
    return default


def _ttl_env_name(kind: str) -> str:
    return f"RENTALCORE_TTL_{kind.upper().replace('-', '_')}_S"


@dataclass(frozen=True, slots=True)
class CacheSettings:
    """Explicit settings used by the cache store, slots and data sources."""

    default_ttl_s: float = DEFAULT_TTL_S
    ttls_s: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_TTLS_S))

    slot_backend: str = "memory"
    slot_file: str = ".rentalcore/data-cache.json"
    redis_url: str | None = None
    redis_key: str = "rentalcore:data-cache"

    refresh_interval_s: float = 60.0

    def ttl_for(self, kind: str) -> float:
        """Return the configured TTL for one kind name."""
        return self.ttls_s.get(kind, self.default_ttl_s)

    @staticmethod
    def from_env() -> "CacheSettings":
        """Load settings from `RENTALCORE_*` environment variables."""
        default_ttl = float(
            _env_first("RENTALCORE_DEFAULT_TTL_S", default=str(DEFAULT_TTL_S))
            or DEFAULT_TTL_S
        )
        ttls: dict[str, float] = {}
        for kind in CacheKind:
            fallback = DEFAULT_TTLS_S.get(kind.value, default_ttl)
            raw = _env_first(_ttl_env_name(kind.value))
            ttls[kind.value] = float(raw) if raw is not None else fallback

        redis_url = _env_first("RENTALCORE_REDIS_URL")
        if redis_url is None and _env_first("RENTALCORE_REDIS_HOST") is not None:
            host = _env_first("RENTALCORE_REDIS_HOST", default="localhost") or "localhost"
            port = _env_first("RENTALCORE_REDIS_PORT", default="6379") or "6379"
            db = _env_first("RENTALCORE_REDIS_DB", default="0") or "0"
            password = _env_first("RENTALCORE_REDIS_PASSWORD", default="") or ""
            if password:
                redis_url = f"redis://:{password}@{host}:{port}/{db}"
            else:
                redis_url = f"redis://{host}:{port}/{db}"

        return CacheSettings(
            default_ttl_s=default_ttl,
            ttls_s=ttls,
            slot_backend=(
                _env_first("RENTALCORE_CACHE_SLOT", default="memory") or "memory"
            ).lower(),
            slot_file=_env_first(
                "RENTALCORE_CACHE_FILE", default=".rentalcore/data-cache.json"
            )
            or ".rentalcore/data-cache.json",
            redis_url=redis_url,
            redis_key=_env_first(
                "RENTALCORE_CACHE_REDIS_KEY", default="rentalcore:data-cache"
            )
            or "rentalcore:data-cache",
            refresh_interval_s=float(
                _env_first("RENTALCORE_REFRESH_INTERVAL_S", default="60") or "60"
            ),
        )

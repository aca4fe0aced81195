from __future__ import annotations

import asyncio

import pytest

from rentalcore.cache import (
    InMemoryCacheSlot,
    JSONFileCacheSlot,
    NullCacheSlot,
    RedisCacheSlot,
    create_cache_slot_from_env,
)
from rentalcore.errors import CacheSlotError
from rentalcore.settings import CacheSettings


def run_async(coro):
    return asyncio.run(coro)


class _FakeRedis:
    def __init__(self) -> None:
        self.values: dict[str, bytes] = {}

    async def set(self, key: str, value: str) -> None:
        self.values[key] = value.encode("utf-8")

    async def get(self, key: str) -> bytes | None:
        return self.values.get(key)

    async def delete(self, key: str) -> None:
        self.values.pop(key, None)


def test_factory_defaults_to_memory(monkeypatch):
    monkeypatch.delenv("RENTALCORE_CACHE_SLOT", raising=False)
    slot = create_cache_slot_from_env()
    assert isinstance(slot, InMemoryCacheSlot)


def test_factory_builds_file_slot_from_env(monkeypatch, tmp_path):
    target = tmp_path / "snap.json"
    monkeypatch.setenv("RENTALCORE_CACHE_SLOT", "file")
    monkeypatch.setenv("RENTALCORE_CACHE_FILE", str(target))
    slot = create_cache_slot_from_env()
    assert isinstance(slot, JSONFileCacheSlot)
    assert slot.path == target


def test_factory_supports_disabled_slot():
    slot = create_cache_slot_from_env(CacheSettings(slot_backend="none"))
    assert isinstance(slot, NullCacheSlot)

    async def scenario() -> None:
        await slot.save("{}")
        assert await slot.load() is None

    run_async(scenario())


def test_factory_rejects_unknown_backend():
    with pytest.raises(CacheSlotError, match="Unknown RENTALCORE_CACHE_SLOT"):
        create_cache_slot_from_env(CacheSettings(slot_backend="sqlite"))


def test_redis_slot_round_trip_with_injected_client():
    async def scenario() -> None:
        client = _FakeRedis()
        slot = create_cache_slot_from_env(
            CacheSettings(slot_backend="redis", redis_key="tests:cache"),
            redis_client=client,
        )
        assert isinstance(slot, RedisCacheSlot)

        await slot.save('{"version":1,"entries":[]}')
        assert client.values["tests:cache"] == b'{"version":1,"entries":[]}'
        assert await slot.load() == '{"version":1,"entries":[]}'

        await slot.clear()
        assert await slot.load() is None

    run_async(scenario())

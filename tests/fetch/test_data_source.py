from __future__ import annotations

import asyncio

import pytest

from rentalcore import DataCache
from rentalcore.cache import InMemoryCacheSlot
from rentalcore.clock import ManualClock
from rentalcore.errors import BackendError
from rentalcore.fetch import DataSourceOptions


def run_async(coro):
    return asyncio.run(coro)


async def settle(rounds: int = 50) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


def _counting_fetcher(counts: dict[str, int], name: str):
    def fetch(params, token):
        counts[name] = counts.get(name, 0) + 1
        return [name, counts[name]]

    return fetch


def test_published_change_refetches_each_active_reader_exactly_once():
    async def scenario() -> None:
        cache = DataCache(slot=InMemoryCacheSlot(), clock=ManualClock())
        await cache.init()
        counts: dict[str, int] = {}

        listing = cache.source("rentals", _counting_fetcher(counts, "list"), {"view": "list"})
        calendar = cache.source("rentals", _counting_fetcher(counts, "cal"), {"view": "calendar"})
        archived = cache.source("rentals", _counting_fetcher(counts, "old"), {"view": "archive"})
        clients = cache.source("clients", _counting_fetcher(counts, "clients"))
        for source in (listing, calendar, archived, clients):
            await source.start()
        await archived.stop()
        assert counts == {"list": 1, "cal": 1, "old": 1, "clients": 1}

        event = await cache.notify_change("rentals", "update", source="tests")
        assert event.kind == "rentals"
        await settle()

        assert counts == {"list": 2, "cal": 2, "old": 1, "clients": 1}
        assert listing.data == ["list", 2]
        assert calendar.data == ["cal", 2]
        assert archived.data == ["old", 1]

        await cache.dispose()

    run_async(scenario())


def test_failed_refresh_keeps_last_known_good_data():
    async def scenario() -> None:
        cache = DataCache(slot=InMemoryCacheSlot(), clock=ManualClock())
        await cache.init()
        state = {"fail": False}
        errors: list[BaseException] = []

        def fetch(params, token):
            if state["fail"]:
                raise BackendError("equipment service unavailable", kind="equipments")
            return [{"id": "e1"}]

        source = cache.source(
            "equipments",
            fetch,
            options=DataSourceOptions(on_error=errors.append),
        )
        first = await source.start()
        assert first is not None and first.status == "loaded"
        assert source.data == [{"id": "e1"}]

        state["fail"] = True
        assert await source.refresh(force=True) is None
        assert source.data == [{"id": "e1"}]
        assert isinstance(source.error, BackendError)
        assert source.loading is False
        assert len(errors) == 1

        state["fail"] = False
        outcome = await source.refresh(force=True)
        assert outcome is not None and outcome.status == "loaded"
        assert source.error is None

        await cache.dispose()

    run_async(scenario())


def test_second_reader_is_served_from_cache():
    async def scenario() -> None:
        cache = DataCache(slot=InMemoryCacheSlot(), clock=ManualClock())
        await cache.init()
        counts: dict[str, int] = {}
        fetch = _counting_fetcher(counts, "clients")

        first = cache.source("clients", fetch)
        second = cache.source("clients", fetch)
        await first.start()
        outcome = await second.start()

        assert outcome is not None and outcome.status == "cached"
        assert second.data == ["clients", 1]
        assert counts == {"clients": 1}

        await cache.dispose()

    run_async(scenario())


def test_start_is_idempotent_and_stop_unsubscribes():
    async def scenario() -> None:
        cache = DataCache(slot=InMemoryCacheSlot(), clock=ManualClock())
        await cache.init()
        source = cache.source("budgets", lambda params, token: ["b1"])

        await source.start()
        await source.start()
        assert source.active is True
        assert cache.bus.subscriber_count("budgets") == 1

        await source.stop()
        assert source.active is False
        assert cache.bus.subscriber_count("budgets") == 0

        async with cache.source("budgets", lambda params, token: ["b2"]) as scoped:
            assert scoped.active is True
            assert cache.bus.subscriber_count("budgets") == 1
        assert cache.bus.subscriber_count("budgets") == 0

        await cache.dispose()

    run_async(scenario())


def test_auto_refresh_polls_and_stops_without_leaking_timers():
    async def scenario() -> None:
        cache = DataCache(slot=InMemoryCacheSlot(), clock=ManualClock())
        await cache.init()
        counts: dict[str, int] = {}
        source = cache.source(
            "dashboard-metrics",
            _counting_fetcher(counts, "metrics"),
            options=DataSourceOptions(auto_refresh=True, refresh_interval_s=0.01),
        )

        for _ in range(3):
            before = counts.get("metrics", 0)
            await source.start()
            await asyncio.sleep(0.06)
            await source.stop()
            # Each cycle polls several times within the window.
            assert counts["metrics"] >= before + 2

        stopped_at = counts["metrics"]
        await asyncio.sleep(0.05)
        assert counts["metrics"] == stopped_at
        assert asyncio.all_tasks() == {asyncio.current_task()}

        await cache.dispose()

    run_async(scenario())


def test_auto_refresh_requires_positive_interval():
    async def scenario() -> None:
        cache = DataCache(slot=InMemoryCacheSlot(), clock=ManualClock())
        await cache.init()
        source = cache.source(
            "rentals",
            lambda params, token: [],
            options=DataSourceOptions(auto_refresh=True, refresh_interval_s=0),
        )
        with pytest.raises(ValueError, match="refresh_interval_s must be > 0"):
            await source.start()
        assert source.active is False
        await cache.dispose()

    run_async(scenario())


def test_refetch_on_invalidate_can_be_disabled():
    async def scenario() -> None:
        cache = DataCache(slot=InMemoryCacheSlot(), clock=ManualClock())
        await cache.init()
        counts: dict[str, int] = {}
        source = cache.source(
            "clients",
            _counting_fetcher(counts, "clients"),
            options=DataSourceOptions(refetch_on_invalidate=False),
        )
        await source.start()
        await cache.notify_change("clients", "delete")
        await settle()

        assert counts == {"clients": 1}
        # The shared entry is still dropped so the next reader re-fetches.
        assert cache.store.peek("clients") is None
        await cache.dispose()

    run_async(scenario())


def test_invalidate_cache_drops_kind_without_refetching():
    async def scenario() -> None:
        cache = DataCache(slot=InMemoryCacheSlot(), clock=ManualClock())
        await cache.init()
        counts: dict[str, int] = {}
        source = cache.source("rentals", _counting_fetcher(counts, "r"), {"page": 1})
        await source.start()

        assert await source.invalidate_cache() == 1
        await settle()
        assert counts == {"r": 1}
        assert source.data == ["r", 1]
        await cache.dispose()

    run_async(scenario())


def test_warm_start_serves_snapshot_after_restart():
    async def scenario() -> None:
        slot = InMemoryCacheSlot()
        clock = ManualClock()

        first = DataCache(slot=slot, clock=clock)
        await first.init()
        await first.load("clients", lambda params, token: [{"id": "c1"}])
        await first.dispose()

        def unreachable(params, token):
            raise BackendError("offline")

        async with DataCache(slot=slot, clock=clock) as second:
            outcome = await second.load("clients", unreachable)
            assert outcome.status == "cached"
            assert outcome.value == [{"id": "c1"}]
            assert second.stats().size == 1

    run_async(scenario())


def test_dispose_stops_every_source():
    async def scenario() -> None:
        cache = DataCache(slot=InMemoryCacheSlot(), clock=ManualClock())
        await cache.init()
        source = cache.source(
            "dashboard-metrics",
            lambda params, token: {"revenue": 1},
            options=DataSourceOptions(auto_refresh=True, refresh_interval_s=0.5),
        )
        await source.start()
        assert cache.started is True

        await cache.dispose()
        assert source.active is False
        assert cache.started is False
        assert cache.bus.subscriber_count() == 0

    run_async(scenario())


def test_readers_of_one_key_both_see_the_refetch_after_a_change():
    async def scenario() -> None:
        cache = DataCache(slot=InMemoryCacheSlot(), clock=ManualClock())
        await cache.init()
        counts: dict[str, int] = {}
        fetch = _counting_fetcher(counts, "rentals")

        board = cache.source("rentals", fetch)
        sidebar = cache.source("rentals", fetch)
        await board.start()
        await sidebar.start()
        assert counts == {"rentals": 1}

        await cache.notify_change("rentals", "update", source="tests")
        await settle()

        assert counts == {"rentals": 2}
        assert board.data == ["rentals", 2]
        assert sidebar.data == ["rentals", 2]
        assert board.last_outcome is not None and not board.last_outcome.cancelled
        assert sidebar.last_outcome is not None and not sidebar.last_outcome.cancelled

        await cache.dispose()

    run_async(scenario())


def test_readers_started_together_share_one_fetch():
    async def scenario() -> None:
        cache = DataCache(slot=InMemoryCacheSlot(), clock=ManualClock())
        await cache.init()
        counts: dict[str, int] = {}
        fetch = _counting_fetcher(counts, "rentals")

        board = cache.source("rentals", fetch)
        sidebar = cache.source("rentals", fetch)
        first, second = await asyncio.gather(board.start(), sidebar.start())

        assert counts == {"rentals": 1}
        assert board.data == ["rentals", 1]
        assert sidebar.data == ["rentals", 1]
        assert first is not None and not first.cancelled
        assert second is not None and second.status == "loaded"

        await cache.dispose()

    run_async(scenario())


def test_stop_aborts_the_initial_load():
    async def scenario() -> None:
        cache = DataCache(slot=InMemoryCacheSlot(), clock=ManualClock())
        await cache.init()
        gate = asyncio.Event()
        tokens = []

        async def slow_fetch(params, token):
            tokens.append(token)
            await gate.wait()
            return ["late"]

        source = cache.source("equipments", slow_fetch)
        starting = asyncio.create_task(source.start())
        await settle()
        assert source.loading is True

        await source.stop()
        assert await starting is None
        assert tokens[0].cancelled is True
        assert source.loading is False
        assert source.data is None
        assert cache.coordinator.in_flight_keys() == []
        assert cache.store.peek("equipments") is None

        await cache.dispose()

    run_async(scenario())

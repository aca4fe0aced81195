from __future__ import annotations

import asyncio

from rentalcore.cache import CacheKind
from rentalcore.invalidation import InMemoryInvalidationBus, InvalidationEvent


def run_async(coro):
    return asyncio.run(coro)


def test_publish_reaches_subscribers_of_that_kind_only():
    async def scenario() -> None:
        bus = InMemoryInvalidationBus()
        seen: list[tuple[str, str]] = []

        bus.subscribe("rentals", lambda event: seen.append(("rentals", event.operation)))
        bus.subscribe(CacheKind.CLIENTS, lambda event: seen.append(("clients", event.operation)))

        event = await bus.publish(CacheKind.RENTALS, "create", source="tests")
        assert isinstance(event, InvalidationEvent)
        assert event.kind == "rentals"
        assert event.source == "tests"
        assert seen == [("rentals", "create")]
        assert bus.published_count == 1

    run_async(scenario())


def test_async_handlers_are_awaited_in_subscription_order():
    async def scenario() -> None:
        bus = InMemoryInvalidationBus()
        order: list[str] = []

        async def slow(event: InvalidationEvent) -> None:
            await asyncio.sleep(0)
            order.append("slow")

        bus.subscribe("budgets", slow)
        bus.subscribe("budgets", lambda event: order.append("sync"))
        bus.subscribe_all(lambda event: order.append(f"all:{event.kind}"))

        await bus.publish("budgets")
        assert order == ["all:budgets", "slow", "sync"]

    run_async(scenario())


def test_failing_handler_does_not_block_delivery():
    async def scenario() -> None:
        bus = InMemoryInvalidationBus()
        delivered: list[str] = []

        def broken(event: InvalidationEvent) -> None:
            raise RuntimeError("handler bug")

        bus.subscribe("equipments", broken)
        bus.subscribe("equipments", lambda event: delivered.append(event.id))

        event = await bus.publish("equipments", "delete")
        assert delivered == [event.id]

    run_async(scenario())


def test_unsubscribe_removes_exactly_one_registration():
    async def scenario() -> None:
        bus = InMemoryInvalidationBus()
        hits: list[str] = []

        def handler(event: InvalidationEvent) -> None:
            hits.append(event.kind)

        first = bus.subscribe("rentals", handler)
        bus.subscribe("rentals", handler)
        assert bus.subscriber_count("rentals") == 2

        first()
        first()
        assert bus.subscriber_count("rentals") == 1

        await bus.publish("rentals")
        assert hits == ["rentals"]

    run_async(scenario())


def test_late_subscriber_does_not_receive_past_events():
    async def scenario() -> None:
        bus = InMemoryInvalidationBus()
        await bus.publish("clients")

        hits: list[InvalidationEvent] = []
        bus.subscribe("clients", hits.append)
        assert hits == []

        await bus.publish("clients", "update")
        assert [event.operation for event in hits] == ["update"]

    run_async(scenario())


def test_subscriptions_made_during_delivery_apply_to_next_event():
    async def scenario() -> None:
        bus = InMemoryInvalidationBus()
        late_hits: list[str] = []

        def late(event: InvalidationEvent) -> None:
            late_hits.append(event.id)

        def subscriber(event: InvalidationEvent) -> None:
            bus.subscribe("rentals", late)

        unsubscribe = bus.subscribe("rentals", subscriber)
        await bus.publish("rentals")
        assert late_hits == []

        unsubscribe()
        second = await bus.publish("rentals")
        assert late_hits == [second.id]

    run_async(scenario())

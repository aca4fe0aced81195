"""
recurring_rentals.py - Recurring rental lifecycle.

Demonstrates creating a monthly rental, previewing its occurrences and
walking it through pause, resume and cancel.

Usage:
    python examples/recurring_rentals.py
"""

import asyncio
from datetime import date

from rentalcore import (
    InMemoryInvalidationBus,
    InMemoryRecordStore,
    RecurrenceRule,
    RecurringContractScheduler,
)


async def main() -> None:
    bus = InMemoryInvalidationBus()
    bus.subscribe("rentals", lambda event: print(f"  -> rentals {event.operation}"))
    scheduler = RecurringContractScheduler(InMemoryRecordStore(), bus)

    rental = await scheduler.create(
        "rental-42",
        RecurrenceRule(unit="monthly", interval=1, anchor_date=date(2024, 1, 31)),
    )
    print(f"ends {rental.end_date}, renews {rental.next_occurrence_date}")
    for occurrence in scheduler.occurrences(rental.id, limit=4):
        print(f"  #{occurrence.number}: {occurrence.start_date} .. {occurrence.end_date}")

    await scheduler.pause(rental.id)
    await scheduler.resume(rental.id)
    await scheduler.cancel(rental.id)
    print("stats:", scheduler.stats())


if __name__ == "__main__":
    asyncio.run(main())

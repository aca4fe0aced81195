"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Read-through data cache with TTL expiry, single-flight loading and
cross-consumer invalidation, plus the recurring contract scheduler that
publishes into it.

Quick start::

    from datetime import date

    from rentalcore import (
        DataCache,
        InMemoryRecordStore,
        RecurrenceRule,
        RecurringContractScheduler,
    )

    async with DataCache() as cache:
        rentals = cache.source("rentals", fetch_rentals, {"limit": 50})
        await rentals.start()

        scheduler = RecurringContractScheduler(InMemoryRecordStore(), cache.bus)
        rule = RecurrenceRule(unit="monthly", interval=1, anchor_date=date(2024, 1, 31))
        await scheduler.create("rental-42", rule)
        await scheduler.pause("rental-42")  # every "rentals" reader re-fetches
"""

from .cache import (
    CacheEntry,
    CacheKey,
    CacheKind,
    CacheSlot,
    CacheStats,
    CacheStore,
    InMemoryCacheSlot,
    JSONFileCacheSlot,
    NullCacheSlot,
    create_cache_slot_from_env,
)
from .clock import ClockSource, ManualClock, SystemClock
from .errors import (
    BackendError,
    CacheSlotError,
    FetchCancelledError,
    InvalidTransitionError,
    RecurrenceValidationError,
    RentalCoreError,
)
from .fetch import (
    CancelToken,
    DataSource,
    DataSourceOptions,
    FetchCoordinator,
    FetchOutcome,
    LoadOptions,
)
from .invalidation import InMemoryInvalidationBus, InvalidationBus, InvalidationEvent
from .recurrence import (
    InMemoryRecordStore,
    Occurrence,
    RecordStore,
    RecurrenceRule,
    RecurringContract,
    RecurringContractScheduler,
    Schedule,
    compute_schedule,
    iter_occurrences,
    parse_contract_record,
)
from .runtime import DataCache
from .settings import CacheSettings

__version__ = "0.1.0"

__all__ = [
    "CacheEntry",
    "CacheKey",
    "CacheKind",
    "CacheSlot",
    "CacheStats",
    "CacheStore",
    "InMemoryCacheSlot",
    "JSONFileCacheSlot",
    "NullCacheSlot",
    "create_cache_slot_from_env",
    "ClockSource",
    "ManualClock",
    "SystemClock",
    "BackendError",
    "CacheSlotError",
    "FetchCancelledError",
    "InvalidTransitionError",
    "RecurrenceValidationError",
    "RentalCoreError",
    "CancelToken",
    "DataSource",
    "DataSourceOptions",
    "FetchCoordinator",
    "FetchOutcome",
    "LoadOptions",
    "InMemoryInvalidationBus",
    "InvalidationBus",
    "InvalidationEvent",
    "InMemoryRecordStore",
    "Occurrence",
    "RecordStore",
    "RecurrenceRule",
    "RecurringContract",
    "RecurringContractScheduler",
    "Schedule",
    "compute_schedule",
    "iter_occurrences",
    "parse_contract_record",
    "DataCache",
    "CacheSettings",
]

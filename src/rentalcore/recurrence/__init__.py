"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Recurring contract scheduling: date math, records and status transitions.
"""

from .engine import (
    RENEWAL_OFFSET_DAYS,
    add_months,
    add_years,
    advance,
    compute_schedule,
    iter_occurrences,
    validate_rule,
)
from .record_store import InMemoryRecordStore, RecordStore
from .records import (
    ContractRecord,
    contract_to_record,
    non_recurring_record,
    parse_contract_record,
)
from .scheduler import TRANSITIONS, RecurringContractScheduler
from .types import (
    RECURRENCE_STATUSES,
    RECURRENCE_UNITS,
    TERMINAL_STATUSES,
    ContractKind,
    Occurrence,
    RecurrenceRule,
    RecurrenceStats,
    RecurrenceStatus,
    RecurrenceUnit,
    RecurringContract,
    Schedule,
)

__all__ = [
    "RENEWAL_OFFSET_DAYS",
    "add_months",
    "add_years",
    "advance",
    "compute_schedule",
    "iter_occurrences",
    "validate_rule",
    "RecordStore",
    "InMemoryRecordStore",
    "ContractRecord",
    "contract_to_record",
    "non_recurring_record",
    "parse_contract_record",
    "TRANSITIONS",
    "RecurringContractScheduler",
    "RECURRENCE_STATUSES",
    "RECURRENCE_UNITS",
    "TERMINAL_STATUSES",
    "ContractKind",
    "Occurrence",
    "RecurrenceRule",
    "RecurrenceStats",
    "RecurrenceStatus",
    "RecurrenceUnit",
    "RecurringContract",
    "Schedule",
]

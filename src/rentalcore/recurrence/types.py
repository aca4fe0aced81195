"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Recurrence rule, contract and occurrence types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Literal

RecurrenceUnit = Literal["weekly", "monthly", "yearly"]
RecurrenceStatus = Literal["active", "paused", "cancelled", "completed"]
ContractKind = Literal["rentals", "budgets"]

RECURRENCE_UNITS: tuple[RecurrenceUnit, ...] = ("weekly", "monthly", "yearly")
RECURRENCE_STATUSES: tuple[RecurrenceStatus, ...] = (
    "active",
    "paused",
    "cancelled",
    "completed",
)
TERMINAL_STATUSES: frozenset[str] = frozenset({"cancelled", "completed"})


@dataclass(frozen=True, slots=True)
class RecurrenceRule:
    """
    How often a contract recurs.

    Attributes:
        unit: Period granularity.
        interval: Number of units per contract term; always >= 1.
        anchor_date: First day of the first term (the contract start date).
        until: Optional last day on which a new occurrence may start.
    """

    unit: RecurrenceUnit
    interval: int
    anchor_date: date
    until: date | None = None

    def __post_init__(self) -> None:
        from .engine import validate_rule

        validate_rule(self.unit, self.interval, until=self.until, anchor_date=self.anchor_date)


@dataclass(frozen=True, slots=True)
class Schedule:
    """Derived dates of one contract term."""

    end_date: date
    next_occurrence_date: date
    issues: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Occurrence:
    """One dated instance of a recurring contract."""

    contract_id: str
    number: int
    start_date: date
    end_date: date


@dataclass(frozen=True, slots=True)
class RecurringContract:
    """
    A contract with a recurrence rule and its derived schedule.

    ``end_date`` and ``next_occurrence_date`` are always derived from the
    rule; build instances through ``create`` or ``with_rule``.
    Non-recurring contracts are not represented by this type at all.
    """

    id: str
    rule: RecurrenceRule
    status: RecurrenceStatus
    end_date: date
    next_occurrence_date: date
    kind: ContractKind = "rentals"
    parent_contract_id: str | None = None

    @property
    def start_date(self) -> date:
        return self.rule.anchor_date

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def create(
        cls,
        contract_id: str,
        rule: RecurrenceRule,
        *,
        status: RecurrenceStatus = "active",
        kind: ContractKind = "rentals",
        parent_contract_id: str | None = None,
    ) -> RecurringContract:
        from .engine import compute_schedule

        schedule = compute_schedule(rule.anchor_date, rule.unit, rule.interval)
        return cls(
            id=contract_id,
            rule=rule,
            status=status,
            end_date=schedule.end_date,
            next_occurrence_date=schedule.next_occurrence_date,
            kind=kind,
            parent_contract_id=parent_contract_id,
        )

    def with_rule(self, rule: RecurrenceRule) -> RecurringContract:
        """Return a copy using `rule`, with derived dates recomputed."""
        return RecurringContract.create(
            self.id,
            rule,
            status=self.status,
            kind=self.kind,
            parent_contract_id=self.parent_contract_id,
        )


@dataclass(frozen=True, slots=True)
class RecurrenceStats:
    """Counts of tracked recurring contracts."""

    total: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    by_unit: dict[str, int] = field(default_factory=dict)

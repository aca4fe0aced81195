"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Recurrence status state machine for recurring contracts.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import replace
from datetime import date
from typing import Literal

from ..clock import ClockSource, SystemClock
from ..errors import InvalidTransitionError
from ..invalidation.types import InvalidationBus
from .engine import DEFAULT_OCCURRENCE_LIMIT, iter_occurrences
from .record_store import RecordStore
from .types import (
    ContractKind,
    Occurrence,
    RecurrenceRule,
    RecurrenceStats,
    RecurrenceStatus,
    RecurrenceUnit,
    RecurringContract,
)

logger = logging.getLogger("rentalcore.recurrence.scheduler")

TransitionAction = Literal["pause", "resume", "cancel", "complete"]

# action -> (allowed source statuses, target status)
TRANSITIONS: dict[str, tuple[frozenset[str], RecurrenceStatus]] = {
    "pause": (frozenset({"active"}), "paused"),
    "resume": (frozenset({"paused"}), "active"),
    "cancel": (frozenset({"active", "paused"}), "cancelled"),
    "complete": (frozenset({"active", "paused"}), "completed"),
}

ContractRef = str | RecurringContract


class RecurringContractScheduler:
    """
    Sole writer of ``RecurringContract.status``.

    Every successful transition persists through the record store first,
    then updates the tracked contract, then publishes the contract's
    collection kind on the invalidation bus. A failed persist leaves the
    tracked status unchanged. Transitions on one contract are serialized.
    """

    def __init__(
        self,
        records: RecordStore,
        bus: InvalidationBus,
        *,
        clock: ClockSource | None = None,
    ) -> None:
        self._records = records
        self._bus = bus
        self._clock: ClockSource = clock or SystemClock()
        self._contracts: dict[str, RecurringContract] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def track(self, contract: RecurringContract) -> RecurringContract:
        """Start managing an existing contract (e.g. one loaded from the backend)."""
        self._contracts[contract.id] = contract
        return contract

    def get(self, contract_id: str) -> RecurringContract:
        contract = self._contracts.get(contract_id)
        if contract is None:
            raise KeyError(f"Contract '{contract_id}' is not tracked")
        return contract

    def contracts(self, *, status: RecurrenceStatus | None = None) -> list[RecurringContract]:
        items = list(self._contracts.values())
        if status is not None:
            items = [c for c in items if c.status == status]
        return items

    async def create(
        self,
        contract_id: str,
        rule: RecurrenceRule,
        *,
        kind: ContractKind = "rentals",
        parent_contract_id: str | None = None,
    ) -> RecurringContract:
        """Create, persist and track a new active contract."""
        if contract_id in self._contracts:
            raise ValueError(f"Contract '{contract_id}' is already tracked")
        contract = RecurringContract.create(
            contract_id,
            rule,
            kind=kind,
            parent_contract_id=parent_contract_id,
        )
        async with self._lock_for(contract_id):
            await self._records.save_contract(contract)
            self._contracts[contract_id] = contract
        logger.info("Recurring contract %s created (%s x%d)", contract_id, rule.unit, rule.interval)
        await self._bus.publish(contract.kind, "create", source="scheduler")
        return contract

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def pause(self, contract: ContractRef) -> RecurringContract:
        """active -> paused. Already-materialized occurrences are kept."""
        return await self._transition(contract, "pause")

    async def resume(self, contract: ContractRef) -> RecurringContract:
        """paused -> active."""
        return await self._transition(contract, "resume")

    async def cancel(self, contract: ContractRef) -> RecurringContract:
        """active|paused -> cancelled (terminal). History is not deleted."""
        return await self._transition(contract, "cancel")

    async def complete(self, contract: ContractRef) -> RecurringContract:
        """active|paused -> completed (terminal)."""
        return await self._transition(contract, "complete")

    async def reschedule(
        self,
        contract: ContractRef,
        *,
        start_date: date | None = None,
        unit: RecurrenceUnit | None = None,
        interval: int | None = None,
    ) -> RecurringContract:
        """
        Change the rule and recompute derived dates.

        Raises:
            RecurrenceValidationError: The new rule is malformed; nothing is
                persisted.
            InvalidTransitionError: The contract is terminal.
        """
        contract_id = self._adopt(contract)
        async with self._lock_for(contract_id):
            current = self.get(contract_id)
            if current.is_terminal:
                raise InvalidTransitionError(contract_id, current.status, "reschedule")
            rule = RecurrenceRule(
                unit=unit or current.rule.unit,
                interval=current.rule.interval if interval is None else interval,
                anchor_date=start_date or current.rule.anchor_date,
                until=current.rule.until,
            )
            updated = current.with_rule(rule)
            await self._records.save_contract(updated)
            self._contracts[contract_id] = updated
        logger.info(
            "Recurring contract %s rescheduled (%s x%d from %s)",
            contract_id,
            rule.unit,
            rule.interval,
            rule.anchor_date.isoformat(),
        )
        await self._bus.publish(updated.kind, "update", source="scheduler")
        return updated

    async def _transition(self, contract: ContractRef, action: TransitionAction) -> RecurringContract:
        contract_id = self._adopt(contract)
        allowed, target = TRANSITIONS[action]
        async with self._lock_for(contract_id):
            current = self.get(contract_id)
            if current.status not in allowed:
                raise InvalidTransitionError(contract_id, current.status, action)
            await self._records.update_status(contract_id, target)
            updated = replace(current, status=target)
            self._contracts[contract_id] = updated
        logger.info(
            "Recurring contract %s %s: %s -> %s",
            contract_id,
            action,
            current.status,
            target,
        )
        await self._bus.publish(updated.kind, "status", source="scheduler")
        return updated

    def _adopt(self, contract: ContractRef) -> str:
        if isinstance(contract, RecurringContract):
            self._contracts.setdefault(contract.id, contract)
            return contract.id
        self.get(contract)
        return contract

    def _lock_for(self, contract_id: str) -> asyncio.Lock:
        lock = self._locks.get(contract_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[contract_id] = lock
        return lock

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def occurrences(
        self,
        contract_id: str,
        *,
        limit: int = DEFAULT_OCCURRENCE_LIMIT,
        start_from: date | None = None,
    ) -> list[Occurrence]:
        """Upcoming occurrences of one contract; none unless it is active."""
        contract = self.get(contract_id)
        if contract.status != "active":
            return []
        return list(
            iter_occurrences(contract.id, contract.rule, limit=limit, start_from=start_from)
        )

    def upcoming(self, *, limit: int = 10, start_from: date | None = None) -> list[Occurrence]:
        """Next occurrences across all active contracts, soonest first."""
        day = start_from or self._clock.today()
        merged: list[Occurrence] = []
        for contract in self.contracts(status="active"):
            merged.extend(
                iter_occurrences(contract.id, contract.rule, limit=limit, start_from=day)
            )
        merged.sort(key=lambda occ: (occ.start_date, occ.contract_id, occ.number))
        return merged[:limit]

    def due_on(self, day: date | None = None) -> list[RecurringContract]:
        """Active contracts whose renewal date falls on `day` (default: today)."""
        target = day or self._clock.today()
        return [
            c
            for c in self.contracts(status="active")
            if c.next_occurrence_date == target
        ]

    def stats(self) -> RecurrenceStats:
        items = list(self._contracts.values())
        return RecurrenceStats(
            total=len(items),
            by_status=dict(Counter(c.status for c in items)),
            by_unit=dict(Counter(c.rule.unit for c in items)),
        )

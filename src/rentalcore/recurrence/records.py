"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Conversion between backend contract rows and ``RecurringContract``.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from ..errors import RecurrenceValidationError
from ..types import JsonObject
from .types import ContractKind, RecurrenceRule, RecurringContract

RECURRENCE_FIELDS: tuple[str, ...] = (
    "recurrence_type",
    "recurrence_interval",
    "recurrence_status",
    "recurrence_end_date",
    "parent_rental_id",
    "next_occurrence_date",
)


class ContractRecord(BaseModel):
    """Backend row shape; unrelated columns are ignored."""

    model_config = ConfigDict(extra="ignore")

    id: str
    is_recurring: bool = False
    start_date: date | None = None
    recurrence_type: str | None = None
    recurrence_interval: int | None = None
    recurrence_status: str | None = None
    recurrence_end_date: date | None = None
    parent_rental_id: str | None = None


def parse_contract_record(
    row: Mapping[str, Any],
    *,
    kind: ContractKind = "rentals",
) -> RecurringContract | None:
    """
    Build a contract from a backend row.

    Stored ``end_date``/``next_occurrence_date`` values are ignored and
    recomputed from the rule.

    Returns:
        The contract, or None for non-recurring rows.

    Raises:
        RecurrenceValidationError: Recurring row with missing or malformed
            recurrence fields.
    """
    try:
        record = ContractRecord.model_validate(dict(row))
    except ValidationError as exc:
        raise RecurrenceValidationError(f"Invalid contract record: {exc}") from exc

    if not record.is_recurring:
        return None
    if record.start_date is None:
        raise RecurrenceValidationError(f"Recurring contract '{record.id}' has no start_date")
    if record.recurrence_type is None:
        raise RecurrenceValidationError(
            f"Recurring contract '{record.id}' has no recurrence_type"
        )

    rule = RecurrenceRule(
        unit=record.recurrence_type,  # type: ignore[arg-type]
        interval=record.recurrence_interval if record.recurrence_interval is not None else 1,
        anchor_date=record.start_date,
        until=record.recurrence_end_date,
    )
    status = record.recurrence_status or "active"
    if status not in ("active", "paused", "cancelled", "completed"):
        raise RecurrenceValidationError(
            f"Unknown recurrence_status '{status}' on contract '{record.id}'"
        )
    return RecurringContract.create(
        record.id,
        rule,
        status=status,  # type: ignore[arg-type]
        kind=kind,
        parent_contract_id=record.parent_rental_id,
    )


def contract_to_record(contract: RecurringContract) -> JsonObject:
    """Serialize a contract into backend row fields."""
    row: JsonObject = {
        "id": contract.id,
        "is_recurring": True,
        "start_date": contract.start_date.isoformat(),
        "end_date": contract.end_date.isoformat(),
        "recurrence_type": contract.rule.unit,
        "recurrence_interval": contract.rule.interval,
        "recurrence_status": contract.status,
        "next_occurrence_date": contract.next_occurrence_date.isoformat(),
    }
    if contract.rule.until is not None:
        row["recurrence_end_date"] = contract.rule.until.isoformat()
    if contract.parent_contract_id is not None:
        row["parent_rental_id"] = contract.parent_contract_id
    return row


def non_recurring_record(row: Mapping[str, Any]) -> JsonObject:
    """
    Return `row` as a non-recurring contract row.

    Recurrence fields are removed, never zeroed, so "no recurrence" cannot
    be confused with a placeholder rule.
    """
    out: JsonObject = {k: v for k, v in row.items() if k not in RECURRENCE_FIELDS}
    out["is_recurring"] = False
    return out

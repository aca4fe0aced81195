from __future__ import annotations

from datetime import date

import pytest

from rentalcore.errors import RecurrenceValidationError
from rentalcore.recurrence import (
    RecurrenceRule,
    RecurringContract,
    contract_to_record,
    non_recurring_record,
    parse_contract_record,
)


def _row(**overrides):
    row = {
        "id": "r1",
        "client_id": "c9",
        "is_recurring": True,
        "start_date": "2024-01-31",
        "end_date": "1999-01-01",
        "recurrence_type": "monthly",
        "recurrence_interval": 1,
        "recurrence_status": "active",
        "next_occurrence_date": "1999-01-01",
    }
    row.update(overrides)
    return row


def test_non_recurring_rows_are_not_contracts():
    assert parse_contract_record({"id": "r0", "is_recurring": False}) is None
    assert parse_contract_record({"id": "r0"}) is None


def test_recurring_row_recomputes_stored_dates():
    contract = parse_contract_record(_row(recurrence_status="paused"))
    assert contract is not None
    assert contract.id == "r1"
    assert contract.status == "paused"
    assert contract.kind == "rentals"
    assert contract.start_date == date(2024, 1, 31)
    assert contract.end_date == date(2024, 2, 29)
    assert contract.next_occurrence_date == date(2024, 3, 1)


def test_missing_interval_defaults_to_one_and_status_to_active():
    contract = parse_contract_record(
        _row(recurrence_interval=None, recurrence_status=None),
        kind="budgets",
    )
    assert contract is not None
    assert contract.rule.interval == 1
    assert contract.status == "active"
    assert contract.kind == "budgets"


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"recurrence_interval": 0}, "interval must be >= 1"),
        ({"recurrence_type": None}, "has no recurrence_type"),
        ({"recurrence_type": "daily"}, "Unknown recurrence unit"),
        ({"start_date": None}, "has no start_date"),
        ({"start_date": "not-a-date"}, "Invalid contract record"),
        ({"recurrence_status": "archived"}, "Unknown recurrence_status 'archived'"),
    ],
)
def test_malformed_recurring_rows_are_rejected(overrides, message):
    with pytest.raises(RecurrenceValidationError, match=message):
        parse_contract_record(_row(**overrides))


def test_contract_serializes_to_backend_fields():
    contract = RecurringContract.create(
        "b7",
        RecurrenceRule(unit="weekly", interval=3, anchor_date=date(2024, 1, 1)),
        kind="budgets",
    )
    assert contract_to_record(contract) == {
        "id": "b7",
        "is_recurring": True,
        "start_date": "2024-01-01",
        "end_date": "2024-01-22",
        "recurrence_type": "weekly",
        "recurrence_interval": 3,
        "recurrence_status": "active",
        "next_occurrence_date": "2024-01-08",
    }

    renewal = RecurringContract.create(
        "r2",
        RecurrenceRule(
            unit="yearly",
            interval=1,
            anchor_date=date(2024, 2, 29),
            until=date(2030, 1, 1),
        ),
        parent_contract_id="r1",
    )
    record = contract_to_record(renewal)
    assert record["recurrence_end_date"] == "2030-01-01"
    assert record["parent_rental_id"] == "r1"

    parsed = parse_contract_record(record)
    assert parsed == renewal


def test_turning_recurrence_off_removes_fields():
    row = non_recurring_record(_row(recurrence_end_date="2025-01-01", parent_rental_id="r0"))
    assert row == {
        "id": "r1",
        "client_id": "c9",
        "is_recurring": False,
        "start_date": "2024-01-31",
        "end_date": "1999-01-01",
    }

"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Pure date arithmetic for recurring contracts.

Two different dates come out of one rule:

- ``end_date`` is the contract duration: the start advanced by
  ``interval`` units (weeks of 7 days, calendar months, calendar years).
- ``next_occurrence_date`` is the renewal cadence: a fixed offset per unit
  (7, 30 or 365 days) that ignores ``interval``.

The two only coincide for weekly rules with ``interval == 1``.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterator
from datetime import date, timedelta

from ..errors import RecurrenceValidationError
from .types import RECURRENCE_UNITS, Occurrence, RecurrenceRule, RecurrenceUnit, Schedule

RENEWAL_OFFSET_DAYS: dict[str, int] = {
    "weekly": 7,
    "monthly": 30,
    "yearly": 365,
}

DEFAULT_OCCURRENCE_LIMIT = 12
DEFAULT_HORIZON_MONTHS = 12


def add_months(start: date, months: int) -> date:
    """Advance by calendar months, clamping to the last day of the target month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def add_years(start: date, years: int) -> date:
    """Advance by calendar years; Feb 29 clamps to Feb 28 in common years."""
    return add_months(start, years * 12)


def advance(start: date, unit: RecurrenceUnit, count: int) -> date:
    """Move `start` forward by `count` units."""
    if unit == "weekly":
        return start + timedelta(days=7 * count)
    if unit == "monthly":
        return add_months(start, count)
    if unit == "yearly":
        return add_years(start, count)
    raise RecurrenceValidationError(f"Unknown recurrence unit '{unit}'")


def validate_rule(
    unit: str,
    interval: int,
    *,
    until: date | None = None,
    anchor_date: date | None = None,
) -> None:
    """Raise ``RecurrenceValidationError`` when the rule is malformed."""
    if unit not in RECURRENCE_UNITS:
        raise RecurrenceValidationError(
            f"Unknown recurrence unit '{unit}'; expected one of {', '.join(RECURRENCE_UNITS)}"
        )
    if isinstance(interval, bool) or not isinstance(interval, int):
        raise RecurrenceValidationError("interval must be an integer")
    if interval < 1:
        raise RecurrenceValidationError(f"interval must be >= 1, got {interval}")
    if until is not None and anchor_date is not None and until < anchor_date:
        raise RecurrenceValidationError("until must not be before the anchor date")


def compute_schedule(
    start_date: date,
    unit: RecurrenceUnit,
    interval: int,
    *,
    strict: bool = True,
) -> Schedule:
    """
    Compute a contract's end date and next renewal date.

    Args:
        start_date: First day of the contract.
        unit: Recurrence unit.
        interval: Units per contract term.
        strict: When False, a non-positive interval is clamped to 1 and the
            validation message is returned in ``Schedule.issues`` instead of
            raising.

    Raises:
        RecurrenceValidationError: Unknown unit, or bad interval in strict mode.
    """
    issues: tuple[str, ...] = ()
    if not strict and isinstance(interval, int) and not isinstance(interval, bool) and interval < 1:
        issues = (f"interval must be >= 1, got {interval}; clamped to 1",)
        interval = 1
    validate_rule(unit, interval)

    return Schedule(
        end_date=advance(start_date, unit, interval),
        next_occurrence_date=start_date + timedelta(days=RENEWAL_OFFSET_DAYS[unit]),
        issues=issues,
    )


def iter_occurrences(
    contract_id: str,
    rule: RecurrenceRule,
    *,
    limit: int | None = DEFAULT_OCCURRENCE_LIMIT,
    until: date | None = None,
    start_from: date | None = None,
) -> Iterator[Occurrence]:
    """
    Lazily yield occurrences of `rule`.

    Occurrence number ``n`` (1-based) starts ``(n - 1) * interval`` units
    after the anchor and ends where occurrence ``n + 1`` starts. Month
    clamping is applied from the anchor each time, so a Jan 31 anchor yields
    Feb 29, Mar 31, Apr 30, ... rather than drifting to the 29th.

    Args:
        contract_id: Owning contract id stamped on each occurrence.
        rule: Recurrence rule.
        limit: Maximum number of occurrences yielded; None for no cap.
        until: Last allowed start date. Defaults to ``rule.until`` or
            12 months after the anchor, or after `start_from` when that is
            later than the anchor.
        start_from: Skip occurrences starting before this date.
    """
    window_start = rule.anchor_date
    if start_from is not None and start_from > window_start:
        window_start = start_from
    horizon = until or rule.until or add_months(window_start, DEFAULT_HORIZON_MONTHS)
    if rule.until is not None and horizon > rule.until:
        horizon = rule.until

    yielded = 0
    k = 0
    while limit is None or yielded < limit:
        start = advance(rule.anchor_date, rule.unit, k * rule.interval)
        if start > horizon:
            return
        end = advance(rule.anchor_date, rule.unit, (k + 1) * rule.interval)
        k += 1
        if start_from is not None and start < start_from:
            continue
        yielded += 1
        yield Occurrence(contract_id=contract_id, number=k, start_date=start, end_date=end)

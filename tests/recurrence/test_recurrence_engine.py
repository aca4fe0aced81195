from __future__ import annotations

from datetime import date

import pytest

from rentalcore.errors import RecurrenceValidationError
from rentalcore.recurrence import (
    RecurrenceRule,
    add_months,
    add_years,
    compute_schedule,
    iter_occurrences,
)


def test_monthly_term_clamps_to_end_of_february_in_leap_year():
    schedule = compute_schedule(date(2024, 1, 31), "monthly", 1)
    assert schedule.end_date == date(2024, 2, 29)
    assert schedule.next_occurrence_date == date(2024, 3, 1)
    assert schedule.issues == ()


def test_weekly_term_scales_with_interval_but_renewal_does_not():
    schedule = compute_schedule(date(2024, 1, 1), "weekly", 3)
    assert schedule.end_date == date(2024, 1, 22)
    assert schedule.next_occurrence_date == date(2024, 1, 8)


def test_monthly_end_date_and_renewal_date_diverge_for_longer_terms():
    schedule = compute_schedule(date(2024, 1, 15), "monthly", 2)
    assert schedule.end_date == date(2024, 3, 15)
    assert schedule.next_occurrence_date == date(2024, 2, 14)


def test_yearly_term_from_leap_day():
    schedule = compute_schedule(date(2024, 2, 29), "yearly", 1)
    assert schedule.end_date == date(2025, 2, 28)
    assert schedule.next_occurrence_date == date(2025, 2, 28)

    four_years = compute_schedule(date(2024, 2, 29), "yearly", 4)
    assert four_years.end_date == date(2028, 2, 29)


def test_calendar_helpers_clamp_and_roll_over_years():
    assert add_months(date(2023, 11, 30), 3) == date(2024, 2, 29)
    assert add_months(date(2023, 12, 31), 1) == date(2024, 1, 31)
    assert add_months(date(2024, 3, 31), -1) == date(2024, 2, 29)
    assert add_years(date(2024, 2, 29), 1) == date(2025, 2, 28)


def test_non_positive_interval_is_rejected_by_default():
    with pytest.raises(RecurrenceValidationError, match="interval must be >= 1"):
        compute_schedule(date(2024, 1, 1), "monthly", 0)


def test_non_positive_interval_can_be_clamped_with_an_issue():
    schedule = compute_schedule(date(2024, 1, 1), "monthly", 0, strict=False)
    assert schedule.end_date == date(2024, 2, 1)
    assert len(schedule.issues) == 1
    assert "clamped to 1" in schedule.issues[0]


def test_unknown_unit_is_rejected_even_when_lenient():
    with pytest.raises(RecurrenceValidationError, match="Unknown recurrence unit 'daily'"):
        compute_schedule(date(2024, 1, 1), "daily", 1, strict=False)  # type: ignore[arg-type]


def test_rule_validates_on_construction():
    with pytest.raises(RecurrenceValidationError, match="interval must be an integer"):
        RecurrenceRule(unit="weekly", interval=True, anchor_date=date(2024, 1, 1))
    with pytest.raises(RecurrenceValidationError, match="interval must be >= 1"):
        RecurrenceRule(unit="weekly", interval=-2, anchor_date=date(2024, 1, 1))
    with pytest.raises(RecurrenceValidationError, match="until must not be before"):
        RecurrenceRule(
            unit="weekly",
            interval=1,
            anchor_date=date(2024, 1, 10),
            until=date(2024, 1, 1),
        )
    # Validation errors are also plain ValueErrors for generic callers.
    with pytest.raises(ValueError):
        RecurrenceRule(unit="monthly", interval=0, anchor_date=date(2024, 1, 1))


def test_occurrences_are_anchored_and_do_not_drift():
    rule = RecurrenceRule(unit="monthly", interval=1, anchor_date=date(2024, 1, 31))
    occurrences = list(iter_occurrences("r1", rule, limit=4))

    assert [o.number for o in occurrences] == [1, 2, 3, 4]
    assert [o.start_date for o in occurrences] == [
        date(2024, 1, 31),
        date(2024, 2, 29),
        date(2024, 3, 31),
        date(2024, 4, 30),
    ]
    assert [o.end_date for o in occurrences] == [
        date(2024, 2, 29),
        date(2024, 3, 31),
        date(2024, 4, 30),
        date(2024, 5, 31),
    ]
    assert all(o.contract_id == "r1" for o in occurrences)


def test_occurrences_default_to_twelve_within_a_year_horizon():
    rule = RecurrenceRule(unit="monthly", interval=1, anchor_date=date(2024, 1, 1))
    assert len(list(iter_occurrences("r1", rule))) == 12

    uncapped = list(iter_occurrences("r1", rule, limit=None))
    assert len(uncapped) == 13
    assert uncapped[-1].start_date == date(2025, 1, 1)


def test_occurrences_stop_at_rule_until():
    rule = RecurrenceRule(
        unit="weekly",
        interval=1,
        anchor_date=date(2024, 1, 1),
        until=date(2024, 1, 20),
    )
    starts = [o.start_date for o in iter_occurrences("r1", rule)]
    assert starts == [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15)]

    # An explicit horizon cannot extend past the rule's own end.
    extended = list(iter_occurrences("r1", rule, until=date(2024, 12, 31)))
    assert len(extended) == 3


def test_occurrences_can_start_from_a_later_date():
    rule = RecurrenceRule(unit="monthly", interval=1, anchor_date=date(2024, 1, 31))
    occurrences = list(iter_occurrences("r1", rule, limit=2, start_from=date(2024, 3, 1)))
    assert [(o.number, o.start_date) for o in occurrences] == [
        (3, date(2024, 3, 31)),
        (4, date(2024, 4, 30)),
    ]


def test_occurrences_respect_interval():
    rule = RecurrenceRule(unit="weekly", interval=2, anchor_date=date(2024, 1, 1))
    occurrences = list(iter_occurrences("r1", rule, limit=3))
    assert [o.start_date for o in occurrences] == [
        date(2024, 1, 1),
        date(2024, 1, 15),
        date(2024, 1, 29),
    ]
    assert occurrences[0].end_date == date(2024, 1, 15)


def test_occurrence_window_follows_a_start_date_past_the_first_year():
    rule = RecurrenceRule(unit="monthly", interval=1, anchor_date=date(2023, 1, 15))
    occurrences = list(iter_occurrences("r1", rule, limit=None, start_from=date(2024, 6, 1)))
    assert occurrences[0].number == 18
    assert occurrences[0].start_date == date(2024, 6, 15)
    assert occurrences[-1].start_date == date(2025, 5, 15)
    assert len(occurrences) == 12

"""Tests for recurring schedule arithmetic and due decisions."""
from __future__ import annotations

from datetime import date, datetime

import pytest

from backoffice.domain.records import RecurringSchedule
from backoffice.domain.recurring import (
    Active,
    NeverInvoiced,
    RecurringFrequency,
    ScheduleAction,
    add_months,
    evaluate,
    months_for_frequency,
    next_due_date,
    state_for,
)


@pytest.mark.parametrize(
    ("frequency", "expected"),
    [
        (RecurringFrequency.MONTHLY_1, 1),
        ("MONTHLY_3", 3),
        ("monthly_6", 6),
        (RecurringFrequency.YEARLY_12, 12),
        (12, 12),
        ("FORTNIGHTLY", 1),
    ],
)
def test_months_for_frequency(frequency, expected) -> None:
    assert months_for_frequency(frequency) == expected


def test_custom_frequency_uses_custom_months_and_defaults_to_one() -> None:
    assert months_for_frequency(RecurringFrequency.CUSTOM, 4) == 4
    assert months_for_frequency(RecurringFrequency.CUSTOM, None) == 1
    assert months_for_frequency("CUSTOM", 0) == 1


def test_add_months_clamps_to_month_end() -> None:
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)
    assert add_months(date(2024, 5, 15), 12) == date(2025, 5, 15)


def test_state_for_distinguishes_never_invoiced() -> None:
    assert isinstance(state_for(None), NeverInvoiced)
    state = state_for(datetime(2024, 2, 1, 9, 30))
    assert isinstance(state, Active)
    assert state.last_invoice_date == date(2024, 2, 1)


def test_next_due_date_anchors_on_last_invoice_when_present() -> None:
    never = RecurringSchedule(start_date=date(2024, 1, 10), frequency="MONTHLY_3")
    invoiced = RecurringSchedule(
        start_date=date(2024, 1, 10),
        frequency="MONTHLY_3",
        last_invoice_date=datetime(2024, 4, 12, 8, 0),
    )

    assert next_due_date(never) == date(2024, 4, 10)
    assert next_due_date(invoiced) == date(2024, 7, 12)


def test_evaluate_is_not_due_before_the_due_date() -> None:
    schedule = RecurringSchedule(start_date=date(2024, 1, 10), frequency="MONTHLY_1")

    decision = evaluate(schedule, date(2024, 2, 9))

    assert decision.action is ScheduleAction.NOT_DUE
    assert not decision.is_due
    assert decision.due_date == date(2024, 2, 10)


def test_evaluate_first_cycle_only_notifies() -> None:
    schedule = RecurringSchedule(start_date=date(2024, 1, 10), frequency="MONTHLY_1")

    decision = evaluate(schedule, date(2024, 2, 10))

    assert decision.action is ScheduleAction.NOTIFY_FIRST_INVOICE
    assert decision.is_due


def test_evaluate_generates_when_already_invoiced() -> None:
    schedule = RecurringSchedule(
        start_date=date(2024, 1, 10),
        frequency="MONTHLY_1",
        last_invoice_date=datetime(2024, 2, 10),
    )

    assert evaluate(schedule, date(2024, 3, 10)).action is ScheduleAction.GENERATE_INVOICE


def test_evaluate_catches_up_after_a_missed_run() -> None:
    schedule = RecurringSchedule(
        start_date=date(2024, 1, 10),
        frequency="MONTHLY_1",
        last_invoice_date=date(2024, 2, 10),
    )

    decision = evaluate(schedule, datetime(2024, 3, 20, 12, 0))

    assert decision.action is ScheduleAction.GENERATE_INVOICE
    assert decision.due_date == date(2024, 3, 10)


def test_models_share_the_domain_enums() -> None:
    from backoffice.domain.compensation import PercentageType
    from backoffice.models import PercentageType as ModelPercentageType
    from backoffice.models import RecurringFrequency as ModelRecurringFrequency

    assert ModelRecurringFrequency is RecurringFrequency
    assert ModelPercentageType is PercentageType

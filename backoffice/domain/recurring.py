"""Recurring billing schedule arithmetic."""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Union

from .records import RecurringSchedule


class RecurringFrequency(str, Enum):
    """Recurring invoice cadence; the suffix is the number of months."""

    MONTHLY_1 = "MONTHLY_1"
    MONTHLY_3 = "MONTHLY_3"
    MONTHLY_6 = "MONTHLY_6"
    YEARLY_12 = "YEARLY_12"
    CUSTOM = "CUSTOM"


_FREQUENCY_MONTHS: dict[RecurringFrequency, int] = {
    RecurringFrequency.MONTHLY_1: 1,
    RecurringFrequency.MONTHLY_3: 3,
    RecurringFrequency.MONTHLY_6: 6,
    RecurringFrequency.YEARLY_12: 12,
}
_MONTHS_FREQUENCY = {months: frequency for frequency, months in _FREQUENCY_MONTHS.items()}


def _coerce_frequency(frequency: RecurringFrequency | str | int) -> RecurringFrequency | None:
    if isinstance(frequency, RecurringFrequency):
        return frequency
    if isinstance(frequency, int) and not isinstance(frequency, bool):
        return _MONTHS_FREQUENCY.get(frequency)
    try:
        return RecurringFrequency(str(frequency).upper())
    except ValueError:
        return None


def months_for_frequency(
    frequency: RecurringFrequency | str | int,
    custom_months: int | None = None,
) -> int:
    """Return the number of months between two invoices of ``frequency``.

    ``CUSTOM`` uses ``custom_months`` and falls back to one month when it is
    missing or zero. Unknown values also fall back to one month.
    """

    resolved = _coerce_frequency(frequency)
    if resolved is RecurringFrequency.CUSTOM:
        return int(custom_months or 1)
    if resolved is None:
        return 1
    return _FREQUENCY_MONTHS[resolved]


def add_months(day: date, months: int) -> date:
    """Calendar month addition clamped to the last day of the target month."""

    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(frozen=True, slots=True)
class NeverInvoiced:
    """No recurring invoice has been issued yet; the first one is manual."""


@dataclass(frozen=True, slots=True)
class Active:
    last_invoice_date: date


ScheduleState = Union[NeverInvoiced, Active]


def state_for(last_invoice_date: date | datetime | None) -> ScheduleState:
    if last_invoice_date is None:
        return NeverInvoiced()
    return Active(last_invoice_date=_as_date(last_invoice_date))


class ScheduleAction(str, Enum):
    NOT_DUE = "NOT_DUE"
    NOTIFY_FIRST_INVOICE = "NOTIFY_FIRST_INVOICE"
    GENERATE_INVOICE = "GENERATE_INVOICE"


@dataclass(frozen=True, slots=True)
class ScheduleDecision:
    action: ScheduleAction
    due_date: date

    @property
    def is_due(self) -> bool:
        return self.action is not ScheduleAction.NOT_DUE


def next_due_date(schedule: RecurringSchedule) -> date:
    """Anchor (last invoice, else start date) plus one frequency period."""

    state = state_for(schedule.last_invoice_date)
    if isinstance(state, Active):
        anchor = state.last_invoice_date
    else:
        anchor = _as_date(schedule.start_date)
    return add_months(anchor, months_for_frequency(schedule.frequency, schedule.custom_months))


def evaluate(schedule: RecurringSchedule, today: date | datetime) -> ScheduleDecision:
    """Decide what the recurring check should do with ``schedule`` on ``today``.

    A schedule whose due date has passed is still due, so a missed run is
    caught up by the next one.
    """

    due = next_due_date(schedule)
    if due > _as_date(today):
        return ScheduleDecision(ScheduleAction.NOT_DUE, due)
    if isinstance(state_for(schedule.last_invoice_date), NeverInvoiced):
        return ScheduleDecision(ScheduleAction.NOTIFY_FIRST_INVOICE, due)
    return ScheduleDecision(ScheduleAction.GENERATE_INVOICE, due)


__all__ = [
    "Active",
    "NeverInvoiced",
    "RecurringFrequency",
    "ScheduleAction",
    "ScheduleDecision",
    "ScheduleState",
    "add_months",
    "evaluate",
    "months_for_frequency",
    "next_due_date",
    "state_for",
]

"""Pure calculators operating on plain records."""
from __future__ import annotations

from .billing import Totals, compute_totals, sum_line_amounts
from .compensation import (
    EligibilityResolver,
    Earnings,
    PercentageType,
    calculate_earnings,
    calculate_salary_bonus,
)
from .recurring import (
    Active,
    NeverInvoiced,
    RecurringFrequency,
    ScheduleAction,
    ScheduleDecision,
    add_months,
    evaluate,
    months_for_frequency,
    next_due_date,
    state_for,
)

__all__ = [
    "Active",
    "EligibilityResolver",
    "Earnings",
    "NeverInvoiced",
    "PercentageType",
    "RecurringFrequency",
    "ScheduleAction",
    "ScheduleDecision",
    "Totals",
    "add_months",
    "calculate_earnings",
    "calculate_salary_bonus",
    "compute_totals",
    "evaluate",
    "months_for_frequency",
    "next_due_date",
    "state_for",
    "sum_line_amounts",
]

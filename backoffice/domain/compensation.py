"""Compensation arithmetic: salary bonuses and percentage-based earnings."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, Sequence

from backoffice.core.errors import ValidationError

from .billing import HUNDRED, to_decimal
from .records import CompensationScheme, EligibilityOverride, PaidBill, ProjectActivity


class PercentageType(str, Enum):
    PROJECT_TOTAL = "PROJECT_TOTAL"
    DIRECT_WORK = "DIRECT_WORK"
    BOTH = "BOTH"


_PROJECT_TYPES = {PercentageType.PROJECT_TOTAL.value, PercentageType.BOTH.value}
_DIRECT_TYPES = {PercentageType.DIRECT_WORK.value, PercentageType.BOTH.value}


@dataclass(frozen=True, slots=True)
class Resolution:
    """Eligibility outcome and the override that decided it, if any."""

    eligible: bool
    override: EligibilityOverride | None = None


_DEFAULT = Resolution(eligible=True)


class EligibilityResolver:
    """Resolve eligibility with precedence bill > project > client > default."""

    def __init__(self, overrides: Iterable[EligibilityOverride]) -> None:
        self._by_bill: dict[str, EligibilityOverride] = {}
        self._by_project: dict[str, EligibilityOverride] = {}
        self._by_client: dict[str, EligibilityOverride] = {}
        for override in overrides:
            if override.bill_id:
                self._by_bill[override.bill_id] = override
            elif override.project_id:
                self._by_project[override.project_id] = override
            elif override.client_id:
                self._by_client[override.client_id] = override

    @staticmethod
    def _resolved(override: EligibilityOverride) -> Resolution:
        return Resolution(eligible=bool(override.is_eligible), override=override)

    def for_client(self, client_id: str | None) -> Resolution:
        if client_id and client_id in self._by_client:
            return self._resolved(self._by_client[client_id])
        return _DEFAULT

    def for_project(self, project_id: str | None, client_id: str | None) -> Resolution:
        if project_id and project_id in self._by_project:
            return self._resolved(self._by_project[project_id])
        return self.for_client(client_id)

    def for_bill(self, bill: PaidBill, *, project_id: str | None = None) -> Resolution:
        if bill.id in self._by_bill:
            return self._resolved(self._by_bill[bill.id])
        return self.for_project(bill.project_id or project_id, bill.client_id)


@dataclass(frozen=True, slots=True)
class Earnings:
    project_total_earnings: Decimal
    direct_work_earnings: Decimal

    @property
    def total_earned(self) -> Decimal:
        return self.project_total_earnings + self.direct_work_earnings


@dataclass(frozen=True, slots=True)
class SalaryBonus:
    base_salary: Decimal
    bonus_multiplier: Decimal
    bonus_amount: Decimal

    @property
    def total_earned(self) -> Decimal:
        return self.base_salary + self.bonus_amount


class _Accumulator:
    """Running sums for one calculation; fixed overrides are collected once."""

    def __init__(self, scheme: CompensationScheme) -> None:
        self.scheme = scheme
        self.percentage_type = scheme.percentage_type or ""
        self.project_total = Decimal(0)
        self.direct_work = Decimal(0)
        self.fixed: dict[tuple[str, str], Decimal] = {}

    def _rate(self, scheme_rate: Decimal | None, override: EligibilityOverride | None) -> Decimal:
        if override is not None and override.custom_percentage is not None:
            return to_decimal(override.custom_percentage)
        return to_decimal(scheme_rate)

    def _takes_fixed(self, override: EligibilityOverride | None) -> bool:
        if override is None or override.fixed_amount is None:
            return False
        self.fixed.setdefault(override.scope, to_decimal(override.fixed_amount))
        return True

    def add_project_total(self, value: Decimal, override: EligibilityOverride | None) -> None:
        if self.percentage_type not in _PROJECT_TYPES or self._takes_fixed(override):
            return
        self.project_total += value * self._rate(self.scheme.project_percentage, override) / HUNDRED

    def add_direct_work(self, value: Decimal, override: EligibilityOverride | None) -> None:
        if self.percentage_type not in _DIRECT_TYPES or self._takes_fixed(override):
            return
        self.direct_work += value * self._rate(self.scheme.direct_work_percentage, override) / HUNDRED

    def result(self) -> Earnings:
        fixed_total = sum(self.fixed.values(), Decimal(0))
        project_total = self.project_total
        direct_work = self.direct_work
        if self.percentage_type in _PROJECT_TYPES:
            project_total += fixed_total
        else:
            direct_work += fixed_total
        return Earnings(project_total_earnings=project_total, direct_work_earnings=direct_work)


def calculate_earnings(
    user_id: str,
    scheme: CompensationScheme,
    projects: Sequence[ProjectActivity],
    overrides: Iterable[EligibilityOverride],
) -> Earnings:
    """Aggregate percentage-based earnings of ``user_id`` over candidate projects.

    Every eligible paid bill contributes its amount net of expense lines to the
    project total and the user's own non-expense lines to direct work. Logged
    timesheet hours contribute ``hours * rate`` to direct work when the project
    is eligible. An override carrying ``fixed_amount`` replaces the percentage
    earnings of everything it governs and is credited once.
    """

    resolver = EligibilityResolver(overrides)
    accumulator = _Accumulator(scheme)
    seen_bills: set[str] = set()

    for project in projects:
        project_resolution = resolver.for_project(project.project_id, project.client_id)
        if project_resolution.eligible and project.timesheets:
            timesheet_value = sum((line.value for line in project.timesheets), Decimal(0))
            accumulator.add_direct_work(timesheet_value, project_resolution.override)

        for bill in project.bills:
            if bill.id in seen_bills:
                continue
            seen_bills.add(bill.id)
            resolution = resolver.for_bill(bill, project_id=project.project_id)
            if not resolution.eligible:
                continue
            accumulator.add_project_total(bill.amount - bill.expense_total, resolution.override)
            own_lines = sum(
                (
                    item.amount
                    for item in bill.items
                    if item.person_id == user_id and not item.is_expense
                ),
                Decimal(0),
            )
            if own_lines:
                accumulator.add_direct_work(own_lines, resolution.override)

    return accumulator.result()


def _plain(value: Decimal | None) -> str:
    if value is None:
        return "None"
    return format(to_decimal(value).normalize(), "f")


def calculate_salary_bonus(scheme: CompensationScheme, multiplier: Decimal | float | None) -> SalaryBonus:
    """Return the salary plus bonus for ``multiplier`` within ``[0, max]``."""

    value = to_decimal(multiplier)
    maximum = scheme.max_bonus_multiplier
    if value < 0 or (maximum is not None and value > to_decimal(maximum)):
        raise ValidationError(f"Bonus multiplier must be between 0 and {_plain(maximum)}")
    base = to_decimal(scheme.base_salary)
    return SalaryBonus(base_salary=base, bonus_multiplier=value, bonus_amount=base * value)


__all__ = [
    "EligibilityResolver",
    "Earnings",
    "PercentageType",
    "Resolution",
    "SalaryBonus",
    "calculate_earnings",
    "calculate_salary_bonus",
]

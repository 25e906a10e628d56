"""Plain records handed from repositories to the calculators."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Sequence

EXPENSE_ITEM_TYPE = "EXPENSE"


@dataclass(frozen=True, slots=True)
class RecurringSchedule:
    """Recurring billing configuration of a proposal or a proposal line."""

    start_date: date
    frequency: str
    custom_months: int | None = None
    last_invoice_date: datetime | date | None = None


@dataclass(frozen=True, slots=True)
class CompensationScheme:
    id: str
    user_id: str
    compensation_type: str
    effective_from: datetime
    effective_to: datetime | None = None
    base_salary: Decimal | None = None
    max_bonus_multiplier: Decimal | None = None
    percentage_type: str | None = None
    project_percentage: Decimal | None = None
    direct_work_percentage: Decimal | None = None


@dataclass(frozen=True, slots=True)
class EligibilityOverride:
    """Include/exclude decision scoped to exactly one project, client or bill."""

    is_eligible: bool = True
    project_id: str | None = None
    client_id: str | None = None
    bill_id: str | None = None
    custom_percentage: Decimal | None = None
    fixed_amount: Decimal | None = None
    id: str | None = None

    @property
    def scope(self) -> tuple[str, str]:
        if self.bill_id:
            return ("bill", self.bill_id)
        if self.project_id:
            return ("project", self.project_id)
        if self.client_id:
            return ("client", self.client_id)
        return ("none", "")


@dataclass(frozen=True, slots=True)
class BillLine:
    amount: Decimal
    type: str
    person_id: str | None = None

    @property
    def is_expense(self) -> bool:
        return self.type == EXPENSE_ITEM_TYPE


@dataclass(frozen=True, slots=True)
class PaidBill:
    """A bill paid inside the calculation period, with its lines."""

    id: str
    client_id: str
    amount: Decimal
    project_id: str | None = None
    items: Sequence[BillLine] = field(default_factory=tuple)

    @property
    def expense_total(self) -> Decimal:
        return sum((item.amount for item in self.items if item.is_expense), Decimal(0))


@dataclass(frozen=True, slots=True)
class TimesheetLine:
    hours: Decimal
    rate: Decimal | None = None

    @property
    def value(self) -> Decimal:
        if self.rate is None:
            return Decimal(0)
        return self.hours * self.rate


@dataclass(frozen=True, slots=True)
class ProjectActivity:
    """A candidate project with the user's timesheets and the paid bills of a period."""

    project_id: str
    client_id: str
    timesheets: Sequence[TimesheetLine] = field(default_factory=tuple)
    bills: Sequence[PaidBill] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class DeletionCheck:
    """Outcome of checking whether a single record may be deleted."""

    id: str
    name: str
    can_delete: bool
    reason: str | None = None


__all__ = [
    "BillLine",
    "CompensationScheme",
    "DeletionCheck",
    "EligibilityOverride",
    "PaidBill",
    "ProjectActivity",
    "RecurringSchedule",
    "TimesheetLine",
]

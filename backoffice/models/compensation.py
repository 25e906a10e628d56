"""ORM models for user compensation schemes, eligibility and monthly entries."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.domain.compensation import PercentageType  # noqa: F401

from .base import ID_TYPE, MONEY, PERCENT, EntityBase


class CompensationType(str, Enum):
    SALARY_BONUS = "SALARY_BONUS"
    PERCENTAGE_BASED = "PERCENTAGE_BASED"


class FinancialTransactionType(str, Enum):
    COMPENSATION = "COMPENSATION"
    PAYMENT = "PAYMENT"
    ADVANCE = "ADVANCE"


class UserCompensation(EntityBase):
    """Compensation scheme effective for a user over a date range."""

    __tablename__ = "user_compensations"

    user_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("users.id"), nullable=False, index=True)
    compensation_type: Mapped[str] = mapped_column(String(24), nullable=False)
    base_salary: Mapped[Decimal | None] = mapped_column(MONEY)
    max_bonus_multiplier: Mapped[Decimal | None] = mapped_column(PERCENT)
    percentage_type: Mapped[str | None] = mapped_column(String(16))
    project_percentage: Mapped[Decimal | None] = mapped_column(PERCENT)
    direct_work_percentage: Mapped[Decimal | None] = mapped_column(PERCENT)
    effective_from: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    effective_to: Mapped[datetime | None] = mapped_column(DateTime)

    entries: Mapped[list["CompensationEntry"]] = relationship(
        back_populates="compensation", order_by="desc(CompensationEntry.calculated_at)"
    )


class CompensationEligibility(EntityBase):
    """Per project/client/bill include-or-exclude override for a scheme."""

    __tablename__ = "compensation_eligibility"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "compensation_id", "project_id", "client_id", "bill_id",
            name="uq_compensation_eligibility_scope",
        ),
    )

    user_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("users.id"), nullable=False, index=True)
    compensation_id: Mapped[str] = mapped_column(
        ID_TYPE, ForeignKey("user_compensations.id"), nullable=False
    )
    project_id: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("projects.id"))
    client_id: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("clients.id"))
    bill_id: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("bills.id"))
    is_eligible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    custom_percentage: Mapped[Decimal | None] = mapped_column(PERCENT)
    fixed_amount: Mapped[Decimal | None] = mapped_column(MONEY)

    compensation: Mapped[UserCompensation] = relationship()


class CompensationEntry(EntityBase):
    """Calculated compensation for one user and month."""

    __tablename__ = "compensation_entries"
    __table_args__ = (
        UniqueConstraint("user_id", "period_year", "period_month", name="uq_compensation_entry_period"),
    )

    user_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("users.id"), nullable=False)
    compensation_id: Mapped[str] = mapped_column(
        ID_TYPE, ForeignKey("user_compensations.id"), nullable=False
    )
    period_year: Mapped[int] = mapped_column(Integer, nullable=False)
    period_month: Mapped[int] = mapped_column(Integer, nullable=False)
    base_salary: Mapped[Decimal | None] = mapped_column(MONEY)
    bonus_multiplier: Mapped[Decimal | None] = mapped_column(PERCENT)
    bonus_amount: Mapped[Decimal | None] = mapped_column(MONEY)
    percentage_earnings: Mapped[Decimal | None] = mapped_column(MONEY)
    total_earned: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    total_paid: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    balance: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    calculated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)

    compensation: Mapped[UserCompensation] = relationship(back_populates="entries")


class UserFinancialTransaction(EntityBase):
    """Ledger row on a user's account."""

    __tablename__ = "user_financial_transactions"

    user_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("users.id"), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(24), nullable=False)
    related_id: Mapped[str | None] = mapped_column(ID_TYPE)
    related_type: Mapped[str | None] = mapped_column(String(32))
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("users.id"))

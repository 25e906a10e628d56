"""ORM models for proposals and their line items."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.domain.recurring import RecurringFrequency  # noqa: F401

from .base import ID_TYPE, MONEY, PERCENT, EntityBase
from .users import Client, User


class ProposalStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class BillingMethod(str, Enum):
    FIXED_FEE = "FIXED_FEE"
    HOURLY = "HOURLY"
    RECURRING = "RECURRING"
    SUCCESS_FEE = "SUCCESS_FEE"


class Proposal(EntityBase):
    """Priced offer to a client; approved proposals may spawn recurring invoices."""

    __tablename__ = "proposals"

    proposal_number: Mapped[str | None] = mapped_column(String(64), unique=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    client_id: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("clients.id"))
    created_by: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("users.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=ProposalStatus.DRAFT.value)
    amount: Mapped[Decimal | None] = mapped_column(MONEY)
    tax_rate: Mapped[Decimal | None] = mapped_column(PERCENT)
    tax_inclusive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    client_discount_percent: Mapped[Decimal | None] = mapped_column(PERCENT)
    client_discount_amount: Mapped[Decimal | None] = mapped_column(MONEY)

    recurring_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    recurring_frequency: Mapped[str | None] = mapped_column(String(16))
    recurring_custom_months: Mapped[int | None] = mapped_column(Integer)
    recurring_start_date: Mapped[date | None] = mapped_column(Date)
    last_recurring_invoice_date: Mapped[datetime | None] = mapped_column(DateTime)

    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)

    client: Mapped[Client | None] = relationship()
    creator: Mapped[User] = relationship(foreign_keys=[created_by])
    items: Mapped[list["ProposalItem"]] = relationship(
        back_populates="proposal", cascade="all, delete-orphan"
    )


class ProposalItem(EntityBase):
    """Line item of a proposal; recurring items carry their own schedule."""

    __tablename__ = "proposal_items"

    proposal_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("proposals.id"), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Decimal | None] = mapped_column(MONEY)
    unit_price: Mapped[Decimal | None] = mapped_column(MONEY)
    amount: Mapped[Decimal | None] = mapped_column(MONEY)
    billing_method: Mapped[str] = mapped_column(
        String(16), nullable=False, default=BillingMethod.FIXED_FEE.value
    )

    recurring_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    recurring_frequency: Mapped[str | None] = mapped_column(String(16))
    recurring_custom_months: Mapped[int | None] = mapped_column(Integer)
    recurring_start_date: Mapped[date | None] = mapped_column(Date)
    last_recurring_invoice_date: Mapped[datetime | None] = mapped_column(DateTime)

    proposal: Mapped[Proposal] = relationship(back_populates="items")

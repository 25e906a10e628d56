"""ORM models for invoices ("bills"), their line items and approvals."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import ID_TYPE, MONEY, PERCENT, EntityBase
from .projects import Project
from .proposals import Proposal
from .users import Client


class BillStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class BillItemType(str, Enum):
    CHARGE = "CHARGE"
    TIMESHEET = "TIMESHEET"
    EXPENSE = "EXPENSE"


class Bill(EntityBase):
    """Invoice issued to a client."""

    __tablename__ = "bills"

    invoice_number: Mapped[str | None] = mapped_column(String(64), unique=True)
    proposal_id: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("proposals.id"))
    project_id: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("projects.id"))
    client_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("clients.id"), nullable=False)
    created_by: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("users.id"), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    subtotal: Mapped[Decimal | None] = mapped_column(MONEY)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    tax_rate: Mapped[Decimal | None] = mapped_column(PERCENT)
    tax_inclusive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    discount_percent: Mapped[Decimal | None] = mapped_column(PERCENT)
    discount_amount: Mapped[Decimal | None] = mapped_column(MONEY)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=BillStatus.DRAFT.value)
    due_date: Mapped[date | None] = mapped_column(Date)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)

    client: Mapped[Client] = relationship()
    proposal: Mapped[Proposal | None] = relationship()
    project: Mapped[Project | None] = relationship()
    items: Mapped[list["BillItem"]] = relationship(back_populates="bill", cascade="all, delete-orphan")
    approvals: Mapped[list["BillApproval"]] = relationship(
        back_populates="bill", cascade="all, delete-orphan"
    )


class BillItem(EntityBase):
    """Invoice line; ``person_id`` attributes the work to a user."""

    __tablename__ = "bill_items"

    bill_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("bills.id"), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default=BillItemType.CHARGE.value)
    description: Mapped[str | None] = mapped_column(Text)
    quantity: Mapped[Decimal | None] = mapped_column(MONEY)
    unit_price: Mapped[Decimal | None] = mapped_column(MONEY)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    person_id: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("users.id"))
    is_credit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    bill: Mapped[Bill] = relationship(back_populates="items")


class BillApproval(EntityBase):
    __tablename__ = "bill_approvals"

    bill_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("bills.id"), nullable=False)
    approver_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("users.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="APPROVED")

    bill: Mapped[Bill] = relationship(back_populates="approvals")

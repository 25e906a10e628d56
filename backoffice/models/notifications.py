"""ORM model for user notifications raised by scheduled checks."""
from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from sqlalchemy import Date, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import ID_TYPE, EntityBase


class NotificationType(str, Enum):
    RECURRING_PAYMENT_DUE = "RECURRING_PAYMENT_DUE"
    INSTALLMENT_DUE = "INSTALLMENT_DUE"
    INVOICE_OUTSTANDING = "INVOICE_OUTSTANDING"


class Notification(EntityBase):
    __tablename__ = "notifications"

    user_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("users.id"), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    proposal_id: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("proposals.id"))
    proposal_item_id: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("proposal_items.id"))
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date)
    read_at: Mapped[datetime | None] = mapped_column(DateTime)

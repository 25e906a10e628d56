"""Schemas for bills and bulk deletion requests."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import Field

from backoffice.models.bills import BillItemType, BillStatus

from .base import CamelModel

NonEmptyId = Annotated[str, Field(min_length=1)]


class BillItemIn(CamelModel):
    type: BillItemType = BillItemType.CHARGE
    description: str | None = None
    quantity: Decimal | None = None
    unit_price: Decimal | None = None
    amount: Decimal
    person_id: str | None = None
    is_credit: bool = False


class BillCreate(CamelModel):
    """Manual invoice; the amount is derived from subtotal, discount and tax."""

    client_id: str = Field(min_length=1)
    proposal_id: str | None = None
    project_id: str | None = None
    description: str | None = None
    subtotal: Decimal | None = None
    items: list[BillItemIn] = Field(default_factory=list)
    tax_rate: Decimal | None = Field(default=None, ge=0)
    tax_inclusive: bool = False
    discount_percent: Decimal | None = Field(default=None, ge=0, le=100)
    discount_amount: Decimal | None = Field(default=None, ge=0)
    due_date: date | None = None
    invoice_number: str | None = None


class BillItemOut(CamelModel):
    id: str
    type: BillItemType
    description: str | None = None
    quantity: Decimal | None = None
    unit_price: Decimal | None = None
    amount: Decimal
    person_id: str | None = None
    is_credit: bool = False


class BillOut(CamelModel):
    id: str
    invoice_number: str | None = None
    client_id: str
    proposal_id: str | None = None
    project_id: str | None = None
    created_by: str
    description: str | None = None
    subtotal: Decimal | None = None
    amount: Decimal
    tax_rate: Decimal | None = None
    tax_inclusive: bool = False
    discount_percent: Decimal | None = None
    discount_amount: Decimal | None = None
    status: BillStatus
    due_date: date | None = None
    created_at: datetime | None = None
    items: list[BillItemOut] = Field(default_factory=list)


class BillEnvelope(CamelModel):
    bill: BillOut


class BillBulkDeleteRequest(CamelModel):
    bill_ids: list[NonEmptyId]
    action: Literal["validate", "delete"]


class ProposalBulkDeleteRequest(CamelModel):
    proposal_ids: list[NonEmptyId]
    action: Literal["validate", "delete"]

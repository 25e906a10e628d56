"""Schemas for proposal totals and recurring invoice responses."""
from __future__ import annotations

from decimal import Decimal

from backoffice.domain.billing import Totals

from .base import CamelModel
from .bills import BillOut


class ProposalTotals(CamelModel):
    subtotal: Decimal
    discount_value: Decimal
    after_discount: Decimal
    tax_value: Decimal
    total: Decimal

    @classmethod
    def from_totals(cls, totals: Totals) -> "ProposalTotals":
        return cls(
            subtotal=totals.subtotal,
            discount_value=totals.discount_value,
            after_discount=totals.after_discount,
            tax_value=totals.tax_value,
            total=totals.total,
        )


class FirstInvoiceResponse(CamelModel):
    success: bool = True
    invoice: BillOut
    message: str = "First recurring invoice generated successfully"


class RecurringRunResponse(CamelModel):
    success: bool = True
    notifications_created: int
    details: list[str]

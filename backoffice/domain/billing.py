"""Discount and tax pipeline shared by invoices, recurring invoices and proposals.

Figures are carried at full precision; callers persisting a result use
:meth:`Totals.rounded` to quantize every figure to cents.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

CENT = Decimal("0.01")
HUNDRED = Decimal(100)


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal(0)
    return Decimal(str(value))


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class Totals:
    subtotal: Decimal
    discount_value: Decimal
    after_discount: Decimal
    tax_value: Decimal
    total: Decimal

    def rounded(self) -> "Totals":
        return Totals(
            subtotal=quantize_money(self.subtotal),
            discount_value=quantize_money(self.discount_value),
            after_discount=quantize_money(self.after_discount),
            tax_value=quantize_money(self.tax_value),
            total=quantize_money(self.total),
        )


def compute_discount(
    subtotal: Decimal,
    discount_percent: Any = None,
    discount_amount: Any = None,
    reference_total: Any = None,
) -> Decimal:
    """Return the discount taken off ``subtotal``.

    A positive percentage wins over a fixed amount. A fixed amount is applied
    proportionally when a positive ``reference_total`` is known, so that a
    fraction of the reference document receives the same fraction of the
    discount.
    """

    percent = to_decimal(discount_percent)
    amount = to_decimal(discount_amount)
    reference = to_decimal(reference_total)

    if percent > 0:
        return subtotal * percent / HUNDRED
    if amount > 0 and reference > 0:
        return subtotal * amount / reference
    if amount > 0:
        return amount
    return Decimal(0)


def compute_totals(
    subtotal: Any,
    discount_percent: Any = None,
    discount_amount: Any = None,
    tax_rate: Any = None,
    tax_inclusive: bool = False,
    reference_total: Any = None,
) -> Totals:
    """Apply the discount and then the tax to ``subtotal``."""

    base = to_decimal(subtotal)
    discount_value = compute_discount(base, discount_percent, discount_amount, reference_total)
    after_discount = base - discount_value

    rate = to_decimal(tax_rate)
    if rate > 0 and tax_inclusive:
        tax_value = after_discount * rate / (HUNDRED + rate)
        total = after_discount
    elif rate > 0:
        tax_value = after_discount * rate / HUNDRED
        total = after_discount + tax_value
    else:
        tax_value = Decimal(0)
        total = after_discount

    return Totals(
        subtotal=base,
        discount_value=discount_value,
        after_discount=after_discount,
        tax_value=tax_value,
        total=total,
    )


def sum_line_amounts(items: Iterable[Any]) -> Decimal:
    """Sum ``amount`` across line items (objects or mappings)."""

    total = Decimal(0)
    for item in items:
        value = item.get("amount") if isinstance(item, dict) else getattr(item, "amount", None)
        total += to_decimal(value)
    return total


__all__ = [
    "Totals",
    "compute_discount",
    "compute_totals",
    "quantize_money",
    "sum_line_amounts",
    "to_decimal",
]

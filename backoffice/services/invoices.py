"""Invoice creation, numbering and proposal totals."""
from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backoffice.core.config import BillingSettings, get_settings
from backoffice.core.errors import ConflictError, NotFoundError, ValidationError
from backoffice.core.log import get_logger
from backoffice.domain.billing import Totals, compute_totals, sum_line_amounts, to_decimal
from backoffice.models.bills import Bill, BillItem, BillItemType, BillStatus
from backoffice.models.proposals import BillingMethod, Proposal, ProposalItem, ProposalStatus
from backoffice.repositories.bills import BillRepository
from backoffice.repositories.proposals import ProposalRepository

LOGGER = get_logger(__name__)
_LEADING_DIGITS = re.compile(r"\d+")


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _sequence_of(invoice_number: str, prefix: str) -> int:
    """Leading digits after ``prefix``; ``INV-2024-003-R`` counts as 3."""

    match = _LEADING_DIGITS.match(invoice_number, len(prefix))
    return int(match.group()) if match else 0


class InvoiceNumberAllocator:
    """Derive invoice numbers from proposal numbers or the yearly sequence."""

    def __init__(self, bills: BillRepository, settings: BillingSettings | None = None) -> None:
        self._bills = bills
        self._settings = settings or get_settings().billing

    def next_sequential(self, *, year: int | None = None) -> str:
        """``INV-YYYY-NNN`` following the highest number issued this year."""

        prefix = f"{self._settings.invoice_prefix}-{year or date.today().year}-"
        issued = [
            _sequence_of(number, prefix)
            for number in self._bills.invoice_numbers_with_prefix(prefix)
        ]
        return f"{prefix}{max(issued, default=0) + 1:03d}"

    def from_proposal(self, proposal_number: str | None, suffix: str) -> str:
        """Map ``PROP-…`` to ``INV-…`` plus ``suffix``; fall back to the sequence when taken."""

        if not proposal_number:
            return self.next_sequential()
        proposal_prefix = f"{self._settings.proposal_prefix}-"
        if proposal_number.startswith(proposal_prefix):
            candidate = f"{self._settings.invoice_prefix}-{proposal_number[len(proposal_prefix):]}{suffix}"
        else:
            candidate = f"{proposal_number}{suffix}"
        if self._bills.invoice_number_exists(candidate):
            return self.next_sequential()
        return candidate


def build_recurring_bill(
    proposal: Proposal,
    *,
    amount: Decimal,
    description: str,
    invoice_number: str,
    created_by: str,
    items: Iterable[ProposalItem] = (),
) -> Bill:
    """Draft bill for ``amount`` carrying the proposal's tax and discount settings.

    A fixed proposal discount is applied in proportion to the proposal amount.
    """

    totals = compute_totals(
        amount,
        discount_percent=proposal.client_discount_percent,
        discount_amount=proposal.client_discount_amount,
        tax_rate=proposal.tax_rate,
        tax_inclusive=bool(proposal.tax_inclusive),
        reference_total=proposal.amount or amount,
    ).rounded()
    bill = Bill(
        proposal_id=proposal.id,
        client_id=proposal.client_id,
        created_by=created_by,
        subtotal=totals.subtotal,
        amount=totals.total,
        invoice_number=invoice_number,
        description=description,
        tax_inclusive=bool(proposal.tax_inclusive),
        tax_rate=proposal.tax_rate,
        discount_percent=proposal.client_discount_percent,
        discount_amount=proposal.client_discount_amount,
        status=BillStatus.DRAFT.value,
    )
    for item in items:
        bill.items.append(
            BillItem(
                type=BillItemType.CHARGE.value,
                description=item.description,
                quantity=item.quantity or Decimal(1),
                unit_price=item.unit_price or item.amount,
                amount=to_decimal(item.amount),
                is_credit=False,
            )
        )
    return bill


class InvoiceService:
    """Create bills and derive proposal totals."""

    def __init__(
        self,
        session: Session,
        *,
        bills: BillRepository | None = None,
        proposals: ProposalRepository | None = None,
        settings: BillingSettings | None = None,
    ) -> None:
        self._session = session
        self._bills = bills or BillRepository(session)
        self._proposals = proposals or ProposalRepository(session)
        self._numbers = InvoiceNumberAllocator(self._bills, settings)

    def create_bill(
        self,
        *,
        created_by: str,
        client_id: str,
        subtotal: Decimal | None = None,
        items: Iterable[Mapping[str, Any]] = (),
        proposal_id: str | None = None,
        project_id: str | None = None,
        description: str | None = None,
        tax_rate: Decimal | None = None,
        tax_inclusive: bool = False,
        discount_percent: Decimal | None = None,
        discount_amount: Decimal | None = None,
        due_date: date | None = None,
        invoice_number: str | None = None,
    ) -> Bill:
        """Persist a DRAFT bill whose amount comes from the discount and tax pipeline."""

        lines = list(items)
        if subtotal is None and not lines:
            raise ValidationError("Either subtotal or items must be provided")
        if not self._bills.client_exists(client_id):
            raise NotFoundError("Client not found")

        reference_total = None
        if proposal_id:
            proposal = self._proposals.get(proposal_id)
            if proposal is None:
                raise NotFoundError("Proposal not found")
            reference_total = proposal.amount

        base = subtotal if subtotal is not None else sum_line_amounts(lines)
        totals = compute_totals(
            base,
            discount_percent=discount_percent,
            discount_amount=discount_amount,
            tax_rate=tax_rate,
            tax_inclusive=tax_inclusive,
            reference_total=reference_total,
        ).rounded()

        if invoice_number:
            if self._bills.invoice_number_exists(invoice_number):
                raise ConflictError("Invoice number already exists")
        else:
            invoice_number = self._numbers.next_sequential()

        bill = Bill(
            invoice_number=invoice_number,
            client_id=client_id,
            proposal_id=proposal_id,
            project_id=project_id,
            created_by=created_by,
            description=description,
            subtotal=totals.subtotal,
            amount=totals.total,
            tax_rate=tax_rate,
            tax_inclusive=tax_inclusive,
            discount_percent=discount_percent,
            discount_amount=discount_amount,
            due_date=due_date,
            status=BillStatus.DRAFT.value,
        )
        for line in lines:
            bill.items.append(
                BillItem(
                    type=_enum_value(line.get("type")) or BillItemType.CHARGE.value,
                    description=line.get("description"),
                    quantity=line.get("quantity"),
                    unit_price=line.get("unit_price"),
                    amount=to_decimal(line.get("amount")),
                    person_id=line.get("person_id"),
                    is_credit=bool(line.get("is_credit", False)),
                )
            )
        try:
            self._bills.add(bill)
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            raise ConflictError("Invoice number already exists") from exc
        except Exception:
            self._session.rollback()
            raise
        LOGGER.info(
            "Bill created",
            extra={"bill_id": bill.id, "invoice_number": bill.invoice_number},
        )
        return bill

    def proposal_totals(self, proposal_id: str) -> Totals:
        """Totals of a proposal from its line items, else its stated amount."""

        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise NotFoundError("Proposal not found")
        subtotal = sum_line_amounts(proposal.items) if proposal.items else to_decimal(proposal.amount)
        return compute_totals(
            subtotal,
            discount_percent=proposal.client_discount_percent,
            discount_amount=proposal.client_discount_amount,
            tax_rate=proposal.tax_rate,
            tax_inclusive=bool(proposal.tax_inclusive),
        ).rounded()

    def generate_first_recurring_invoice(
        self,
        proposal_id: str,
        *,
        created_by: str,
        now: datetime | None = None,
    ) -> Bill:
        """Issue the first recurring invoice, which automatic runs never do."""

        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise NotFoundError("Proposal not found")
        if proposal.status != ProposalStatus.APPROVED.value:
            raise ValidationError("Proposal must be approved before generating recurring invoice")

        recurring_items = [
            item
            for item in proposal.items
            if item.recurring_enabled and item.billing_method == BillingMethod.RECURRING.value
        ]
        proposal_level = bool(proposal.recurring_enabled and proposal.recurring_frequency)
        if not proposal_level and not recurring_items:
            raise ValidationError("This proposal does not have recurring billing enabled")
        if proposal.last_recurring_invoice_date is not None:
            raise ValidationError(
                "First recurring invoice has already been generated for this proposal"
            )

        if proposal_level:
            amount = to_decimal(proposal.amount)
            description = f"Recurring Payment - {proposal.title}"
        else:
            amount = sum_line_amounts(recurring_items)
            description = "Recurring Payment - " + ", ".join(item.description for item in recurring_items)
        if amount <= 0:
            raise ValidationError("Invalid invoice amount")
        if not proposal.client_id:
            raise ValidationError("Proposal must be associated with a client")

        stamp = now or datetime.now()
        bill = build_recurring_bill(
            proposal,
            amount=amount,
            description=description,
            invoice_number=self._numbers.from_proposal(proposal.proposal_number, "-R1"),
            created_by=created_by,
            items=recurring_items,
        )
        try:
            self._bills.add(bill)
            self._proposals.mark_invoiced(proposal, when=stamp)
            for item in recurring_items:
                self._proposals.mark_invoiced(item, when=stamp)
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            raise ConflictError("Invoice number already exists") from exc
        except Exception:
            self._session.rollback()
            raise
        LOGGER.info(
            "First recurring invoice generated",
            extra={"proposal_id": proposal.id, "bill_id": bill.id},
        )
        return bill


__all__ = ["InvoiceNumberAllocator", "InvoiceService", "build_recurring_bill"]

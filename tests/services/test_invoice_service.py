"""Tests for invoice creation, numbering and first recurring invoices."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from backoffice.core.config import BillingSettings
from backoffice.core.errors import ConflictError, NotFoundError, ValidationError
from backoffice.models import BillItemType
from backoffice.repositories.bills import BillRepository
from backoffice.services.invoices import InvoiceNumberAllocator, InvoiceService


@pytest.fixture()
def service(session: Session) -> InvoiceService:
    return InvoiceService(session)


def test_sequential_numbers_continue_from_the_highest(session: Session, seed) -> None:
    creator = seed.user()
    client = seed.client()
    seed.bill(client, creator, invoice_number="INV-2024-009")
    seed.bill(client, creator, invoice_number="INV-2023-120")
    allocator = InvoiceNumberAllocator(BillRepository(session), BillingSettings())

    assert allocator.next_sequential(year=2024) == "INV-2024-010"
    assert allocator.next_sequential(year=2025) == "INV-2025-001"


def test_sequence_reads_leading_digits_of_recurring_numbers(session: Session, seed) -> None:
    creator = seed.user()
    client = seed.client()
    for number in ("INV-2024-001", "INV-2024-002", "INV-2024-003", "INV-2024-003-R", "INV-2024-DRAFT"):
        seed.bill(client, creator, invoice_number=number)
    allocator = InvoiceNumberAllocator(BillRepository(session), BillingSettings())

    assert allocator.next_sequential(year=2024) == "INV-2024-004"


def test_recurring_suffix_above_the_plain_numbers_wins(session: Session, seed) -> None:
    creator = seed.user()
    client = seed.client()
    seed.bill(client, creator, invoice_number="INV-2024-002")
    seed.bill(client, creator, invoice_number="INV-2024-010-R1")
    allocator = InvoiceNumberAllocator(BillRepository(session), BillingSettings())

    assert allocator.next_sequential(year=2024) == "INV-2024-011"


def test_create_bill_after_a_recurring_invoice_takes_the_next_number(session: Session, seed, service) -> None:
    year = date.today().year
    creator = seed.user()
    client = seed.client()
    seed.bill(client, creator, invoice_number=f"INV-{year}-001")
    seed.bill(client, creator, invoice_number=f"INV-{year}-001-R")
    session.commit()

    bill = service.create_bill(created_by=creator.id, client_id=client.id, subtotal=Decimal("10"))

    assert bill.invoice_number == f"INV-{year}-002"


def test_proposal_numbers_map_onto_invoice_numbers(session: Session, seed) -> None:
    creator = seed.user()
    client = seed.client()
    seed.bill(client, creator, invoice_number="INV-2024-003-R")
    allocator = InvoiceNumberAllocator(BillRepository(session), BillingSettings())

    assert allocator.from_proposal("PROP-2024-004", "-R") == "INV-2024-004-R"
    assert allocator.from_proposal("Q-17", "-R1") == "Q-17-R1"
    assert allocator.from_proposal("PROP-2024-003", "-R").startswith(f"INV-{date.today().year}-")
    assert allocator.from_proposal(None, "-R") == f"INV-{date.today().year}-001"


def test_create_bill_applies_discount_then_tax(session: Session, seed, service) -> None:
    creator = seed.user()
    client = seed.client()
    session.commit()

    bill = service.create_bill(
        created_by=creator.id,
        client_id=client.id,
        subtotal=Decimal("1000"),
        discount_percent=Decimal("10"),
        tax_rate=Decimal("23"),
    )

    assert bill.amount == Decimal("1107.00")
    assert bill.subtotal == Decimal("1000.00")
    assert bill.status == "DRAFT"
    assert bill.invoice_number == f"INV-{date.today().year}-001"


def test_create_bill_from_items(session: Session, seed, service) -> None:
    creator = seed.user()
    client = seed.client()
    session.commit()

    bill = service.create_bill(
        created_by=creator.id,
        client_id=client.id,
        items=[
            {"type": BillItemType.TIMESHEET, "description": "Design", "amount": Decimal("600"), "person_id": creator.id},
            {"type": BillItemType.EXPENSE, "description": "Travel", "amount": Decimal("40")},
        ],
        invoice_number="INV-MANUAL-1",
    )

    assert bill.amount == Decimal("640.00")
    assert [item.type for item in bill.items] == ["TIMESHEET", "EXPENSE"]
    assert bill.items[0].person_id == creator.id


def test_fixed_discount_is_prorated_against_the_proposal(session: Session, seed, service) -> None:
    creator = seed.user()
    client = seed.client()
    proposal = seed.proposal(client, creator, amount=Decimal("1000"))
    session.commit()

    bill = service.create_bill(
        created_by=creator.id,
        client_id=client.id,
        proposal_id=proposal.id,
        subtotal=Decimal("500"),
        discount_amount=Decimal("100"),
    )

    assert bill.amount == Decimal("450.00")


def test_create_bill_rejects_bad_input(session: Session, seed, service) -> None:
    creator = seed.user()
    client = seed.client()
    seed.bill(client, creator, invoice_number="INV-TAKEN")
    session.commit()

    with pytest.raises(ValidationError, match="Either subtotal or items must be provided"):
        service.create_bill(created_by=creator.id, client_id=client.id)
    with pytest.raises(NotFoundError, match="Client not found"):
        service.create_bill(created_by=creator.id, client_id="missing", subtotal=Decimal("1"))
    with pytest.raises(NotFoundError, match="Proposal not found"):
        service.create_bill(
            created_by=creator.id, client_id=client.id, subtotal=Decimal("1"), proposal_id="missing"
        )
    with pytest.raises(ConflictError, match="Invoice number already exists"):
        service.create_bill(
            created_by=creator.id, client_id=client.id, subtotal=Decimal("1"), invoice_number="INV-TAKEN"
        )


def test_proposal_totals_prefer_line_items(session: Session, seed, service) -> None:
    creator = seed.user()
    client = seed.client()
    proposal = seed.proposal(
        client,
        creator,
        amount=Decimal("999"),
        tax_rate=Decimal("23"),
        client_discount_percent=Decimal("10"),
    )
    seed.proposal_item(proposal, amount=Decimal("600"))
    seed.proposal_item(proposal, amount=Decimal("400"))
    session.commit()

    totals = service.proposal_totals(proposal.id)

    assert totals.subtotal == Decimal("1000.00")
    assert totals.discount_value == Decimal("100.00")
    assert totals.tax_value == Decimal("207.00")
    assert totals.total == Decimal("1107.00")


def _recurring_proposal(seed, **values):
    creator = seed.user()
    client = seed.client()
    values.setdefault("proposal_number", "PROP-2024-010")
    values.setdefault("amount", Decimal("500"))
    proposal = seed.proposal(
        client,
        creator,
        recurring_enabled=True,
        recurring_frequency="MONTHLY_1",
        recurring_start_date=date(2024, 1, 1),
        **values,
    )
    return proposal, creator


def test_first_recurring_invoice_stamps_the_schedule(session: Session, seed, service) -> None:
    proposal, creator = _recurring_proposal(seed)
    session.commit()
    stamp = datetime(2024, 2, 1, 9, 0)

    bill = service.generate_first_recurring_invoice(proposal.id, created_by=creator.id, now=stamp)

    assert bill.invoice_number == "INV-2024-010-R1"
    assert bill.amount == Decimal("500.00")
    assert bill.description == "Recurring Payment - Website retainer"
    session.refresh(proposal)
    assert proposal.last_recurring_invoice_date == stamp
    with pytest.raises(ValidationError, match="already been generated"):
        service.generate_first_recurring_invoice(proposal.id, created_by=creator.id)


def test_first_recurring_invoice_from_line_items(session: Session, seed, service) -> None:
    creator = seed.user()
    client = seed.client()
    proposal = seed.proposal(client, creator, proposal_number="PROP-2024-011")
    item = seed.proposal_item(
        proposal,
        description="Support plan",
        amount=Decimal("120"),
        billing_method="RECURRING",
        recurring_enabled=True,
        recurring_frequency="MONTHLY_1",
        recurring_start_date=date(2024, 1, 1),
    )
    seed.proposal_item(proposal, description="Setup", amount=Decimal("900"))
    session.commit()

    bill = service.generate_first_recurring_invoice(proposal.id, created_by=creator.id)

    assert bill.amount == Decimal("120.00")
    assert bill.description == "Recurring Payment - Support plan"
    assert [line.description for line in bill.items] == ["Support plan"]
    session.refresh(item)
    assert item.last_recurring_invoice_date is not None


@pytest.mark.parametrize(
    ("values", "message"),
    [
        ({"status": "SUBMITTED"}, "Proposal must be approved before generating recurring invoice"),
        ({"recurring_enabled": False}, "This proposal does not have recurring billing enabled"),
        ({"amount": Decimal("0")}, "Invalid invoice amount"),
    ],
)
def test_first_recurring_invoice_rejections(session: Session, seed, service, values, message) -> None:
    values = dict(values)
    recurring_enabled = values.pop("recurring_enabled", True)
    proposal, creator = _recurring_proposal(seed, **values)
    proposal.recurring_enabled = recurring_enabled
    session.commit()

    with pytest.raises(ValidationError, match=message):
        service.generate_first_recurring_invoice(proposal.id, created_by=creator.id)

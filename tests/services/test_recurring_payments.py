"""Tests for the daily recurring billing check."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backoffice.models import Bill, Notification
from backoffice.models.users import UserRole
from backoffice.repositories.bills import BillRepository
from backoffice.services.recurring import RecurringPaymentService


class _FailingBills(BillRepository):
    def add(self, bill):
        raise RuntimeError("invoice store unavailable")


def _count(session: Session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


def _recurring_proposal(seed, **values):
    creator = seed.user(role=UserRole.STAFF)
    manager = seed.user(role=UserRole.MANAGER)
    client = seed.client(manager=manager)
    values.setdefault("proposal_number", "PROP-2024-001")
    values.setdefault("amount", Decimal("1000.00"))
    proposal = seed.proposal(
        client,
        creator,
        recurring_enabled=True,
        recurring_frequency="MONTHLY_1",
        recurring_start_date=date(2024, 1, 15),
        **values,
    )
    return proposal, creator, manager


def test_first_cycle_notifies_creator_and_client_manager(session: Session, seed) -> None:
    proposal, creator, manager = _recurring_proposal(seed)
    session.commit()

    result = RecurringPaymentService(session).run(date(2024, 2, 20))

    assert result.notifications_created == 2
    assert result.details == [
        f"Proposal {proposal.id} - User {creator.id}",
        f"Proposal {proposal.id} - User {manager.id}",
    ]
    notifications = session.execute(select(Notification)).scalars().all()
    assert {n.user_id for n in notifications} == {creator.id, manager.id}
    assert all(n.title == "Recurring Payment Due: Website retainer" for n in notifications)
    assert all(n.due_date == date(2024, 2, 15) for n in notifications)
    assert _count(session, Bill) == 0
    session.refresh(proposal)
    assert proposal.last_recurring_invoice_date is None


def test_manager_who_created_the_proposal_is_notified_once(session: Session, seed) -> None:
    manager = seed.user(role=UserRole.MANAGER)
    client = seed.client(manager=manager)
    seed.proposal(
        client,
        manager,
        recurring_enabled=True,
        recurring_frequency="MONTHLY_1",
        recurring_start_date=date(2024, 1, 15),
        amount=Decimal("10"),
    )
    session.commit()

    result = RecurringPaymentService(session).run(date(2024, 2, 15))

    assert result.notifications_created == 1


def test_not_due_schedule_is_left_alone(session: Session, seed) -> None:
    _recurring_proposal(seed)
    session.commit()

    result = RecurringPaymentService(session).run(date(2024, 2, 14))

    assert result.notifications_created == 0
    assert _count(session, Notification) == 0


def test_due_schedule_generates_invoice_and_advances(session: Session, seed) -> None:
    proposal, _, _ = _recurring_proposal(
        seed,
        last_recurring_invoice_date=datetime(2024, 1, 15, 6, 0),
        tax_rate=Decimal("23"),
    )
    session.commit()
    stamp = datetime(2024, 2, 15, 6, 0)

    result = RecurringPaymentService(session).run(date(2024, 2, 15), now=stamp)

    bill = session.execute(select(Bill)).scalar_one()
    assert bill.invoice_number == "INV-2024-001-R"
    assert bill.status == "DRAFT"
    assert bill.subtotal == Decimal("1000.00")
    assert bill.amount == Decimal("1230.00")
    assert bill.description == "Recurring Payment - Website retainer"
    assert result.details == [f"Invoice generated for Proposal {proposal.id} - Invoice {bill.id}"]
    session.refresh(proposal)
    assert proposal.last_recurring_invoice_date == stamp
    assert _count(session, Notification) == 0


def test_taken_invoice_number_falls_back_to_the_sequence(session: Session, seed) -> None:
    proposal, creator, _ = _recurring_proposal(
        seed, last_recurring_invoice_date=datetime(2024, 1, 15)
    )
    seed.bill(proposal.client, creator, invoice_number="INV-2024-001-R")
    session.commit()

    RecurringPaymentService(session).run(date(2024, 2, 15))

    numbers = set(session.execute(select(Bill.invoice_number)).scalars())
    assert len(numbers) == 2
    assert "INV-2024-001-R" in numbers


def test_zero_amount_source_is_skipped(session: Session, seed) -> None:
    _recurring_proposal(
        seed,
        amount=Decimal("0"),
        last_recurring_invoice_date=datetime(2024, 1, 15),
    )
    session.commit()

    result = RecurringPaymentService(session).run(date(2024, 2, 15))

    assert result.notifications_created == 0
    assert _count(session, Bill) == 0


def test_generation_failure_notifies_and_keeps_schedule(session: Session, seed) -> None:
    last = datetime(2024, 1, 15, 6, 0)
    proposal, creator, _ = _recurring_proposal(seed, last_recurring_invoice_date=last)
    session.commit()

    service = RecurringPaymentService(session, bills=_FailingBills(session))
    result = service.run(date(2024, 2, 15), now=datetime(2024, 2, 15, 6, 0))

    assert result.details == [f"Error generating invoice for Proposal {proposal.id}"]
    notification = session.execute(select(Notification)).scalar_one()
    assert notification.user_id == creator.id
    assert "invoice store unavailable" in notification.message
    assert notification.message.startswith("Failed to automatically generate recurring invoice.")
    assert _count(session, Bill) == 0
    session.refresh(proposal)
    assert proposal.last_recurring_invoice_date == last


def test_recurring_line_item_is_invoiced_on_its_own_schedule(session: Session, seed) -> None:
    creator = seed.user()
    client = seed.client()
    proposal = seed.proposal(client, creator, proposal_number="PROP-7", amount=Decimal("1200"))
    item = seed.proposal_item(
        proposal,
        description="Managed hosting",
        amount=Decimal("300"),
        billing_method="RECURRING",
        recurring_enabled=True,
        recurring_frequency="MONTHLY_3",
        recurring_start_date=date(2024, 1, 1),
        last_recurring_invoice_date=datetime(2024, 1, 1),
    )
    session.commit()
    service = RecurringPaymentService(session)

    first = service.run(date(2024, 4, 1), now=datetime(2024, 4, 1, 6, 0))
    second = service.run(date(2024, 4, 1), now=datetime(2024, 4, 1, 7, 0))

    assert len(first.details) == 1
    assert first.details[0].startswith(f"Invoice generated for Item {item.id}")
    assert second.details == []
    bill = session.execute(select(Bill)).scalar_one()
    assert bill.invoice_number == "INV-7-R"
    assert [line.description for line in bill.items] == ["Managed hosting"]
    assert bill.items[0].type == "CHARGE"
    assert bill.amount == Decimal("300.00")
    session.refresh(item)
    assert item.last_recurring_invoice_date == datetime(2024, 4, 1, 6, 0)


def test_deleted_or_unapproved_proposals_are_ignored(session: Session, seed) -> None:
    _recurring_proposal(seed, status="SUBMITTED")
    _recurring_proposal(seed, proposal_number="PROP-2024-002", deleted_at=datetime(2024, 1, 20))
    session.commit()

    result = RecurringPaymentService(session).run(date(2024, 2, 20))

    assert result.notifications_created == 0

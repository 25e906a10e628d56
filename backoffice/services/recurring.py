"""Daily recurring billing check: first-invoice reminders and automatic invoices."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable

from sqlalchemy.orm import Session

from backoffice.core.config import BillingSettings
from backoffice.core.log import get_logger, log_context, timeit
from backoffice.domain.billing import to_decimal
from backoffice.domain.records import RecurringSchedule
from backoffice.domain.recurring import ScheduleAction, ScheduleDecision, evaluate
from backoffice.models.proposals import Proposal, ProposalItem
from backoffice.repositories.bills import BillRepository
from backoffice.repositories.notifications import NotificationRepository
from backoffice.repositories.proposals import ProposalRepository

from .invoices import InvoiceNumberAllocator, build_recurring_bill

LOGGER = get_logger(__name__)

RECURRING_SUFFIX = "-R"


def schedule_of(record: Proposal | ProposalItem) -> RecurringSchedule | None:
    """Schedule of a recurring source, or ``None`` when it is incompletely configured."""

    if not record.recurring_start_date or not record.recurring_frequency:
        return None
    return RecurringSchedule(
        start_date=record.recurring_start_date,
        frequency=record.recurring_frequency,
        custom_months=record.recurring_custom_months,
        last_invoice_date=record.last_recurring_invoice_date,
    )


@dataclass
class RecurringRunResult:
    details: list[str] = field(default_factory=list)

    @property
    def notifications_created(self) -> int:
        return len(self.details)

    def to_payload(self) -> dict[str, Any]:
        return {
            "success": True,
            "notificationsCreated": self.notifications_created,
            "details": list(self.details),
        }


@dataclass(frozen=True)
class _Source:
    """A proposal or a proposal line seen through the fields the run needs."""

    label: str
    record: Proposal | ProposalItem
    proposal: Proposal
    title: str
    amount: Any
    first_invoice_message: str
    items: tuple[ProposalItem, ...] = ()

    @property
    def proposal_item_id(self) -> str | None:
        return self.record.id if isinstance(self.record, ProposalItem) else None


def _proposal_source(proposal: Proposal) -> _Source:
    return _Source(
        label=f"Proposal {proposal.id}",
        record=proposal,
        proposal=proposal,
        title=proposal.title,
        amount=proposal.amount,
        first_invoice_message=(
            "It's time to generate the first recurring invoice for proposal "
            f"{proposal.proposal_number or proposal.id}"
        ),
    )


def _item_source(item: ProposalItem) -> _Source:
    proposal = item.proposal
    return _Source(
        label=f"Item {item.id}",
        record=item,
        proposal=proposal,
        title=item.description,
        amount=item.amount,
        first_invoice_message=(
            f'It\'s time to generate the first recurring invoice for line item "{item.description}" '
            f"in proposal {proposal.proposal_number or proposal.id}"
        ),
        items=(item,),
    )


class RecurringPaymentService:
    """Walk recurring proposals and line items and act on the ones that are due."""

    def __init__(
        self,
        session: Session,
        *,
        proposals: ProposalRepository | None = None,
        bills: BillRepository | None = None,
        notifications: NotificationRepository | None = None,
        settings: BillingSettings | None = None,
    ) -> None:
        self._session = session
        self._proposals = proposals or ProposalRepository(session)
        self._bills = bills or BillRepository(session)
        self._notifications = notifications or NotificationRepository(session)
        self._numbers = InvoiceNumberAllocator(self._bills, settings)

    def sources(self) -> list[_Source]:
        proposals = [_proposal_source(p) for p in self._proposals.list_recurring_proposals()]
        items = [_item_source(i) for i in self._proposals.list_recurring_items()]
        return proposals + items

    def run(
        self,
        today: date | datetime | None = None,
        *,
        now: datetime | None = None,
        sources: Iterable[_Source] | None = None,
    ) -> RecurringRunResult:
        """Evaluate every recurring source against ``today`` and commit the outcome."""

        stamp = now or datetime.now()
        day = today or stamp.date()
        result = RecurringRunResult()

        with log_context.bound(job="recurring-payments"), timeit(
            "Recurring payment check", logger=LOGGER, unit="sources"
        ) as timer:
            try:
                for source in sources if sources is not None else self.sources():
                    timer.add()
                    self.process(source, day, now=stamp, result=result)
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

        LOGGER.info(
            "Recurring payment check finished",
            extra={"notifications_created": result.notifications_created},
        )
        return result

    def process(
        self,
        source: _Source,
        today: date | datetime,
        *,
        now: datetime,
        result: RecurringRunResult,
    ) -> ScheduleDecision | None:
        schedule = schedule_of(source.record)
        if schedule is None:
            return None
        decision = evaluate(schedule, today)
        if decision.action is ScheduleAction.NOTIFY_FIRST_INVOICE:
            self._notify_first_invoice(source, decision, result)
        elif decision.action is ScheduleAction.GENERATE_INVOICE:
            self._generate_invoice(source, decision, now=now, result=result)
        return decision

    def _notify_first_invoice(
        self,
        source: _Source,
        decision: ScheduleDecision,
        result: RecurringRunResult,
    ) -> None:
        recipients = [source.proposal.created_by]
        manager_id = self._proposals.client_manager_id(source.proposal.client_id)
        if manager_id and manager_id not in recipients:
            recipients.append(manager_id)

        for user_id in recipients:
            self._notifications.create(
                user_id=user_id,
                proposal_id=source.proposal.id,
                proposal_item_id=source.proposal_item_id,
                title=f"Recurring Payment Due: {source.title}",
                message=source.first_invoice_message,
                due_date=decision.due_date,
            )
            result.details.append(f"{source.label} - User {user_id}")

    def _generate_invoice(
        self,
        source: _Source,
        decision: ScheduleDecision,
        *,
        now: datetime,
        result: RecurringRunResult,
    ) -> None:
        amount = to_decimal(source.amount)
        if amount <= 0:
            LOGGER.debug("Skipping recurring source without amount", extra={"source": source.label})
            return

        savepoint = self._session.begin_nested()
        try:
            bill = build_recurring_bill(
                source.proposal,
                amount=amount,
                description=f"Recurring Payment - {source.title}",
                invoice_number=self._numbers.from_proposal(
                    source.proposal.proposal_number, RECURRING_SUFFIX
                ),
                created_by=source.proposal.created_by,
                items=source.items,
            )
            self._bills.add(bill)
            self._proposals.mark_invoiced(source.record, when=now)
            savepoint.commit()
        except Exception as exc:
            savepoint.rollback()
            LOGGER.exception(
                "Recurring invoice generation failed",
                extra={"source": source.label},
            )
            self._notifications.create(
                user_id=source.proposal.created_by,
                proposal_id=source.proposal.id,
                proposal_item_id=source.proposal_item_id,
                title=f"Recurring Payment Due: {source.title}",
                message=(
                    "Failed to automatically generate recurring invoice. "
                    f"Please generate manually. Error: {exc}"
                ),
                due_date=decision.due_date,
            )
            result.details.append(f"Error generating invoice for {source.label}")
            return

        result.details.append(f"Invoice generated for {source.label} - Invoice {bill.id}")


__all__ = ["RecurringPaymentService", "RecurringRunResult", "schedule_of"]

"""Data access for proposals and their recurring configuration."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable

from sqlalchemy import func, select, update
from sqlalchemy.orm import joinedload, selectinload

from backoffice.db.errors import storage_boundary
from backoffice.domain.records import DeletionCheck
from backoffice.models.bills import Bill, BillStatus
from backoffice.models.projects import Project, ProjectStatus
from backoffice.models.proposals import BillingMethod, Proposal, ProposalItem, ProposalStatus
from backoffice.models.users import Client

from .base import BaseRepository


class ProposalRepository(BaseRepository):
    """Repository encapsulating queries over ``proposals`` and ``proposal_items``."""

    @storage_boundary
    def get(self, proposal_id: str) -> Proposal | None:
        statement = (
            select(Proposal)
            .options(selectinload(Proposal.items), joinedload(Proposal.client))
            .where(Proposal.id == proposal_id)
        )
        return self._session.execute(statement).scalar_one_or_none()

    @storage_boundary
    def list_recurring_proposals(self) -> list[Proposal]:
        """Approved, non-deleted proposals with proposal-level recurring billing."""

        statement = (
            select(Proposal)
            .options(joinedload(Proposal.client))
            .where(
                Proposal.recurring_enabled.is_(True),
                Proposal.status == ProposalStatus.APPROVED.value,
                Proposal.deleted_at.is_(None),
            )
            .order_by(Proposal.created_at)
        )
        return list(self._session.execute(statement).scalars())

    @storage_boundary
    def list_recurring_items(self) -> list[ProposalItem]:
        """Recurring line items whose proposal is approved and not deleted."""

        statement = (
            select(ProposalItem)
            .join(ProposalItem.proposal)
            .options(joinedload(ProposalItem.proposal).joinedload(Proposal.client))
            .where(
                ProposalItem.recurring_enabled.is_(True),
                ProposalItem.billing_method == BillingMethod.RECURRING.value,
                Proposal.status == ProposalStatus.APPROVED.value,
                Proposal.deleted_at.is_(None),
            )
            .order_by(ProposalItem.created_at)
        )
        return list(self._session.execute(statement).scalars())

    @storage_boundary
    def client_manager_id(self, client_id: str | None) -> str | None:
        if not client_id:
            return None
        statement = select(Client.client_manager_id).where(Client.id == client_id)
        return self._session.execute(statement).scalar()

    @storage_boundary
    def mark_invoiced(self, record: Proposal | ProposalItem, *, when: datetime | None = None) -> None:
        record.last_recurring_invoice_date = when or datetime.now()
        self._session.flush()

    @storage_boundary
    def check_deletion(self, proposal_id: str) -> DeletionCheck:
        """Decide whether ``proposal_id`` may be deleted rather than archived."""

        proposal = self._session.get(Proposal, proposal_id)
        if proposal is None:
            return DeletionCheck(
                id=proposal_id, name="Unknown", can_delete=False, reason="Proposal not found"
            )

        approved_invoices = self._session.execute(
            select(func.count())
            .select_from(Bill)
            .where(
                Bill.proposal_id == proposal_id,
                Bill.status.in_([BillStatus.APPROVED.value, BillStatus.PAID.value]),
                Bill.deleted_at.is_(None),
            )
        ).scalar() or 0
        active_projects = self._session.execute(
            select(func.count())
            .select_from(Project)
            .where(
                Project.proposal_id == proposal_id,
                Project.status == ProjectStatus.ACTIVE.value,
                Project.deleted_at.is_(None),
            )
        ).scalar() or 0
        live_bills = self._session.execute(
            select(func.count())
            .select_from(Bill)
            .where(Bill.proposal_id == proposal_id, Bill.deleted_at.is_(None))
        ).scalar() or 0
        approved_with_bills = proposal.status == ProposalStatus.APPROVED.value and live_bills > 0

        reasons: list[str] = []
        if approved_invoices:
            reasons.append(f"{approved_invoices} approved or paid invoice(s)")
        if active_projects:
            reasons.append(f"{active_projects} active project(s)")
        if approved_with_bills:
            reasons.append("proposal is APPROVED with invoices")

        reason = None
        if reasons:
            reason = f"Cannot delete proposal with {', '.join(reasons)}. Please archive instead."
        return DeletionCheck(
            id=proposal.id,
            name=proposal.title or "Unknown",
            can_delete=not reasons,
            reason=reason,
        )

    @storage_boundary
    def soft_delete(self, proposal_ids: Iterable[str], *, when: datetime | None = None) -> int:
        ids = list(proposal_ids)
        if not ids:
            return 0
        statement = (
            update(Proposal)
            .where(Proposal.id.in_(ids), Proposal.deleted_at.is_(None))
            .values(deleted_at=when or datetime.now())
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(statement)
        return int(result.rowcount or 0)

"""Data access for bills (invoices)."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import selectinload

from backoffice.db.errors import storage_boundary
from backoffice.domain.records import DeletionCheck
from backoffice.models.bills import Bill, BillStatus
from backoffice.models.proposals import ProposalStatus
from backoffice.models.users import Client

from .base import BaseRepository


def bill_display_name(bill_id: str, invoice_number: str | None) -> str:
    return invoice_number or f"Invoice {bill_id[:8]}"


class BillRepository(BaseRepository):
    """Repository encapsulating queries over ``bills``."""

    @storage_boundary
    def get(self, bill_id: str) -> Bill | None:
        return self._get(Bill, bill_id)

    @storage_boundary
    def client_exists(self, client_id: str) -> bool:
        return self._exists(Client, client_id)

    @storage_boundary
    def add(self, bill: Bill) -> Bill:
        return self._add(bill)

    @storage_boundary
    def invoice_number_exists(self, invoice_number: str) -> bool:
        statement = select(Bill.id).where(Bill.invoice_number == invoice_number).limit(1)
        return self._session.execute(statement).first() is not None

    @storage_boundary
    def invoice_numbers_with_prefix(self, prefix: str) -> list[str]:
        statement = select(Bill.invoice_number).where(Bill.invoice_number.like(f"{prefix}%"))
        return list(self._session.execute(statement).scalars())

    @storage_boundary
    def check_deletion(self, bill_id: str) -> DeletionCheck:
        """Decide whether ``bill_id`` may be deleted rather than archived."""

        statement = (
            select(Bill)
            .options(selectinload(Bill.approvals), selectinload(Bill.proposal))
            .where(Bill.id == bill_id)
        )
        bill = self._session.execute(statement).scalar_one_or_none()
        if bill is None:
            return DeletionCheck(
                id=bill_id,
                name=bill_display_name(bill_id, None),
                can_delete=False,
                reason="Invoice not found",
            )

        reasons: list[str] = []
        if bill.status == BillStatus.PAID.value:
            reasons.append("invoice status is PAID")
        if bill.approvals:
            reasons.append("invoice has approvals")
        if bill.proposal is not None and bill.proposal.status == ProposalStatus.APPROVED.value:
            reasons.append("invoice is linked to an approved proposal")

        reason = None
        if reasons:
            reason = f"Cannot delete invoice with {', '.join(reasons)}. Please archive instead."
        return DeletionCheck(
            id=bill.id,
            name=bill_display_name(bill.id, bill.invoice_number),
            can_delete=not reasons,
            reason=reason,
        )

    @storage_boundary
    def soft_delete(self, bill_ids: Iterable[str], *, when: datetime | None = None) -> int:
        ids = list(bill_ids)
        if not ids:
            return 0
        statement = (
            update(Bill)
            .where(Bill.id.in_(ids), Bill.deleted_at.is_(None))
            .values(deleted_at=when or datetime.now())
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(statement)
        return int(result.rowcount or 0)

"""Concurrent validation and soft deletion of bills and proposals."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from sqlalchemy.orm import sessionmaker

from backoffice.core.errors import ConnectivityError, ValidationError
from backoffice.core.log import get_logger, timeit
from backoffice.db.session import get_session_factory, session_scope
from backoffice.domain.records import DeletionCheck
from backoffice.repositories.bills import BillRepository
from backoffice.repositories.proposals import ProposalRepository

LOGGER = get_logger(__name__)

CheckFn = Callable[[str], DeletionCheck]
ApplyFn = Callable[[Sequence[str]], int]


class BulkConnectivityError(ConnectivityError):
    """Every per-item check failed to reach the database."""

    def __init__(self, non_deletable: list[dict[str, Any]] | None = None) -> None:
        super().__init__()
        self.non_deletable = non_deletable

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.non_deletable is not None:
            payload["deletable"] = []
            payload["nonDeletable"] = self.non_deletable
        return payload


@dataclass(frozen=True)
class ResourceLabels:
    singular: str
    plural: str


INVOICE_LABELS = ResourceLabels("invoice", "invoices")
PROPOSAL_LABELS = ResourceLabels("proposal", "proposals")


class BulkDeletionService:
    """Fan a deletion check out over many IDs and delete the deletable subset.

    ``check`` runs once per ID on a worker thread and must open its own session.
    ``apply`` receives the deletable IDs and performs the deletion in one
    transaction, returning the number of rows affected.
    """

    def __init__(self, check: CheckFn, apply: ApplyFn, labels: ResourceLabels = INVOICE_LABELS) -> None:
        self._check = check
        self._apply = apply
        self._labels = labels

    async def check_all(self, ids: Sequence[str]) -> list[DeletionCheck | BaseException]:
        return await asyncio.gather(
            *(asyncio.to_thread(self._check, item_id) for item_id in ids),
            return_exceptions=True,
        )

    def _failed(self, item_id: str, exc: BaseException) -> DeletionCheck:
        if isinstance(exc, ConnectivityError):
            reason = f"Unable to validate {self._labels.singular}. Database connection error."
        else:
            LOGGER.error(
                "Deletion check failed",
                exc_info=exc,
                extra={"item_id": item_id},
            )
            reason = f"Unable to validate {self._labels.singular} deletion. Please try again."
        return DeletionCheck(id=item_id, name="Unknown", can_delete=False, reason=reason)

    @staticmethod
    def _all_unreachable(outcomes: Sequence[DeletionCheck | BaseException]) -> bool:
        return bool(outcomes) and all(isinstance(o, ConnectivityError) for o in outcomes)

    def _resolve(
        self, ids: Sequence[str], outcomes: Sequence[DeletionCheck | BaseException]
    ) -> list[DeletionCheck]:
        return [
            outcome if isinstance(outcome, DeletionCheck) else self._failed(item_id, outcome)
            for item_id, outcome in zip(ids, outcomes)
        ]

    async def validate(self, ids: Sequence[str]) -> dict[str, Any]:
        """Classify ``ids`` into deletable and non-deletable without mutating anything."""

        with timeit(f"Validate {self._labels.plural} for deletion", logger=LOGGER, total=len(ids)):
            outcomes = await self.check_all(ids)
        checks = self._resolve(ids, outcomes)
        non_deletable = [
            {"id": c.id, "name": c.name, "reason": c.reason or "Unknown reason"}
            for c in checks
            if not c.can_delete
        ]
        if self._all_unreachable(outcomes):
            LOGGER.warning(
                "Bulk validation could not reach the database",
                extra={"items": len(ids)},
            )
            raise BulkConnectivityError(non_deletable)
        return {
            "deletable": [{"id": c.id, "name": c.name} for c in checks if c.can_delete],
            "nonDeletable": non_deletable,
        }

    async def delete(self, ids: Sequence[str]) -> dict[str, Any]:
        """Re-check ``ids`` and soft delete those that may be deleted."""

        outcomes = await self.check_all(ids)
        if self._all_unreachable(outcomes):
            raise BulkConnectivityError()
        deletable = [c.id for c in self._resolve(ids, outcomes) if c.can_delete]
        if not deletable:
            raise ValidationError(f"No {self._labels.plural} can be deleted")

        deleted = await asyncio.to_thread(self._apply, deletable)
        LOGGER.info(
            "Bulk deletion applied",
            extra={"requested": len(ids), "deleted": deleted},
        )
        return {
            "message": f"Successfully deleted {deleted} {self._labels.singular}(s)",
            "deletedCount": deleted,
        }


def bill_deletion_service(factory: sessionmaker | None = None) -> BulkDeletionService:
    session_factory = factory or get_session_factory()

    def check(bill_id: str) -> DeletionCheck:
        with session_factory() as session:
            return BillRepository(session).check_deletion(bill_id)

    def apply(bill_ids: Sequence[str]) -> int:
        with session_scope(session_factory) as session:
            return BillRepository(session).soft_delete(bill_ids)

    return BulkDeletionService(check, apply, INVOICE_LABELS)


def proposal_deletion_service(factory: sessionmaker | None = None) -> BulkDeletionService:
    session_factory = factory or get_session_factory()

    def check(proposal_id: str) -> DeletionCheck:
        with session_factory() as session:
            return ProposalRepository(session).check_deletion(proposal_id)

    def apply(proposal_ids: Sequence[str]) -> int:
        with session_scope(session_factory) as session:
            return ProposalRepository(session).soft_delete(proposal_ids)

    return BulkDeletionService(check, apply, PROPOSAL_LABELS)


__all__ = [
    "BulkConnectivityError",
    "BulkDeletionService",
    "bill_deletion_service",
    "proposal_deletion_service",
]

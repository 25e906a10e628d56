"""Routes for proposals: totals, first recurring invoice and bulk deletion."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backoffice.core.log import get_logger
from backoffice.core.security import AuthenticatedUser, require_admin_user, require_staff_user
from backoffice.db.session import get_db_session
from backoffice.schemas.bills import BillOut, ProposalBulkDeleteRequest
from backoffice.schemas.proposals import FirstInvoiceResponse, ProposalTotals
from backoffice.services.bulk_delete import BulkDeletionService, proposal_deletion_service
from backoffice.services.invoices import InvoiceService

router = APIRouter(prefix="/proposals", tags=["proposals"])
LOGGER = get_logger(__name__)


def get_invoice_service(session: Session = Depends(get_db_session)) -> InvoiceService:
    return InvoiceService(session)


def get_proposal_deletion_service() -> BulkDeletionService:
    return proposal_deletion_service()


@router.post("/bulk-delete", summary="Validate or soft delete several proposals")
async def bulk_delete_proposals(
    payload: ProposalBulkDeleteRequest,
    _: AuthenticatedUser = Depends(require_admin_user),
    service: BulkDeletionService = Depends(get_proposal_deletion_service),
) -> dict[str, Any]:
    if payload.action == "validate":
        return await service.validate(payload.proposal_ids)
    return await service.delete(payload.proposal_ids)


@router.get("/{proposal_id}/totals", response_model=ProposalTotals, summary="Proposal totals")
def read_proposal_totals(
    proposal_id: str,
    _: AuthenticatedUser = Depends(require_staff_user),
    service: InvoiceService = Depends(get_invoice_service),
) -> ProposalTotals:
    return ProposalTotals.from_totals(service.proposal_totals(proposal_id))


@router.post(
    "/{proposal_id}/generate-first-recurring-invoice",
    response_model=FirstInvoiceResponse,
    status_code=201,
    summary="Issue the first recurring invoice",
)
def generate_first_recurring_invoice(
    proposal_id: str,
    user: AuthenticatedUser = Depends(require_staff_user),
    service: InvoiceService = Depends(get_invoice_service),
) -> FirstInvoiceResponse:
    LOGGER.info("First recurring invoice requested", extra={"proposal_id": proposal_id})
    bill = service.generate_first_recurring_invoice(proposal_id, created_by=user.user_id)
    return FirstInvoiceResponse(invoice=BillOut.model_validate(bill))

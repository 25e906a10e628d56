"""Routes for invoices."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backoffice.core.log import get_logger
from backoffice.core.security import AuthenticatedUser, require_admin_user, require_staff_user
from backoffice.db.session import get_db_session
from backoffice.schemas.bills import BillBulkDeleteRequest, BillCreate, BillEnvelope, BillOut
from backoffice.services.bulk_delete import BulkDeletionService, bill_deletion_service
from backoffice.services.invoices import InvoiceService

router = APIRouter(prefix="/bills", tags=["bills"])
LOGGER = get_logger(__name__)


def get_invoice_service(session: Session = Depends(get_db_session)) -> InvoiceService:
    return InvoiceService(session)


def get_bill_deletion_service() -> BulkDeletionService:
    return bill_deletion_service()


@router.post("", response_model=BillEnvelope, status_code=201, summary="Create an invoice")
def create_bill(
    payload: BillCreate,
    user: AuthenticatedUser = Depends(require_staff_user),
    service: InvoiceService = Depends(get_invoice_service),
) -> BillEnvelope:
    data = payload.model_dump(exclude={"items"})
    bill = service.create_bill(
        created_by=user.user_id,
        items=[item.model_dump() for item in payload.items],
        **data,
    )
    return BillEnvelope(bill=BillOut.model_validate(bill))


@router.post("/bulk-delete", summary="Validate or soft delete several invoices")
async def bulk_delete_bills(
    payload: BillBulkDeleteRequest,
    _: AuthenticatedUser = Depends(require_admin_user),
    service: BulkDeletionService = Depends(get_bill_deletion_service),
) -> dict[str, Any]:
    LOGGER.info(
        "Bulk invoice deletion requested",
        extra={"action": payload.action, "items": len(payload.bill_ids)},
    )
    if payload.action == "validate":
        return await service.validate(payload.bill_ids)
    return await service.delete(payload.bill_ids)

"""Endpoints triggered by the external scheduler."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from backoffice.core.config import get_settings
from backoffice.core.errors import AuthenticationError
from backoffice.core.log import get_logger
from backoffice.core.security import verify_cron_secret
from backoffice.db.session import get_db_session
from backoffice.schemas.proposals import RecurringRunResponse
from backoffice.services.recurring import RecurringPaymentService

router = APIRouter(prefix="/cron", tags=["cron"])
LOGGER = get_logger(__name__)


def require_cron_secret(authorization: str | None = Header(None)) -> None:
    """Reject calls that do not carry ``Bearer <CRON_SECRET>``."""

    if not verify_cron_secret(authorization, get_settings().cron.secret):
        LOGGER.warning("Rejected cron call with missing or invalid secret")
        raise AuthenticationError("Unauthorized")


def get_recurring_service(session: Session = Depends(get_db_session)) -> RecurringPaymentService:
    return RecurringPaymentService(session)


@router.get(
    "/recurring-payments",
    response_model=RecurringRunResponse,
    dependencies=[Depends(require_cron_secret)],
    summary="Run the recurring billing check",
)
def run_recurring_payments(
    service: RecurringPaymentService = Depends(get_recurring_service),
) -> RecurringRunResponse:
    result = service.run()
    return RecurringRunResponse(
        notifications_created=result.notifications_created,
        details=result.details,
    )

"""Routes managing a user's compensation."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from backoffice.core.log import get_logger
from backoffice.core.security import (
    AuthenticatedUser,
    require_admin_user,
    require_self_or_roles,
)
from backoffice.db.session import get_db_session
from backoffice.models.users import UserRole
from backoffice.schemas.base import SuccessResponse
from backoffice.schemas.compensation import (
    CalculateRequest,
    CompensationEntryOut,
    CompensationEnvelope,
    EligibilityCreate,
    EligibilityEnvelope,
    EligibilityListEnvelope,
    EligibilityOut,
    EntriesEnvelope,
    EntryEnvelope,
    SchemeCreate,
    SchemeOut,
)
from backoffice.services.compensation import CompensationService, EligibilityDraft, SchemeDraft

router = APIRouter(prefix="/users/{user_id}/compensation", tags=["compensation"])
LOGGER = get_logger(__name__)

require_self_or_staff_lead = require_self_or_roles(UserRole.ADMIN, UserRole.MANAGER)
require_self_or_admin = require_self_or_roles(UserRole.ADMIN)


def get_compensation_service(session: Session = Depends(get_db_session)) -> CompensationService:
    """Return a service bound to the request session."""

    return CompensationService(session)


@router.get("", response_model=CompensationEnvelope, summary="Active compensation scheme")
def read_compensation(
    user_id: str,
    _: AuthenticatedUser = Depends(require_self_or_staff_lead),
    service: CompensationService = Depends(get_compensation_service),
) -> CompensationEnvelope:
    active = service.get_active_scheme(user_id)
    if active is None:
        return CompensationEnvelope(compensation=None)
    scheme = SchemeOut.model_validate(active.scheme)
    scheme.compensation_entries = [CompensationEntryOut.model_validate(e) for e in active.entries]
    return CompensationEnvelope(compensation=scheme)


@router.post("", response_model=CompensationEnvelope, status_code=201, summary="Start a compensation scheme")
def create_compensation(
    user_id: str,
    payload: SchemeCreate,
    _: AuthenticatedUser = Depends(require_admin_user),
    service: CompensationService = Depends(get_compensation_service),
) -> CompensationEnvelope:
    draft = SchemeDraft(**payload.model_dump())
    scheme = service.create_scheme(user_id, draft)
    return CompensationEnvelope(compensation=SchemeOut.model_validate(scheme))


@router.post("/calculate", response_model=EntryEnvelope, status_code=201, summary="Calculate a monthly entry")
def calculate_compensation(
    user_id: str,
    payload: CalculateRequest,
    user: AuthenticatedUser = Depends(require_admin_user),
    service: CompensationService = Depends(get_compensation_service),
) -> EntryEnvelope:
    LOGGER.info(
        "Compensation calculation requested",
        extra={"user_id": user_id, "year": payload.year, "month": payload.month},
    )
    entry = service.calculate_entry(
        user_id,
        payload.year,
        payload.month,
        bonus_multiplier=payload.bonus_multiplier,
        created_by=user.user_id,
    )
    return EntryEnvelope(entry=CompensationEntryOut.model_validate(entry))


@router.get("/entries", response_model=EntriesEnvelope, summary="Compensation entries")
def list_entries(
    user_id: str,
    start_year: int | None = Query(None, alias="startYear"),
    start_month: int | None = Query(None, alias="startMonth"),
    end_year: int | None = Query(None, alias="endYear"),
    end_month: int | None = Query(None, alias="endMonth"),
    _: AuthenticatedUser = Depends(require_self_or_staff_lead),
    service: CompensationService = Depends(get_compensation_service),
) -> EntriesEnvelope:
    entries = service.list_entries(
        user_id,
        start_year=start_year,
        start_month=start_month,
        end_year=end_year,
        end_month=end_month,
    )
    return EntriesEnvelope(entries=[CompensationEntryOut.model_validate(e) for e in entries])


@router.get("/eligibility", response_model=EligibilityListEnvelope, summary="Eligibility overrides")
def list_eligibility(
    user_id: str,
    compensation_id: str | None = Query(None, alias="compensationId"),
    project_id: str | None = Query(None, alias="projectId"),
    client_id: str | None = Query(None, alias="clientId"),
    bill_id: str | None = Query(None, alias="billId"),
    _: AuthenticatedUser = Depends(require_self_or_admin),
    service: CompensationService = Depends(get_compensation_service),
) -> EligibilityListEnvelope:
    rows = service.list_eligibility(
        user_id,
        compensation_id=compensation_id,
        project_id=project_id,
        client_id=client_id,
        bill_id=bill_id,
    )
    return EligibilityListEnvelope(eligibility=[EligibilityOut.model_validate(r) for r in rows])


@router.post(
    "/eligibility",
    response_model=EligibilityEnvelope,
    status_code=201,
    summary="Create or update an eligibility override",
)
def upsert_eligibility(
    user_id: str,
    payload: EligibilityCreate,
    _: AuthenticatedUser = Depends(require_admin_user),
    service: CompensationService = Depends(get_compensation_service),
) -> EligibilityEnvelope:
    row = service.upsert_eligibility(user_id, EligibilityDraft(**payload.model_dump()))
    return EligibilityEnvelope(eligibility=EligibilityOut.model_validate(row))


@router.delete("/eligibility/{eligibility_id}", response_model=SuccessResponse)
def delete_eligibility(
    user_id: str,
    eligibility_id: str,
    _: AuthenticatedUser = Depends(require_admin_user),
    service: CompensationService = Depends(get_compensation_service),
) -> SuccessResponse:
    service.delete_eligibility(user_id, eligibility_id)
    return SuccessResponse()

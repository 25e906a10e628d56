"""Compensation schemes, monthly entries and eligibility overrides."""
from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backoffice.core.config import BillingSettings, get_settings
from backoffice.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from backoffice.core.log import get_logger, log_context
from backoffice.domain.billing import quantize_money, to_decimal
from backoffice.domain.compensation import calculate_earnings, calculate_salary_bonus
from backoffice.models.compensation import (
    CompensationEligibility,
    CompensationEntry,
    CompensationType,
    FinancialTransactionType,
    PercentageType,
    UserCompensation,
    UserFinancialTransaction,
)
from backoffice.repositories.compensation import CompensationRepository

LOGGER = get_logger(__name__)

ENTRY_RELATED_TYPE = "COMPENSATION_ENTRY"
DUPLICATE_ENTRY_MESSAGE = "Compensation entry already exists for this period"


def period_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """First instant and last instant of a calendar month."""

    last_day = calendar.monthrange(year, month)[1]
    return (
        datetime(year, month, 1),
        datetime(year, month, last_day, 23, 59, 59, 999999),
    )


@dataclass(frozen=True)
class SchemeDraft:
    """Validated input for a new compensation scheme."""

    compensation_type: CompensationType
    effective_from: datetime
    effective_to: datetime | None = None
    base_salary: Decimal | None = None
    max_bonus_multiplier: Decimal | None = None
    percentage_type: PercentageType | None = None
    project_percentage: Decimal | None = None
    direct_work_percentage: Decimal | None = None

    def validate(self) -> None:
        if self.compensation_type is CompensationType.SALARY_BONUS:
            if not self.base_salary or self.base_salary <= 0:
                raise ValidationError("Base salary is required for salary-based compensation")
            if not self.max_bonus_multiplier or self.max_bonus_multiplier <= 0:
                raise ValidationError(
                    "Max bonus multiplier is required for salary-based compensation"
                )
            return

        if self.percentage_type is None:
            raise ValidationError(
                "Percentage type is required for percentage-based compensation"
            )
        if self.percentage_type in (PercentageType.PROJECT_TOTAL, PercentageType.BOTH):
            if not self.project_percentage or self.project_percentage <= 0:
                raise ValidationError("Project percentage is required")
        if self.percentage_type in (PercentageType.DIRECT_WORK, PercentageType.BOTH):
            if not self.direct_work_percentage or self.direct_work_percentage <= 0:
                raise ValidationError("Direct work percentage is required")


@dataclass(frozen=True)
class EligibilityDraft:
    compensation_id: str
    project_id: str | None = None
    client_id: str | None = None
    bill_id: str | None = None
    is_eligible: bool = True
    custom_percentage: Decimal | None = None
    fixed_amount: Decimal | None = None

    def validate(self) -> None:
        scopes = [value for value in (self.project_id, self.client_id, self.bill_id) if value]
        if len(scopes) != 1:
            raise ValidationError("Exactly one of projectId, clientId, or billId must be provided")


@dataclass
class ActiveScheme:
    scheme: UserCompensation
    entries: list[CompensationEntry] = field(default_factory=list)


class CompensationService:
    """Use cases around a user's compensation."""

    def __init__(
        self,
        session: Session,
        *,
        repository: CompensationRepository | None = None,
        settings: BillingSettings | None = None,
    ) -> None:
        self._session = session
        self._repository = repository or CompensationRepository(session)
        self._settings = settings or get_settings().billing

    # calculation -----------------------------------------------------

    def calculate_entry(
        self,
        user_id: str,
        year: int,
        month: int,
        *,
        bonus_multiplier: Decimal | float | None = None,
        created_by: str | None = None,
    ) -> CompensationEntry:
        """Compute and persist the entry of ``user_id`` for ``year``/``month``."""

        period_start, period_end = period_bounds(year, month)
        with log_context.bound(user_id=user_id, period=f"{year}-{month:02d}"):
            row = self._repository.find_scheme_for_period(user_id, period_start)
            if row is None:
                raise NotFoundError("No active compensation found for this period")
            if self._repository.entry_exists(user_id, year, month):
                raise ConflictError(DUPLICATE_ENTRY_MESSAGE)

            scheme = self._repository.to_scheme_record(row)
            base_salary = row.base_salary
            bonus_amount: Decimal | None = None
            percentage_earnings: Decimal | None = None

            if scheme.compensation_type == CompensationType.SALARY_BONUS.value:
                bonus = calculate_salary_bonus(scheme, bonus_multiplier)
                bonus_amount = quantize_money(bonus.bonus_amount)
                total_earned = quantize_money(bonus.total_earned)
            else:
                activity = self._repository.load_project_activity(user_id, period_start, period_end)
                overrides = self._repository.overrides_for(user_id, scheme.id)
                earnings = calculate_earnings(user_id, scheme, activity, overrides)
                percentage_earnings = quantize_money(earnings.total_earned)
                total_earned = percentage_earnings
                LOGGER.debug(
                    "Percentage earnings computed",
                    extra={
                        "projects": len(activity),
                        "project_total": str(earnings.project_total_earnings),
                        "direct_work": str(earnings.direct_work_earnings),
                    },
                )

            entry = CompensationEntry(
                user_id=user_id,
                compensation_id=scheme.id,
                period_year=year,
                period_month=month,
                base_salary=base_salary,
                bonus_multiplier=(
                    to_decimal(bonus_multiplier) if bonus_multiplier is not None else None
                ),
                bonus_amount=bonus_amount,
                percentage_earnings=percentage_earnings,
                total_earned=total_earned,
                total_paid=Decimal("0.00"),
                balance=total_earned,
                calculated_at=datetime.now(),
            )
            try:
                self._repository.add_entry(entry)
                self._repository.add_transaction(
                    UserFinancialTransaction(
                        user_id=user_id,
                        type=FinancialTransactionType.COMPENSATION.value,
                        related_id=entry.id,
                        related_type=ENTRY_RELATED_TYPE,
                        amount=total_earned,
                        currency=self._settings.currency,
                        transaction_date=date(year, month, 1),
                        description=f"Compensation for {year}-{month:02d}",
                        created_by=created_by,
                    )
                )
                self._session.commit()
            except IntegrityError as exc:
                self._session.rollback()
                raise ConflictError(DUPLICATE_ENTRY_MESSAGE) from exc
            except Exception:
                self._session.rollback()
                raise

            LOGGER.info("Compensation entry calculated", extra={"entry_id": entry.id})
            return entry

    # schemes ---------------------------------------------------------

    def create_scheme(
        self,
        user_id: str,
        draft: SchemeDraft,
        *,
        now: datetime | None = None,
    ) -> UserCompensation:
        """Close the user's open scheme and start ``draft``."""

        draft.validate()
        stamp = now or datetime.now()
        scheme = UserCompensation(
            user_id=user_id,
            compensation_type=draft.compensation_type.value,
            base_salary=draft.base_salary,
            max_bonus_multiplier=draft.max_bonus_multiplier,
            percentage_type=draft.percentage_type.value if draft.percentage_type else None,
            project_percentage=draft.project_percentage,
            direct_work_percentage=draft.direct_work_percentage,
            effective_from=draft.effective_from,
            effective_to=draft.effective_to,
        )
        try:
            closed = self._repository.close_open_schemes(user_id, when=stamp)
            self._repository.add_scheme(scheme)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        LOGGER.info(
            "Compensation scheme created",
            extra={"user_id": user_id, "scheme_id": scheme.id, "closed": closed},
        )
        return scheme

    def get_active_scheme(self, user_id: str, *, now: datetime | None = None) -> ActiveScheme | None:
        row = self._repository.find_current_scheme(user_id, now=now or datetime.now())
        if row is None:
            return None
        return ActiveScheme(scheme=row, entries=self._repository.recent_entries(row.id, limit=12))

    def list_entries(self, user_id: str, **period: int | None) -> list[CompensationEntry]:
        return self._repository.list_entries(user_id, **period)

    # eligibility -----------------------------------------------------

    def list_eligibility(self, user_id: str, **filters: Any) -> list[CompensationEligibility]:
        return self._repository.list_eligibility(user_id, **filters)

    def upsert_eligibility(self, user_id: str, draft: EligibilityDraft) -> CompensationEligibility:
        """Create or update the override identified by its scope."""

        draft.validate()
        if self._repository.get_scheme(draft.compensation_id, user_id=user_id) is None:
            raise NotFoundError("Compensation not found")
        if draft.project_id and not self._repository.project_exists(draft.project_id):
            raise NotFoundError("Project not found")
        if draft.client_id and not self._repository.client_exists(draft.client_id):
            raise NotFoundError("Client not found")
        if draft.bill_id and not self._repository.bill_exists(draft.bill_id):
            raise NotFoundError("Bill not found")

        key = dict(
            user_id=user_id,
            compensation_id=draft.compensation_id,
            project_id=draft.project_id or None,
            client_id=draft.client_id or None,
            bill_id=draft.bill_id or None,
        )
        try:
            row = self._repository.find_eligibility(**key)
            if row is None:
                row = self._repository.add_eligibility(CompensationEligibility(**key))
            row.is_eligible = draft.is_eligible
            row.custom_percentage = draft.custom_percentage
            row.fixed_amount = draft.fixed_amount
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        return row

    def delete_eligibility(self, user_id: str, eligibility_id: str) -> None:
        row = self._repository.get_eligibility(eligibility_id)
        if row is None:
            raise NotFoundError("Eligibility not found")
        if row.user_id != user_id:
            raise AuthorizationError("Forbidden")
        try:
            self._repository.delete_eligibility(eligibility_id)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise


__all__ = [
    "ActiveScheme",
    "CompensationService",
    "EligibilityDraft",
    "SchemeDraft",
    "period_bounds",
]

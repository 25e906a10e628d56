"""Schemas for compensation schemes, entries and eligibility."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import Field

from backoffice.models.compensation import CompensationType, PercentageType

from .base import CamelModel


class SchemeCreate(CamelModel):
    compensation_type: CompensationType
    base_salary: Decimal | None = Field(default=None, gt=0)
    max_bonus_multiplier: Decimal | None = Field(default=None, gt=0)
    percentage_type: PercentageType | None = None
    project_percentage: Decimal | None = Field(default=None, ge=0, le=100)
    direct_work_percentage: Decimal | None = Field(default=None, ge=0, le=100)
    effective_from: datetime
    effective_to: datetime | None = None


class CompensationEntryOut(CamelModel):
    id: str
    user_id: str
    compensation_id: str
    period_year: int
    period_month: int
    base_salary: Decimal | None = None
    bonus_multiplier: Decimal | None = None
    bonus_amount: Decimal | None = None
    percentage_earnings: Decimal | None = None
    total_earned: Decimal
    total_paid: Decimal
    balance: Decimal
    calculated_at: datetime


class SchemeOut(CamelModel):
    id: str
    user_id: str
    compensation_type: CompensationType
    base_salary: Decimal | None = None
    max_bonus_multiplier: Decimal | None = None
    percentage_type: PercentageType | None = None
    project_percentage: Decimal | None = None
    direct_work_percentage: Decimal | None = None
    effective_from: datetime
    effective_to: datetime | None = None
    compensation_entries: list[CompensationEntryOut] = Field(default_factory=list)


class CompensationEnvelope(CamelModel):
    compensation: SchemeOut | None = None


class CalculateRequest(CamelModel):
    year: int = Field(ge=2000, le=2100)
    month: int = Field(ge=1, le=12)
    bonus_multiplier: Decimal | None = Field(default=None, ge=0)


class EntryEnvelope(CamelModel):
    entry: CompensationEntryOut


class EntriesEnvelope(CamelModel):
    entries: list[CompensationEntryOut]


class EligibilityCreate(CamelModel):
    compensation_id: str = Field(min_length=1)
    project_id: str | None = None
    client_id: str | None = None
    bill_id: str | None = None
    is_eligible: bool = True
    custom_percentage: Decimal | None = Field(default=None, ge=0, le=100)
    fixed_amount: Decimal | None = Field(default=None, ge=0)


class EligibilityOut(CamelModel):
    id: str
    user_id: str
    compensation_id: str
    project_id: str | None = None
    client_id: str | None = None
    bill_id: str | None = None
    is_eligible: bool
    custom_percentage: Decimal | None = None
    fixed_amount: Decimal | None = None
    created_at: datetime | date | None = None


class EligibilityEnvelope(CamelModel):
    eligibility: EligibilityOut


class EligibilityListEnvelope(CamelModel):
    eligibility: list[EligibilityOut]

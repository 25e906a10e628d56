"""Tests for compensation schemes, monthly entries and eligibility overrides."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backoffice.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from backoffice.models import (
    CompensationEntry,
    CompensationType,
    PercentageType,
    TimesheetEntry,
    UserFinancialTransaction,
)
from backoffice.models.users import UserRole
from backoffice.services.compensation import (
    CompensationService,
    EligibilityDraft,
    SchemeDraft,
    period_bounds,
)


@pytest.fixture()
def service(session: Session) -> CompensationService:
    return CompensationService(session)


def _percentage_draft(**values) -> SchemeDraft:
    values.setdefault("percentage_type", PercentageType.BOTH)
    values.setdefault("project_percentage", Decimal("10"))
    values.setdefault("direct_work_percentage", Decimal("20"))
    return SchemeDraft(
        compensation_type=CompensationType.PERCENTAGE_BASED,
        effective_from=datetime(2024, 1, 1),
        **values,
    )


def _salary_draft() -> SchemeDraft:
    return SchemeDraft(
        compensation_type=CompensationType.SALARY_BONUS,
        effective_from=datetime(2024, 1, 1),
        base_salary=Decimal("3000"),
        max_bonus_multiplier=Decimal("2"),
    )


def _work_setup(session: Session, seed):
    """A managed project with one paid bill and ten logged hours in March 2024."""

    user = seed.user(role=UserRole.STAFF)
    client = seed.client()
    project = seed.project(client, managers=(user,))
    bill = seed.bill(
        client,
        user,
        amount="1000.00",
        project_id=project.id,
        status="PAID",
        paid_at=datetime(2024, 3, 15, 12, 0),
        items=(
            {"amount": Decimal("800"), "type": "CHARGE", "person_id": user.id},
            {"amount": Decimal("200"), "type": "EXPENSE"},
        ),
    )
    session.add(
        TimesheetEntry(
            project_id=project.id,
            user_id=user.id,
            date=date(2024, 3, 10),
            hours=Decimal("10"),
            rate=Decimal("50"),
        )
    )
    session.commit()
    return user, client, project, bill


def test_period_bounds_cover_the_whole_month() -> None:
    start, end = period_bounds(2024, 2)

    assert start == datetime(2024, 2, 1)
    assert end.date() == date(2024, 2, 29)
    assert end.hour == 23


def test_scheme_validation_messages() -> None:
    with pytest.raises(ValidationError, match="Base salary is required"):
        SchemeDraft(
            compensation_type=CompensationType.SALARY_BONUS,
            effective_from=datetime(2024, 1, 1),
            max_bonus_multiplier=Decimal("1"),
        ).validate()
    with pytest.raises(ValidationError, match="Percentage type is required"):
        _percentage_draft(percentage_type=None).validate()
    with pytest.raises(ValidationError, match="Direct work percentage is required"):
        _percentage_draft(direct_work_percentage=None).validate()


def test_create_scheme_closes_the_open_one(session: Session, seed, service) -> None:
    user = seed.user()
    session.commit()
    first = service.create_scheme(user.id, _salary_draft(), now=datetime(2024, 1, 1))
    stamp = datetime(2024, 6, 1)

    second = service.create_scheme(user.id, _percentage_draft(), now=stamp)

    session.refresh(first)
    assert first.effective_to == stamp
    assert second.effective_to is None
    active = service.get_active_scheme(user.id, now=datetime(2024, 7, 1))
    assert active is not None
    assert active.scheme.id == second.id


def test_salary_entry_records_bonus_and_ledger_row(session: Session, seed, service) -> None:
    user = seed.user()
    session.commit()
    service.create_scheme(user.id, _salary_draft())

    entry = service.calculate_entry(user.id, 2024, 3, bonus_multiplier=Decimal("0.5"), created_by="admin-1")

    assert entry.base_salary == Decimal("3000")
    assert entry.bonus_amount == Decimal("1500.00")
    assert entry.total_earned == Decimal("4500.00")
    assert entry.balance == entry.total_earned
    assert entry.total_paid == Decimal("0")
    transaction = session.execute(select(UserFinancialTransaction)).scalar_one()
    assert transaction.type == "COMPENSATION"
    assert transaction.related_id == entry.id
    assert transaction.related_type == "COMPENSATION_ENTRY"
    assert transaction.amount == Decimal("4500.00")
    assert transaction.currency == "EUR"
    assert transaction.transaction_date == date(2024, 3, 1)
    assert transaction.description == "Compensation for 2024-03"


def test_percentage_entry_aggregates_period_activity(session: Session, seed, service) -> None:
    user, *_ = _work_setup(session, seed)
    service.create_scheme(user.id, _percentage_draft())

    entry = service.calculate_entry(user.id, 2024, 3)

    # 800 * 10% + (500 + 800) * 20%
    assert entry.percentage_earnings == Decimal("340.00")
    assert entry.total_earned == Decimal("340.00")
    assert entry.bonus_amount is None


def test_activity_outside_the_period_is_ignored(session: Session, seed, service) -> None:
    user, *_ = _work_setup(session, seed)
    service.create_scheme(user.id, _percentage_draft())

    entry = service.calculate_entry(user.id, 2024, 4)

    assert entry.total_earned == Decimal("0.00")


def test_second_calculation_for_a_period_is_rejected(session: Session, seed, service) -> None:
    user = seed.user()
    session.commit()
    service.create_scheme(user.id, _salary_draft())
    service.calculate_entry(user.id, 2024, 3)

    with pytest.raises(ConflictError, match="Compensation entry already exists for this period"):
        service.calculate_entry(user.id, 2024, 3)

    count = session.execute(
        select(func.count()).select_from(CompensationEntry).where(CompensationEntry.user_id == user.id)
    ).scalar_one()
    assert count == 1


def test_calculation_without_scheme_is_not_found(session: Session, seed, service) -> None:
    user = seed.user()
    session.commit()

    with pytest.raises(NotFoundError, match="No active compensation found for this period"):
        service.calculate_entry(user.id, 2024, 3)


def test_scheme_starting_after_the_period_does_not_apply(session: Session, seed, service) -> None:
    user = seed.user()
    session.commit()
    service.create_scheme(user.id, _salary_draft())

    with pytest.raises(NotFoundError):
        service.calculate_entry(user.id, 2023, 12)


def test_project_exclusion_changes_the_entry(session: Session, seed, service) -> None:
    user, client, project, _ = _work_setup(session, seed)
    scheme = service.create_scheme(user.id, _percentage_draft())
    service.upsert_eligibility(
        user.id,
        EligibilityDraft(compensation_id=scheme.id, client_id=client.id, is_eligible=True),
    )
    service.upsert_eligibility(
        user.id,
        EligibilityDraft(compensation_id=scheme.id, project_id=project.id, is_eligible=False),
    )

    entry = service.calculate_entry(user.id, 2024, 3)

    assert entry.total_earned == Decimal("0.00")


def test_upsert_eligibility_updates_the_same_scope(session: Session, seed, service) -> None:
    user, _, project, _ = _work_setup(session, seed)
    scheme = service.create_scheme(user.id, _percentage_draft())

    created = service.upsert_eligibility(
        user.id, EligibilityDraft(compensation_id=scheme.id, project_id=project.id, is_eligible=False)
    )
    updated = service.upsert_eligibility(
        user.id,
        EligibilityDraft(
            compensation_id=scheme.id,
            project_id=project.id,
            is_eligible=True,
            fixed_amount=Decimal("150"),
        ),
    )

    assert updated.id == created.id
    rows = service.list_eligibility(user.id, compensation_id=scheme.id)
    assert len(rows) == 1
    assert rows[0].is_eligible is True
    assert rows[0].fixed_amount == Decimal("150")


def test_upsert_eligibility_requires_exactly_one_scope(session: Session, seed, service) -> None:
    user, client, project, _ = _work_setup(session, seed)
    scheme = service.create_scheme(user.id, _percentage_draft())

    with pytest.raises(ValidationError, match="Exactly one of projectId, clientId, or billId"):
        service.upsert_eligibility(
            user.id,
            EligibilityDraft(compensation_id=scheme.id, project_id=project.id, client_id=client.id),
        )
    with pytest.raises(ValidationError):
        service.upsert_eligibility(user.id, EligibilityDraft(compensation_id=scheme.id))


def test_upsert_eligibility_checks_references(session: Session, seed, service) -> None:
    user, *_ = _work_setup(session, seed)
    other = seed.user()
    session.commit()
    scheme = service.create_scheme(user.id, _percentage_draft())

    with pytest.raises(NotFoundError, match="Compensation not found"):
        service.upsert_eligibility(
            other.id, EligibilityDraft(compensation_id=scheme.id, project_id="missing")
        )
    with pytest.raises(NotFoundError, match="Project not found"):
        service.upsert_eligibility(
            user.id, EligibilityDraft(compensation_id=scheme.id, project_id="missing")
        )


def test_delete_eligibility_only_for_its_owner(session: Session, seed, service) -> None:
    user, _, project, _ = _work_setup(session, seed)
    scheme = service.create_scheme(user.id, _percentage_draft())
    row = service.upsert_eligibility(
        user.id, EligibilityDraft(compensation_id=scheme.id, project_id=project.id, is_eligible=False)
    )

    with pytest.raises(AuthorizationError):
        service.delete_eligibility("someone-else", row.id)
    service.delete_eligibility(user.id, row.id)

    assert service.list_eligibility(user.id) == []
    with pytest.raises(NotFoundError, match="Eligibility not found"):
        service.delete_eligibility(user.id, row.id)


def test_list_entries_filters_by_period(session: Session, seed, service) -> None:
    user = seed.user()
    session.commit()
    service.create_scheme(user.id, _salary_draft())
    for year, month in [(2024, 1), (2024, 6), (2025, 2)]:
        service.calculate_entry(user.id, year, month)

    entries = service.list_entries(
        user.id, start_year=2024, start_month=3, end_year=2025, end_month=1
    )

    assert [(e.period_year, e.period_month) for e in entries] == [(2024, 6)]
    assert len(service.list_entries(user.id)) == 3

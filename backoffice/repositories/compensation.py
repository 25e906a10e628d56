"""Data access for compensation schemes, eligibility overrides and entries."""
from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from typing import Any

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.orm import selectinload

from backoffice.db.errors import storage_boundary
from backoffice.domain.records import (
    BillLine,
    CompensationScheme,
    EligibilityOverride,
    PaidBill,
    ProjectActivity,
    TimesheetLine,
)
from backoffice.models.bills import Bill, BillItem
from backoffice.models.compensation import (
    CompensationEligibility,
    CompensationEntry,
    UserCompensation,
    UserFinancialTransaction,
)
from backoffice.models.projects import Project, ProjectManager, TimesheetEntry
from backoffice.models.users import Client

from .base import BaseRepository


class CompensationRepository(BaseRepository):
    """Repository encapsulating compensation queries for a single user at a time."""

    # schemes ---------------------------------------------------------

    @storage_boundary
    def get_scheme(self, compensation_id: str, *, user_id: str | None = None) -> UserCompensation | None:
        statement = select(UserCompensation).where(UserCompensation.id == compensation_id)
        if user_id is not None:
            statement = statement.where(UserCompensation.user_id == user_id)
        return self._session.execute(statement).scalar_one_or_none()

    @storage_boundary
    def find_scheme_for_period(self, user_id: str, period_start: datetime) -> UserCompensation | None:
        """Scheme effective on ``period_start``: started on or before it, not ended before it."""

        statement = (
            select(UserCompensation)
            .where(
                UserCompensation.user_id == user_id,
                UserCompensation.effective_from <= period_start,
                or_(
                    UserCompensation.effective_to.is_(None),
                    UserCompensation.effective_to >= period_start,
                ),
            )
            .order_by(UserCompensation.effective_from.desc())
            .limit(1)
        )
        return self._session.execute(statement).scalar_one_or_none()

    @storage_boundary
    def find_current_scheme(self, user_id: str, *, now: datetime) -> UserCompensation | None:
        """Latest scheme that is open-ended or ends on or after ``now``."""

        statement = (
            select(UserCompensation)
            .where(
                UserCompensation.user_id == user_id,
                or_(UserCompensation.effective_to.is_(None), UserCompensation.effective_to >= now),
            )
            .order_by(UserCompensation.effective_from.desc())
            .limit(1)
        )
        return self._session.execute(statement).scalar_one_or_none()

    @storage_boundary
    def close_open_schemes(self, user_id: str, *, when: datetime) -> int:
        statement = (
            update(UserCompensation)
            .where(UserCompensation.user_id == user_id, UserCompensation.effective_to.is_(None))
            .values(effective_to=when)
            .execution_options(synchronize_session="fetch")
        )
        return int(self._session.execute(statement).rowcount or 0)

    @storage_boundary
    def add_scheme(self, scheme: UserCompensation) -> UserCompensation:
        return self._add(scheme)

    @staticmethod
    def to_scheme_record(row: UserCompensation) -> CompensationScheme:
        return CompensationScheme(
            id=row.id,
            user_id=row.user_id,
            compensation_type=row.compensation_type,
            effective_from=row.effective_from,
            effective_to=row.effective_to,
            base_salary=row.base_salary,
            max_bonus_multiplier=row.max_bonus_multiplier,
            percentage_type=row.percentage_type,
            project_percentage=row.project_percentage,
            direct_work_percentage=row.direct_work_percentage,
        )

    # entries ---------------------------------------------------------

    @storage_boundary
    def entry_exists(self, user_id: str, year: int, month: int) -> bool:
        statement = select(CompensationEntry.id).where(
            CompensationEntry.user_id == user_id,
            CompensationEntry.period_year == year,
            CompensationEntry.period_month == month,
        )
        return self._session.execute(statement.limit(1)).first() is not None

    @storage_boundary
    def add_entry(self, entry: CompensationEntry) -> CompensationEntry:
        return self._add(entry)

    @storage_boundary
    def add_transaction(self, transaction: UserFinancialTransaction) -> UserFinancialTransaction:
        return self._add(transaction)

    @storage_boundary
    def recent_entries(self, compensation_id: str, *, limit: int = 12) -> list[CompensationEntry]:
        statement = (
            select(CompensationEntry)
            .where(CompensationEntry.compensation_id == compensation_id)
            .order_by(CompensationEntry.calculated_at.desc())
            .limit(limit)
        )
        return list(self._session.execute(statement).scalars())

    @storage_boundary
    def list_entries(
        self,
        user_id: str,
        *,
        start_year: int | None = None,
        start_month: int | None = None,
        end_year: int | None = None,
        end_month: int | None = None,
    ) -> list[CompensationEntry]:
        statement = select(CompensationEntry).where(CompensationEntry.user_id == user_id)
        if start_year and end_year:
            statement = statement.where(
                CompensationEntry.period_year >= start_year,
                CompensationEntry.period_year <= end_year,
            )
            if start_month and end_month:
                statement = statement.where(
                    or_(
                        CompensationEntry.period_year > start_year,
                        and_(
                            CompensationEntry.period_year == start_year,
                            CompensationEntry.period_month >= start_month,
                        ),
                    ),
                    or_(
                        CompensationEntry.period_year < end_year,
                        and_(
                            CompensationEntry.period_year == end_year,
                            CompensationEntry.period_month <= end_month,
                        ),
                    ),
                )
        statement = statement.order_by(
            CompensationEntry.period_year.desc(), CompensationEntry.period_month.desc()
        )
        return list(self._session.execute(statement).scalars())

    # eligibility -----------------------------------------------------

    @storage_boundary
    def list_eligibility(self, user_id: str, **filters: Any) -> list[CompensationEligibility]:
        statement = select(CompensationEligibility).where(CompensationEligibility.user_id == user_id)
        for column in ("compensation_id", "project_id", "client_id", "bill_id"):
            value = filters.get(column)
            if value:
                statement = statement.where(getattr(CompensationEligibility, column) == value)
        statement = statement.order_by(CompensationEligibility.created_at.desc())
        return list(self._session.execute(statement).scalars())

    @storage_boundary
    def find_eligibility(
        self,
        *,
        user_id: str,
        compensation_id: str,
        project_id: str | None,
        client_id: str | None,
        bill_id: str | None,
    ) -> CompensationEligibility | None:
        """Look up by natural key; NULL scope columns are matched with ``IS NULL``."""

        conditions = [
            CompensationEligibility.user_id == user_id,
            CompensationEligibility.compensation_id == compensation_id,
        ]
        for column, value in (
            (CompensationEligibility.project_id, project_id),
            (CompensationEligibility.client_id, client_id),
            (CompensationEligibility.bill_id, bill_id),
        ):
            conditions.append(column.is_(None) if value is None else column == value)
        statement = select(CompensationEligibility).where(*conditions)
        return self._session.execute(statement).scalar_one_or_none()

    @storage_boundary
    def get_eligibility(self, eligibility_id: str) -> CompensationEligibility | None:
        return self._get(CompensationEligibility, eligibility_id)

    @storage_boundary
    def add_eligibility(self, row: CompensationEligibility) -> CompensationEligibility:
        return self._add(row)

    @storage_boundary
    def delete_eligibility(self, eligibility_id: str) -> None:
        self._session.execute(
            delete(CompensationEligibility).where(CompensationEligibility.id == eligibility_id)
        )

    @storage_boundary
    def overrides_for(self, user_id: str, compensation_id: str) -> list[EligibilityOverride]:
        statement = select(CompensationEligibility).where(
            CompensationEligibility.user_id == user_id,
            CompensationEligibility.compensation_id == compensation_id,
        )
        return [
            EligibilityOverride(
                id=row.id,
                is_eligible=row.is_eligible,
                project_id=row.project_id,
                client_id=row.client_id,
                bill_id=row.bill_id,
                custom_percentage=self._to_optional_decimal(row.custom_percentage),
                fixed_amount=self._to_optional_decimal(row.fixed_amount),
            )
            for row in self._session.execute(statement).scalars()
        ]

    @storage_boundary
    def project_exists(self, project_id: str) -> bool:
        return self._exists(Project, project_id)

    @storage_boundary
    def client_exists(self, client_id: str) -> bool:
        return self._exists(Client, client_id)

    @storage_boundary
    def bill_exists(self, bill_id: str) -> bool:
        return self._exists(Bill, bill_id)

    # activity --------------------------------------------------------

    @storage_boundary
    def load_project_activity(
        self,
        user_id: str,
        period_start: datetime,
        period_end: datetime,
    ) -> list[ProjectActivity]:
        """Candidate projects for ``user_id`` with the period's timesheets and paid bills.

        A project is a candidate when the user manages it, logged hours on it in
        the period, or appears on one of its bill lines.
        """

        start_day: date = period_start.date()
        end_day: date = period_end.date()

        works_on_bill = (
            select(Bill.id)
            .join(BillItem, BillItem.bill_id == Bill.id)
            .where(Bill.project_id == Project.id, BillItem.person_id == user_id)
            .exists()
        )
        statement = (
            select(Project)
            .where(
                Project.deleted_at.is_(None),
                or_(
                    Project.managers.any(ProjectManager.user_id == user_id),
                    Project.timesheet_entries.any(
                        and_(
                            TimesheetEntry.user_id == user_id,
                            TimesheetEntry.date >= start_day,
                            TimesheetEntry.date <= end_day,
                        )
                    ),
                    works_on_bill,
                ),
            )
            .order_by(Project.created_at)
        )
        projects = list(self._session.execute(statement).scalars())
        if not projects:
            return []
        project_ids = [project.id for project in projects]

        timesheets: dict[str, list[TimesheetLine]] = defaultdict(list)
        timesheet_rows = self._session.execute(
            select(TimesheetEntry).where(
                TimesheetEntry.project_id.in_(project_ids),
                TimesheetEntry.user_id == user_id,
                TimesheetEntry.date >= start_day,
                TimesheetEntry.date <= end_day,
            )
        ).scalars()
        for entry in timesheet_rows:
            timesheets[entry.project_id].append(
                TimesheetLine(
                    hours=self._to_decimal(entry.hours),
                    rate=self._to_optional_decimal(entry.rate),
                )
            )

        bills: dict[str, list[PaidBill]] = defaultdict(list)
        bill_rows = self._session.execute(
            select(Bill)
            .options(selectinload(Bill.items))
            .where(
                Bill.project_id.in_(project_ids),
                Bill.paid_at.is_not(None),
                Bill.paid_at >= period_start,
                Bill.paid_at <= period_end,
                Bill.deleted_at.is_(None),
            )
        ).scalars()
        for bill in bill_rows:
            bills[bill.project_id].append(
                PaidBill(
                    id=bill.id,
                    client_id=bill.client_id,
                    project_id=bill.project_id,
                    amount=self._to_decimal(bill.amount),
                    items=tuple(
                        BillLine(
                            amount=self._to_decimal(item.amount),
                            type=item.type,
                            person_id=item.person_id,
                        )
                        for item in bill.items
                    ),
                )
            )

        return [
            ProjectActivity(
                project_id=project.id,
                client_id=project.client_id,
                timesheets=tuple(timesheets.get(project.id, ())),
                bills=tuple(bills.get(project.id, ())),
            )
            for project in projects
        ]

"""ORM models for projects, their managers and timesheets."""
from __future__ import annotations

import datetime as dt
from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import HOURS, ID_TYPE, MONEY, EntityBase
from .users import Client


class ProjectStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class Project(EntityBase):
    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    client_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("clients.id"), nullable=False)
    proposal_id: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("proposals.id"))
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=ProjectStatus.ACTIVE.value)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)

    client: Mapped[Client] = relationship()
    managers: Mapped[list["ProjectManager"]] = relationship(
        back_populates="project", cascade="all, delete-orphan"
    )
    timesheet_entries: Mapped[list["TimesheetEntry"]] = relationship(
        back_populates="project", cascade="all, delete-orphan"
    )


class ProjectManager(EntityBase):
    __tablename__ = "project_managers"
    __table_args__ = (UniqueConstraint("project_id", "user_id", name="uq_project_manager"),)

    project_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("projects.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("users.id"), nullable=False)

    project: Mapped[Project] = relationship(back_populates="managers")


class TimesheetEntry(EntityBase):
    """Hours logged by a user against a project."""

    __tablename__ = "timesheet_entries"

    project_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("projects.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("users.id"), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False)
    rate: Mapped[Decimal | None] = mapped_column(MONEY)
    billable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    billed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    project: Mapped[Project] = relationship(back_populates="timesheet_entries")

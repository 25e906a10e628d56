"""Database models for the back-office domain."""
from __future__ import annotations

from .base import Base, EntityBase, new_id
from .bills import Bill, BillApproval, BillItem, BillItemType, BillStatus
from .compensation import (
    CompensationEligibility,
    CompensationEntry,
    CompensationType,
    FinancialTransactionType,
    PercentageType,
    UserCompensation,
    UserFinancialTransaction,
)
from .notifications import Notification, NotificationType
from .projects import Project, ProjectManager, ProjectStatus, TimesheetEntry
from .proposals import BillingMethod, Proposal, ProposalItem, ProposalStatus, RecurringFrequency
from .users import Client, User, UserRole

__all__ = [
    "Base",
    "EntityBase",
    "new_id",
    "Bill",
    "BillApproval",
    "BillItem",
    "BillItemType",
    "BillStatus",
    "BillingMethod",
    "Client",
    "CompensationEligibility",
    "CompensationEntry",
    "CompensationType",
    "FinancialTransactionType",
    "Notification",
    "NotificationType",
    "PercentageType",
    "Project",
    "ProjectManager",
    "ProjectStatus",
    "Proposal",
    "ProposalItem",
    "ProposalStatus",
    "RecurringFrequency",
    "TimesheetEntry",
    "User",
    "UserCompensation",
    "UserFinancialTransaction",
    "UserRole",
]

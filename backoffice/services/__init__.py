"""Use-case orchestration on top of repositories and calculators."""
from __future__ import annotations

from .bulk_delete import BulkDeletionService, bill_deletion_service, proposal_deletion_service
from .compensation import CompensationService, EligibilityDraft, SchemeDraft
from .invoices import InvoiceNumberAllocator, InvoiceService
from .recurring import RecurringPaymentService, RecurringRunResult

__all__ = [
    "BulkDeletionService",
    "CompensationService",
    "EligibilityDraft",
    "InvoiceNumberAllocator",
    "InvoiceService",
    "RecurringPaymentService",
    "RecurringRunResult",
    "SchemeDraft",
    "bill_deletion_service",
    "proposal_deletion_service",
]

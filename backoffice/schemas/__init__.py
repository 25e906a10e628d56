"""Pydantic request and response payloads."""
from __future__ import annotations

from .base import CamelModel, SuccessResponse
from .bills import (
    BillBulkDeleteRequest,
    BillCreate,
    BillEnvelope,
    BillItemIn,
    BillOut,
    ProposalBulkDeleteRequest,
)
from .compensation import (
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
from .proposals import FirstInvoiceResponse, ProposalTotals, RecurringRunResponse

__all__ = [
    "BillBulkDeleteRequest",
    "BillCreate",
    "BillEnvelope",
    "BillItemIn",
    "BillOut",
    "CalculateRequest",
    "CamelModel",
    "CompensationEntryOut",
    "CompensationEnvelope",
    "EligibilityCreate",
    "EligibilityEnvelope",
    "EligibilityListEnvelope",
    "EligibilityOut",
    "EntriesEnvelope",
    "EntryEnvelope",
    "FirstInvoiceResponse",
    "ProposalBulkDeleteRequest",
    "ProposalTotals",
    "RecurringRunResponse",
    "SchemeCreate",
    "SchemeOut",
    "SuccessResponse",
]

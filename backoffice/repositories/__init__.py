"""Repositories, one per aggregate."""
from __future__ import annotations

from .base import BaseRepository
from .bills import BillRepository
from .compensation import CompensationRepository
from .notifications import NotificationRepository
from .proposals import ProposalRepository

__all__ = [
    "BaseRepository",
    "BillRepository",
    "CompensationRepository",
    "NotificationRepository",
    "ProposalRepository",
]

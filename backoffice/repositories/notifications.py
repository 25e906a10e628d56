"""Data access for user notifications."""
from __future__ import annotations

from datetime import date

from backoffice.db.errors import storage_boundary
from backoffice.models.notifications import Notification, NotificationType

from .base import BaseRepository


class NotificationRepository(BaseRepository):
    @storage_boundary
    def create(
        self,
        *,
        user_id: str,
        title: str,
        message: str,
        type: NotificationType = NotificationType.RECURRING_PAYMENT_DUE,
        proposal_id: str | None = None,
        proposal_item_id: str | None = None,
        due_date: date | None = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=type.value,
            title=title,
            message=message,
            proposal_id=proposal_id,
            proposal_item_id=proposal_item_id,
            due_date=due_date,
        )
        return self._add(notification)


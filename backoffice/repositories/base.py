"""Shared helpers for repositories."""
from __future__ import annotations

from decimal import Decimal
from typing import Any, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backoffice.models.base import EntityBase

M = TypeVar("M", bound=EntityBase)


class BaseRepository:
    """Base repository providing convenience helpers."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _get(self, model: type[M], entity_id: str | None) -> M | None:
        if not entity_id:
            return None
        return self._session.get(model, entity_id)

    def _exists(self, model: type[EntityBase], entity_id: str | None) -> bool:
        if not entity_id:
            return False
        statement = select(func.count()).select_from(model).where(model.id == entity_id)
        return bool(self._session.execute(statement).scalar())

    def _add(self, instance: M) -> M:
        self._session.add(instance)
        self._session.flush()
        return instance

    @staticmethod
    def _to_decimal(value: Any) -> Decimal:
        if isinstance(value, Decimal):
            return value
        if value is None:
            return Decimal(0)
        return Decimal(str(value))

    @staticmethod
    def _to_optional_decimal(value: Any) -> Decimal | None:
        if value is None:
            return None
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))


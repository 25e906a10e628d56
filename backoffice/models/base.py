"""Base declarative class and shared column types for SQLAlchemy models."""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

ID_TYPE = String(36)
MONEY = Numeric(18, 2)
PERCENT = Numeric(9, 4)
HOURS = Numeric(8, 2)


def new_id() -> str:
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""

    pass


class EntityBase(Base):
    """Abstract base providing a string primary key and creation timestamp."""

    __abstract__ = True

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=new_id)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now, server_default=func.current_timestamp()
    )

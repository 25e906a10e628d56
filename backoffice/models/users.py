"""ORM models for application users and their clients."""
from __future__ import annotations

from enum import Enum

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import ID_TYPE, EntityBase


class UserRole(str, Enum):
    """Role codes, highest rank first."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    STAFF = "STAFF"
    CLIENT = "CLIENT"


class User(EntityBase):
    """Firm member or client login."""

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(160), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=UserRole.STAFF.value)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Client(EntityBase):
    """Customer of the firm, optionally owned by a client manager."""

    __tablename__ = "clients"

    name: Mapped[str] = mapped_column(String(160), nullable=False)
    company: Mapped[str | None] = mapped_column(String(160))
    email: Mapped[str | None] = mapped_column(String(255))
    client_manager_id: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("users.id"))

    client_manager: Mapped[User | None] = relationship(foreign_keys=[client_manager_id])

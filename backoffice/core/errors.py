"""Typed error hierarchy shared by services, repositories and routers."""
from __future__ import annotations

from typing import Any

CONNECTIVITY_MESSAGE = (
    "Unable to connect to the database. Please check your database connection and try again."
)


class BackofficeError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    error: str = "Internal server error"

    def __init__(self, message: str | None = None, *, details: Any = None) -> None:
        super().__init__(message or self.error)
        self.message = message or self.error
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(BackofficeError):
    """Input that is well-formed but semantically invalid."""

    status_code = 400
    error = "Invalid input"


class ConflictError(BackofficeError):
    """Write rejected because it would duplicate an existing record."""

    status_code = 400
    error = "Conflict"


class AuthenticationError(BackofficeError):
    """Raised when authentication or token validation fails."""

    status_code = 401
    error = "Unauthorized"


class AuthorizationError(BackofficeError):
    status_code = 403
    error = "Forbidden"


class NotFoundError(BackofficeError):
    status_code = 404
    error = "Not found"


class ConnectivityError(BackofficeError):
    """The relational store could not be reached."""

    status_code = 503
    error = "Database connection error"

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error, "message": CONNECTIVITY_MESSAGE}


__all__ = [
    "CONNECTIVITY_MESSAGE",
    "AuthenticationError",
    "AuthorizationError",
    "BackofficeError",
    "ConflictError",
    "ConnectivityError",
    "NotFoundError",
    "ValidationError",
]

"""JWT session verification and the shared role guard."""
from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable

import jwt
from fastapi import Depends, Request
from jwt import ExpiredSignatureError, InvalidTokenError

from backoffice.core.config import AuthSettings, get_settings
from backoffice.core.errors import AuthenticationError, AuthorizationError
from backoffice.models.users import UserRole

STAFF_ROLES: tuple[UserRole, ...] = (UserRole.ADMIN, UserRole.MANAGER, UserRole.STAFF)


# Immutable dataclass for user authentication
@dataclass(frozen=True, slots=True)
class AuthenticatedUser:
    """Representation of the authenticated principal."""

    user_id: str
    role: UserRole
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True, slots=True)
class AuthorizationResult:
    """Outcome of a role check."""

    allowed: bool
    status_code: int = 200
    reason: str | None = None

    def raise_for_status(self) -> None:
        if self.allowed:
            return
        if self.status_code == 401:
            raise AuthenticationError(self.reason)
        raise AuthorizationError(self.reason)


def authorize(
    user: AuthenticatedUser | None,
    *roles: UserRole,
    owner_id: str | None = None,
) -> AuthorizationResult:
    """Check ``user`` against the accepted ``roles``.

    When ``owner_id`` is given the owner passes regardless of role. An empty
    ``roles`` tuple accepts any authenticated user.
    """

    if user is None:
        return AuthorizationResult(False, 401, "Unauthorized")
    if owner_id is not None and user.user_id == owner_id:
        return AuthorizationResult(True)
    if not roles or user.role in roles:
        return AuthorizationResult(True)
    if roles == (UserRole.ADMIN,):
        return AuthorizationResult(False, 403, "Forbidden - Admin access required")
    return AuthorizationResult(False, 403, "Forbidden")


class SecurityProvider:
    """Issue and verify JWT access tokens."""

    def __init__(self, settings: AuthSettings) -> None:
        self._settings = settings

    @property
    def cookie_name(self) -> str:
        """Return the cookie name used for the access token."""

        return self._settings.cookie_name

    @property
    def is_enabled(self) -> bool:
        return self._settings.enabled

    def default_admin_user(self) -> AuthenticatedUser:
        return AuthenticatedUser(user_id="system", role=UserRole.ADMIN, name="system")

    def create_access_token(self, user: AuthenticatedUser) -> str:
        """Create a signed JWT for the authenticated user."""

        now = datetime.now(tz=timezone.utc)
        expires = now + timedelta(minutes=self._settings.access_token_expire_minutes)
        payload: dict[str, object] = {
            "sub": user.user_id,
            "role": user.role.value,
            "iat": int(now.timestamp()),
            "exp": int(expires.timestamp()),
        }
        if user.name:
            payload["name"] = user.name
        return jwt.encode(payload, self._settings.secret_key, algorithm=self._settings.algorithm)

    def decode_token(self, token: str) -> AuthenticatedUser:
        """Decode a JWT and return the corresponding ``AuthenticatedUser``."""

        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key,
                algorithms=[self._settings.algorithm],
            )
        except ExpiredSignatureError as exc:
            raise AuthenticationError("Token expired") from exc
        except InvalidTokenError as exc:
            raise AuthenticationError("Invalid token") from exc

        user_id = payload.get("sub")
        role = payload.get("role")
        if not isinstance(user_id, str) or not isinstance(role, str):
            raise AuthenticationError("Token payload missing required claims")
        try:
            resolved_role = UserRole(role)
        except ValueError as exc:
            raise AuthenticationError("Token role claim invalid") from exc

        name = payload.get("name")
        return AuthenticatedUser(
            user_id=user_id,
            role=resolved_role,
            name=name if isinstance(name, str) else None,
        )


@lru_cache(maxsize=1)
def get_security_provider() -> SecurityProvider:
    """Return a cached security provider instance."""

    return SecurityProvider(get_settings().auth)


def get_optional_user(request: Request) -> AuthenticatedUser | None:
    security = get_security_provider()
    if not security.is_enabled:
        return security.default_admin_user()
    return getattr(request.state, "user", None)


def require_roles(*roles: UserRole) -> Callable[..., AuthenticatedUser]:
    """Build a dependency admitting only ``roles``."""

    def dependency(
        user: AuthenticatedUser | None = Depends(get_optional_user),
    ) -> AuthenticatedUser:
        authorize(user, *roles).raise_for_status()
        return user  # type: ignore[return-value]

    return dependency


def require_self_or_roles(*roles: UserRole) -> Callable[..., AuthenticatedUser]:
    """Build a dependency admitting the user named by the ``user_id`` path parameter or ``roles``."""

    def dependency(
        user_id: str,
        user: AuthenticatedUser | None = Depends(get_optional_user),
    ) -> AuthenticatedUser:
        authorize(user, *roles, owner_id=user_id).raise_for_status()
        return user  # type: ignore[return-value]

    return dependency


require_admin_user = require_roles(UserRole.ADMIN)
require_staff_user = require_roles(*STAFF_ROLES)


def verify_cron_secret(authorization: str | None, secret: str) -> bool:
    """Return ``True`` when the bearer token matches the configured secret."""

    if not secret or not authorization:
        return False
    return secrets.compare_digest(authorization, f"Bearer {secret}")


__all__ = [
    "AuthenticatedUser",
    "AuthorizationResult",
    "SecurityProvider",
    "STAFF_ROLES",
    "authorize",
    "get_security_provider",
    "require_admin_user",
    "require_roles",
    "require_self_or_roles",
    "require_staff_user",
    "verify_cron_secret",
]

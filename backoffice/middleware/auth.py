"""Middleware resolving the request principal from a bearer token or cookie."""
from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from backoffice.core.log import get_logger, log_context
from backoffice.core.security import AuthenticatedUser, SecurityProvider
from backoffice.core.errors import AuthenticationError

LOGGER = get_logger(__name__)

_BEARER = "bearer "


class AuthMiddleware(BaseHTTPMiddleware):
    """Attach the decoded user to ``request.state.user``.

    Requests are never rejected here; routes decide through their guards.
    Paths under ``skip_prefixes`` carry their own credentials and are not
    decoded.
    """

    def __init__(
        self,
        app,
        security_provider: SecurityProvider,
        *,
        skip_prefixes: Iterable[str] | None = None,
    ) -> None:
        super().__init__(app)
        self._security_provider = security_provider
        self._skip_prefixes = tuple(skip_prefixes or ("/cron",))

    def _token_from(self, request: Request) -> str | None:
        header = request.headers.get("authorization", "")
        if header.lower().startswith(_BEARER):
            return header[len(_BEARER):].strip() or None
        return request.cookies.get(self._security_provider.cookie_name)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        user: AuthenticatedUser | None = None
        path = request.url.path

        if not path.startswith(self._skip_prefixes):
            token = self._token_from(request)
            if token:
                try:
                    user = self._security_provider.decode_token(token)
                except AuthenticationError as exc:
                    LOGGER.info("Failed to decode access token", extra={"reason": str(exc)})

        request.state.user = user
        with log_context.bound(user_id=user.user_id if user else None):
            return await call_next(request)


__all__ = ["AuthMiddleware"]

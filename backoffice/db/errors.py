"""Translate driver level failures into the application's error types."""
from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError, TimeoutError

from backoffice.core.errors import ConnectivityError

F = TypeVar("F", bound=Callable)

_CONNECTIVITY_ERRORS = (OperationalError, InterfaceError, DisconnectionError, TimeoutError)


def is_connectivity_error(exc: BaseException) -> bool:
    if isinstance(exc, ConnectivityError):
        return True
    if isinstance(exc, _CONNECTIVITY_ERRORS):
        # OperationalError also covers lock timeouts and bad SQL on some drivers;
        # only connection invalidation or a failed connect counts.
        return bool(getattr(exc, "connection_invalidated", False)) or _is_connect_failure(exc)
    return False


def _is_connect_failure(exc: BaseException) -> bool:
    if isinstance(exc, (DisconnectionError, TimeoutError)):
        return True
    # A statement of None means the failure happened while connecting.
    return getattr(exc, "statement", None) is None


@contextmanager
def translate_storage_errors() -> Iterator[None]:
    """Re-raise connection failures as :class:`ConnectivityError`."""

    try:
        yield
    except _CONNECTIVITY_ERRORS as exc:
        if is_connectivity_error(exc):
            raise ConnectivityError() from exc
        raise


def storage_boundary(func: F) -> F:
    """Decorator form of :func:`translate_storage_errors`."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        with translate_storage_errors():
            return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]

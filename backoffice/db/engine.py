"""Database engine factories."""
from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from backoffice.core.config import get_settings
from backoffice.core.log import get_logger

LOGGER = get_logger(__name__)


def get_sqlalchemy_url() -> str:
    """Return the configured SQLAlchemy URL."""

    return get_settings().database.sqlalchemy_url


def create_sync_engine(url: str | None = None, **kwargs) -> Engine:
    """Create a synchronous SQLAlchemy engine using configured defaults."""

    settings = get_settings()
    resolved_url = url or settings.database.sqlalchemy_url

    options = dict(kwargs)
    options.setdefault("echo", settings.sqlalchemy_echo)
    options.setdefault("pool_pre_ping", True)

    LOGGER.debug(
        "Creating SQLAlchemy engine",
        extra={"url": settings.database.masked_url if url is None else "<explicit>", "options": options},
    )
    return create_engine(resolved_url, **options)


@lru_cache(maxsize=1)
def get_shared_engine() -> Engine:
    """Return the process-wide engine used by request handlers."""

    return create_sync_engine()

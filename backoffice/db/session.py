"""Opinionated SQLAlchemy session helpers."""
from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator

from sqlalchemy.orm import Session, sessionmaker

from .engine import create_sync_engine, get_shared_engine


def get_sessionmaker(url: str | None = None, **kwargs) -> sessionmaker:
    """Return a ``sessionmaker`` bound to a new engine."""

    engine = create_sync_engine(url, **kwargs)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    """Return the session factory shared by request handlers."""

    return sessionmaker(bind=get_shared_engine(), autoflush=False, expire_on_commit=False)


def get_db_session() -> Generator[Session, None, None]:
    """Yield a database session suitable for request-scoped usage."""

    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def session_scope(factory: sessionmaker | None = None) -> Iterator[Session]:
    """Provide a transactional scope for imperative scripts."""

    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

"""Database helpers and SQLAlchemy session factories."""

from .engine import create_sync_engine, get_shared_engine, get_sqlalchemy_url
from .errors import is_connectivity_error, storage_boundary, translate_storage_errors
from .session import get_db_session, get_session_factory, get_sessionmaker, session_scope

__all__ = [
    "create_sync_engine",
    "get_db_session",
    "get_session_factory",
    "get_sessionmaker",
    "get_shared_engine",
    "get_sqlalchemy_url",
    "is_connectivity_error",
    "session_scope",
    "storage_boundary",
    "translate_storage_errors",
]

"""Database utilities for the lesson portal."""

from .session import (
    SessionManager,
    dispose_engine,
    get_engine,
    get_session_factory,
    session_scope,
    store_scope,
)

__all__ = [
    "SessionManager",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "session_scope",
    "store_scope",
]

"""Database engine and session helpers."""

from aiforge.database.session import get_db_session, get_engine, session_scope

__all__ = ["get_db_session", "get_engine", "session_scope"]

"""
Engine and session management.

Routes get a request-scoped session from get_db_session; scripts use
session_scope(). Tenant-scoped rows read or written through either must go
through aiforge.repositories.TenantDataGateway.

DATABASE_URL selects the backend. PostgreSQL gets a pre-pinged QueuePool;
SQLite (local development) gets a single shared connection with foreign
keys switched on, since ON DELETE CASCADE is part of tenant cleanup.
"""

import os
import logging
from contextlib import contextmanager
from typing import Generator, Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from aiforge.platform.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def _get_database_url() -> str:
    """
    Raises:
        ValueError: If DATABASE_URL is not set
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise ValueError("DATABASE_URL environment variable is not set")

    # Render/Heroku hand out postgres://, which SQLAlchemy 2 rejects
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    return database_url


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """Turn on FK enforcement (and ON DELETE CASCADE) for SQLite connections."""

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _create_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        enable_sqlite_foreign_keys(engine)
        return engine

    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=int(os.getenv("DB_POOL_SIZE", "5")),
        max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "10")),
        pool_pre_ping=True,
        pool_recycle=1800,
    )


def get_engine() -> Engine:
    """
    Lazily build the process-wide engine.

    Raises:
        ValueError: If DATABASE_URL is not set
    """
    global _engine
    if _engine is None:
        try:
            _engine = _create_engine(_get_database_url())
        except ValueError as e:
            logger.error("Failed to create database engine", extra={"error": str(e)})
            raise
        logger.info("Database engine created", extra={"dialect": _engine.dialect.name})
    return _engine


def get_session_factory() -> sessionmaker:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _SessionLocal


def get_db_session() -> Generator[Session, None, None]:
    """
    FastAPI dependency yielding one session per request.

    Handlers commit explicitly; anything left uncommitted is discarded on
    close. Raises ServiceUnavailableError (503) if DATABASE_URL is unset.
    """
    try:
        SessionLocal = get_session_factory()
    except ValueError:
        raise ServiceUnavailableError("Database not configured")

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def session_scope(factory: Optional[sessionmaker] = None) -> Iterator[Session]:
    """
    Transactional scope for scripts: commit on success, roll back on error.

    Usage:
        with session_scope() as session:
            ...
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

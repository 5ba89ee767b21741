"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults (skipped for SQLite)
- Test database support
- Table definitions for persisted user records and optimizations
"""
from typing import Optional
from contextlib import contextmanager
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, JSON, Index, text
from sqlalchemy.pool import QueuePool
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import func
import logging
import os

from recurspace.core.config import settings
from recurspace.core.logging import LOGGER_NAME


# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

# Global engine and session factory
_engine = None
_SessionLocal = None


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return os.getenv("DATABASE_URL") or settings.DATABASE_URL


def init_engine(database_url: Optional[str] = None):
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    if url.startswith("sqlite"):
        # SQLite uses its own single-file pool
        _engine = create_engine(url, echo=False)
    else:
        _engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT,
            pool_recycle=POOL_RECYCLE,
            echo=False,
        )

    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    return _engine


def dispose_engine() -> None:
    """Drop the current engine; the next get_engine() call re-initializes."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            session.execute(...)
    """
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables():
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    engine = get_engine()
    metadata.create_all(bind=engine)


def check_connection() -> bool:
    """
    Check if database connection is available.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, ValueError, ImportError) as e:
        logging.getLogger(LOGGER_NAME).warning(
            "database.unavailable", extra={"error_code": "db_unavailable", "error_message": str(e)}
        )
        return False


# Snapshot records (tasks, workflows, templates) stored as validated JSON payloads
user_records = Table(
    'user_records',
    metadata,
    Column('seq', Integer, primary_key=True, autoincrement=True),
    Column('id', String(100), unique=True, nullable=False),
    Column('user_id', String(100), nullable=False, index=True),
    Column('kind', String(50), nullable=False),
    Column('payload', JSON, nullable=False),
    Column('created_at', DateTime(timezone=True), nullable=False),
    # Composite index for snapshot fetches: (user_id, kind, created_at)
    Index('idx_user_records_user_kind_created', 'user_id', 'kind', 'created_at'),
)

# Persisted optimizations with filterable columns lifted out of the payload
optimizations = Table(
    'optimizations',
    metadata,
    Column('seq', Integer, primary_key=True, autoincrement=True),
    Column('id', String(100), unique=True, nullable=False),
    Column('user_id', String(100), nullable=False, index=True),
    Column('type', String(50), nullable=False),
    Column('category', String(50), nullable=False),
    Column('status', String(50), nullable=False, index=True),
    Column('payload', JSON, nullable=False),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    # Composite index for list pattern: (user_id, created_at)
    Index('idx_optimizations_user_created', 'user_id', 'created_at'),
)

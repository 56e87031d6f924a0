"""
Database connection and session management.

Provides engine creation, a session factory and session lifecycle helpers.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

DEFAULT_URL = "sqlite:///data/tenderwatch.db"


# =============================================================================
# SQLite Configuration
# =============================================================================


def _configure_sqlite(engine: Engine, in_memory: bool = False) -> None:
    """Configure SQLite for better performance and reliability.

    Enables:
    - Foreign key enforcement
    - WAL mode for better concurrency (file databases only)
    - Synchronous mode for durability
    """
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if not in_memory:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()


# =============================================================================
# Engine Creation
# =============================================================================


def create_db_engine(url: str = DEFAULT_URL, echo: bool = False) -> Engine:
    """Create a new engine for ``url``.

    In-memory SQLite uses a single shared connection so every session sees
    the same database.
    """
    if url.startswith("sqlite"):
        in_memory = url in {"sqlite://", "sqlite:///:memory:"}

        if url.startswith("sqlite:///") and not in_memory:
            Path(url.replace("sqlite:///", "")).parent.mkdir(parents=True, exist_ok=True)

        options: dict = {"connect_args": {"check_same_thread": False}}
        if in_memory:
            options["poolclass"] = StaticPool

        engine = create_engine(url, echo=echo, **options)
        _configure_sqlite(engine, in_memory=in_memory)
        return engine

    return create_engine(
        url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )

# =============================================================================
# Session Management
# =============================================================================


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """Transactional scope around a series of operations.

    Usage:
        with session_scope(factory) as session:
            session.execute(...)

    Commits on success, rolls back on any exception.
    """
    session = factory()

    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# =============================================================================
# Database Initialization
# =============================================================================


def init_db(url: str = DEFAULT_URL, echo: bool = False) -> Engine:
    """Initialize the database schema.

    Creates all tables if they don't exist.

    Args:
        url: Database URL
        echo: Whether to log SQL

    Returns:
        The engine the schema was created on
    """
    engine = create_db_engine(url, echo=echo)
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()
    return engine


def drop_db(url: str = DEFAULT_URL) -> None:
    """Drop all database tables.

    WARNING: This will delete all data!
    """
    engine = create_db_engine(url)
    try:
        Base.metadata.drop_all(bind=engine)
    finally:
        engine.dispose()


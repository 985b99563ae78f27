"""
Database Persistence Layer - Core Engine.

============================================================
PURPOSE
============================================================
Engine, session and transaction management for the
risk-assessment tables.

Requirements:
- SQLAlchemy ORM with PostgreSQL (SQLite accepted for local runs)
- Explicit transaction management
- Hard failures on persistence errors

============================================================
"""

import logging
from typing import Optional, Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, text, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from core.config import AppSettings, DEFAULT_DATABASE_URL
from core.exceptions import DatabaseError

logger = logging.getLogger(__name__)

# =============================================================
# DECLARATIVE BASE
# =============================================================

Base = declarative_base()

# =============================================================
# DATABASE ENGINE
# =============================================================

_engine: Optional[Engine] = None
_SessionFactory: Optional[sessionmaker] = None


def get_database_url() -> str:
    """Get database URL from environment."""
    url = AppSettings.from_env().database_url
    if url.startswith("postgresql+asyncpg"):
        # Sessions here are synchronous
        url = url.replace("postgresql+asyncpg", "postgresql")
    if url == DEFAULT_DATABASE_URL:
        logger.warning(f"DATABASE_URL not set, using default: {url.split('@')[-1]}")
    return url


def create_database_engine(
    database_url: Optional[str] = None,
    pool_size: int = 10,
    max_overflow: int = 20,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    echo: bool = False,
) -> Engine:
    """
    Create SQLAlchemy engine with connection pooling.

    In-memory SQLite URLs share one connection across sessions
    (StaticPool) so that every session sees the same tables.

    Args:
        database_url: Explicit URL, defaults to DATABASE_URL
        pool_size: Number of connections to keep in pool
        max_overflow: Max connections beyond pool_size
        pool_timeout: Seconds to wait for available connection
        pool_recycle: Recycle connections after N seconds
        echo: Log SQL statements

    Returns:
        SQLAlchemy Engine
    """
    database_url = database_url or get_database_url()

    logger.info(f"Creating database engine for: {database_url.split('@')[-1]}")

    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool if ":memory:" in database_url or database_url == "sqlite://" else None,
            echo=echo,
        )

        # pysqlite defers BEGIN on its own, which breaks SAVEPOINT
        # semantics; let SQLAlchemy emit BEGIN itself.
        @event.listens_for(engine, "connect")
        def disable_pysqlite_begin(dbapi_conn, connection_record):
            dbapi_conn.isolation_level = None

        @event.listens_for(engine, "begin")
        def emit_begin(conn):
            conn.exec_driver_sql("BEGIN")
    else:
        engine = create_engine(
            database_url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            pool_pre_ping=True,
            echo=echo,
        )

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        logger.debug("Database connection established")

    return engine


def get_engine() -> Engine:
    """Get the database engine, creating if necessary."""
    global _engine
    if _engine is None:
        settings = AppSettings.from_env()
        _engine = create_database_engine(echo=settings.database_echo)
    return _engine


def configure_engine(engine: Engine) -> None:
    """
    Install an externally created engine as the process engine.

    Resets the session factory so new sessions bind to it.
    """
    global _engine, _SessionFactory
    _engine = engine
    _SessionFactory = None


def dispose_engine() -> None:
    """Close all pooled connections and forget the engine."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


def get_session_factory() -> sessionmaker:
    """Get session factory, creating if necessary."""
    global _SessionFactory

    if _SessionFactory is None:
        _SessionFactory = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    return _SessionFactory


# =============================================================
# SESSION MANAGEMENT
# =============================================================


def get_session() -> Session:
    """
    Get a new database session.

    IMPORTANT: Caller is responsible for committing/closing.
    Prefer using get_db_session() context manager instead.
    """
    factory = get_session_factory()
    return factory()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions with automatic cleanup.

    Usage:
        with get_db_session() as session:
            session.add(record)
            session.commit()

    On exception:
        - Automatically rolls back
        - Re-raises the exception
        - Logs the error
    """
    session = get_session()
    try:
        yield session
    except SQLAlchemyError as e:
        logger.error(f"Database error, rolling back: {e}")
        session.rollback()
        raise
    except Exception as e:
        logger.error(f"Unexpected error, rolling back: {e}")
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def transaction_scope() -> Generator[Session, None, None]:
    """
    Context manager for explicit transaction boundaries.

    Commits only if no exception occurs.
    Rolls back on ANY exception.

    Usage:
        with transaction_scope() as session:
            session.add(profile)
            # Commits automatically at end
    """
    session = get_session()
    try:
        yield session
        session.commit()
        logger.debug("Database transaction committed successfully")
    except SQLAlchemyError as e:
        logger.error(f"Database transaction failed, rolling back: {e}")
        session.rollback()
        raise DatabaseError(f"Transaction failed: {e}", operation="transaction", cause=e) from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# =============================================================
# DATABASE INITIALIZATION
# =============================================================

REQUIRED_TABLES = [
    "customer_risk_profiles",
    "return_requests",
]


def verify_database_connection(engine: Optional[Engine] = None) -> bool:
    """
    Verify database connection is working.

    Returns:
        True if connection successful

    Raises:
        DatabaseError if connection fails
    """
    engine = engine or get_engine()

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
            logger.info("Database connection verified successfully")
            return True
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {e}")
        raise DatabaseError(f"Cannot connect to database: {e}", operation="connect", cause=e) from e


def create_all_tables(engine: Optional[Engine] = None) -> None:
    """
    Create all tables defined in ORM models.

    Raises:
        DatabaseError if table creation fails
    """
    from . import models  # noqa: F401

    engine = engine or get_engine()

    try:
        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.error(f"Failed to create database tables: {e}")
        raise DatabaseError(f"Table creation failed: {e}", operation="create_all", cause=e) from e


def verify_required_tables(engine: Optional[Engine] = None) -> bool:
    """Check that every required table exists, logging each one."""
    engine = engine or get_engine()
    existing = set(inspect(engine).get_table_names())

    all_present = True
    for table in REQUIRED_TABLES:
        if table in existing:
            logger.info(f"  [OK] Table verified: {table}")
        else:
            logger.warning(f"  [!!] Table missing: {table}")
            all_present = False

    return all_present


def initialize_database(engine: Optional[Engine] = None) -> None:
    """
    Full database initialization sequence.

    1. Verify connection
    2. Create tables if not exist
    3. Abort on any failure

    Called at application startup.
    """
    logger.info("Initializing database persistence layer")

    try:
        verify_database_connection(engine)
        create_all_tables(engine)
        verify_required_tables(engine)
        logger.info("Database initialization complete")
    except Exception as e:
        logger.critical(f"DATABASE INITIALIZATION FAILED: {e}")
        raise


__all__ = [
    "Base",
    "create_database_engine",
    "configure_engine",
    "dispose_engine",
    "get_engine",
    "get_session",
    "get_db_session",
    "get_session_factory",
    "transaction_scope",
    "initialize_database",
    "verify_database_connection",
    "verify_required_tables",
    "create_all_tables",
    "REQUIRED_TABLES",
]

"""
Database Connection and Session Management

PostgreSQL in deployments; SQLite URLs are accepted for local runs and the
test suite.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from contextlib import contextmanager
from typing import Generator, Optional
import logging

from spendwise.database.models import Base

logger = logging.getLogger(__name__)

# Global engine and session factory
engine: Optional[Engine] = None
SessionLocal = None
_is_initialized = False


def _engine_options(database_url: str) -> dict:
    if not database_url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    options = {"connect_args": {"check_same_thread": False}}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # A single shared connection keeps the in-memory database alive
        options["poolclass"] = StaticPool
    return options


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_db(database_url: str):
    """
    Initialize the database connection and create tables.

    Args:
        database_url: SQLAlchemy connection URL
    """
    global engine, SessionLocal, _is_initialized

    logger.info("Initializing database connection...")

    engine = create_engine(database_url, echo=False, **_engine_options(database_url))
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database initialized successfully (%s)", engine.dialect.name)
    _is_initialized = True


def ensure_db_initialized():
    """Lazily initialize the database connection if it hasn't been set up yet."""
    if _is_initialized and SessionLocal is not None:
        return
    from spendwise.config import settings
    if not settings.DATABASE_URL:
        raise RuntimeError("DATABASE_URL must be set to use database storage")
    init_db(settings.DATABASE_URL)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for FastAPI to get database session.

    Yields:
        Database session
    """
    ensure_db_initialized()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context():
    """
    Context manager for database sessions outside of FastAPI (rq jobs).

    Usage:
        with get_db_context() as db:
            profile = db.query(Profile).first()
    """
    ensure_db_initialized()
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def close_db():
    """Close database connection."""
    global engine, SessionLocal, _is_initialized
    if engine:
        engine.dispose()
        logger.info("Database connection closed")
    engine = None
    SessionLocal = None
    _is_initialized = False

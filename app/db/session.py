from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.config.settings import settings
from app.core.errors import CoachingError, ConflictError, PersistenceError

# Lazy initialization to avoid import-time database connections
_engine = None
_SessionLocal = None


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    """Enable foreign key constraints in SQLite connections."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _get_engine():
    """Get or create the database engine (lazy initialization)."""
    global _engine
    if _engine is None:
        logger.info(f"Initializing database engine: {settings.database_url}")

        is_sqlite = "sqlite" in settings.database_url.lower()
        connect_args = {"check_same_thread": False} if is_sqlite else {"connect_timeout": 10}

        _engine = create_engine(
            settings.database_url,
            connect_args=connect_args,
            echo=False,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        if is_sqlite:
            logger.warning("Using SQLite database (local development only)")
            event.listen(_engine, "connect", _enable_sqlite_foreign_keys)
        logger.info("Database engine initialized")
    return _engine


def get_engine():
    """Get or create the database engine (public API)."""
    return _get_engine()


def _get_session_local():
    """Get or create the session factory (lazy initialization)."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_get_engine())
        logger.info("Database session factory initialized")
    return _SessionLocal


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Get database session context manager.

    Commits when the block exits normally and rolls back otherwise:
    - CoachingError: expected business failure, rolled back and re-raised quietly
    - Other exceptions: logged as database errors, rolled back and re-raised
    """
    session = _get_session_local()()
    try:
        yield session
        if session.dirty or session.new or session.deleted or session.in_transaction():
            session.commit()
    except CoachingError as e:
        logger.debug(f"{type(e).__name__} in session, rolling back: {e}")
        session.rollback()
        raise
    except Exception as e:
        logger.error(f"Database session error, rolling back: {e}. Error type: {type(e).__name__}")
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def write_guard(session: Session, operation: str) -> Generator[Session, None, None]:
    """Flush pending writes and translate storage failures into the error taxonomy.

    Args:
        session: Database session
        operation: Short description used in log lines and error messages

    Raises:
        ConflictError: A unique or primary key constraint rejected the write
        PersistenceError: Any other storage failure
    """
    try:
        yield session
        session.flush()
    except IntegrityError as e:
        session.rollback()
        logger.warning(f"Integrity violation during {operation}: {e.orig}")
        raise ConflictError(f"Conflicting write during {operation}") from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Storage failure during {operation}: {e}")
        raise PersistenceError(f"Storage failure during {operation}") from e

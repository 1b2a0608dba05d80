"""Root conftest for all tests.

This file makes shared fixtures available across all test modules.
"""

from contextlib import contextmanager
from datetime import date

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from app.db.models import Base

TODAY = date(2026, 3, 10)

# Modules that import get_session directly and must see the test session
_SESSION_USERS = (
    "app.db.session",
    "app.api.plans",
    "app.api.programs",
    "app.api.diet",
    "app.api.schedule",
    "cli.cli",
)


def _set_sqlite_pragma(dbapi_connection, _connection_record):
    """Enable foreign key constraints in SQLite connections."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture(scope="function")
def db_session(monkeypatch):
    """
    Provides a transactional in-memory SQLite DB session for tests.

    This fixture:
    - Creates an isolated in-memory SQLite database per test
    - Patches the engine getters to use it
    - Patches get_session() to return the test session
    - Uses transaction rollback for cleanup (no DELETE statements)
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _set_sqlite_pragma)

    def mock_get_engine():
        return engine

    monkeypatch.setattr("app.db.session._get_engine", mock_get_engine)
    monkeypatch.setattr("app.db.session.get_engine", mock_get_engine)

    Base.metadata.create_all(engine)

    # Create a connection and start a transaction
    connection = engine.connect()
    transaction = connection.begin()

    test_session_local = sessionmaker(bind=connection, autocommit=False, autoflush=False)
    session = test_session_local()

    @contextmanager
    def mock_get_session():
        yield session

    # Patch where it's imported/used, not just where it's defined
    import importlib

    for module_name in _SESSION_USERS:
        module = importlib.import_module(module_name)
        monkeypatch.setattr(module, "get_session", mock_get_session)

    try:
        yield session
    finally:
        session.rollback()
        if transaction.is_active:
            transaction.rollback()
        session.close()
        connection.close()
        engine.dispose()


@pytest.fixture
def today() -> date:
    """Fixed 'today' so archive/duplicate dates are deterministic."""
    return TODAY


@pytest.fixture
def lifecycle(db_session, today):
    from app.plans import PlanLifecycleManager

    return PlanLifecycleManager(db_session, today=lambda: today, strict_archive=True)


@pytest.fixture
def program(lifecycle):
    """A four-week draft training program for client-1."""
    return lifecycle.create(
        "training",
        coach_id="coach-1",
        client_id="client-1",
        effective_from=date(2026, 3, 2),
        name="Hipertrofia",
        total_weeks=4,
    )


@pytest.fixture
def structure(db_session):
    from app.training.structure import TrainingStructureManager

    return TrainingStructureManager(db_session)


@pytest.fixture
def built_program(program, structure):
    """Program with default columns, two days and exercises on the first day.

    Returns a dict with the program, days, columns (by key) and exercises.
    """
    columns = {column.key: column for column in structure.bootstrap_columns(program.id)}
    days = structure.replace_days(program.id, ["Torso", "Pierna"])
    exercises = [
        structure.add_exercise(days[0].id, "Press banca"),
        structure.add_exercise(days[0].id, "Remo con barra"),
        structure.add_exercise(days[0].id, "Press militar"),
    ]
    return {"program": program, "days": days, "columns": columns, "exercises": exercises}

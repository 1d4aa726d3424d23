"""Pytest configuration and shared fixtures for HabitLog tests.

Every test gets its own temporary SQLite file, a context wired around it and a
fixed "today" so streak and rate figures are deterministic.
"""

from __future__ import annotations

import tempfile
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest
from sqlmodel import Session, SQLModel, create_engine

from habitlog import models  # noqa: F401  # register tables with SQLModel metadata
from habitlog.config import BaseConfig
from habitlog.context import build_context
from habitlog.models.habit import Habit

# Leap-year March 1st: windows ending here cross Feb 29 and the month boundary.
FIXED_TODAY = date(2024, 3, 1)


def days_ago(n: int, today: date = FIXED_TODAY) -> date:
    return today - timedelta(days=n)


@pytest.fixture
def today() -> date:
    return FIXED_TODAY


@pytest.fixture(name="days_ago")
def days_ago_fixture():
    return days_ago


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine with every table created
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(f"sqlite:///{db_path}", echo=False)
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory matching what the repositories expect."""

    def factory():
        return Session(db_engine, expire_on_commit=False)

    return factory


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def config(tmp_path, monkeypatch) -> BaseConfig:
    monkeypatch.setenv("HABITLOG_DATA_DIR", str(tmp_path / "instance"))
    monkeypatch.delenv("HABITLOG_DATABASE_URL", raising=False)
    monkeypatch.delenv("HABITLOG_MILESTONES", raising=False)
    monkeypatch.delenv("HABITLOG_STREAK_LOOKBACK_DAYS", raising=False)
    monkeypatch.delenv("HABITLOG_AUTO_BACKUP", raising=False)
    return BaseConfig()


@pytest.fixture
def delivered() -> list:
    """Notifications handed to the sink, in delivery order."""
    return []


@pytest.fixture
def app(config, session_factory, delivered):
    """Application context on the test database with the clock pinned to FIXED_TODAY."""
    return build_context(
        config,
        session_factory,
        today=lambda: FIXED_TODAY,
        sink=delivered.append,
    )


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def habit_factory(app):
    """Factory for creating habits through the registry.

    ``created_on`` backdates the habit (the registry always stamps "now").
    """

    def _create_habit(
        name: str = "Test Habit",
        frequency: str = "daily",
        created_on: date | None = days_ago(29),
        **fields,
    ) -> Habit:
        habit = app.registry.add(name=name, frequency=frequency, **fields)
        assert habit is not None
        if created_on is not None:
            habit.created_at = datetime.combine(created_on, datetime.min.time())
            habit = app.habit_repo.update(habit)
        return habit

    return _create_habit


@pytest.fixture
def complete_days(app):
    """Mark a habit complete ``n`` days before FIXED_TODAY for each offset given."""

    def _complete(habit_id: str, offsets) -> None:
        for offset in offsets:
            app.completion_log.mark_complete(habit_id, days_ago(offset))

    return _complete

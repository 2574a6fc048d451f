"""Shared test fixtures and configuration.

Pins environment variables before any petcare import so settings are
deterministic, and provides a repository backed by a temp DB.
"""

import os

# Patch env vars BEFORE any petcare imports
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("DEFAULT_TIMEZONE", "UTC")
os.environ.setdefault("GENERATION_HORIZON_DAYS", "180")
os.environ.setdefault("MAX_GENERATED_EVENTS", "240")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import pytest

from petcare.data.db import close_database


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path, closed after the test."""
    path = str(tmp_path / "test_petcare.db")
    yield path
    close_database(path)


@pytest.fixture
def recurrence_repo(tmp_db_path):
    """Return a RecurrenceRepository instance backed by a temp file."""
    from petcare.data.db import RecurrenceRepository
    return RecurrenceRepository(db_path=tmp_db_path)


@pytest.fixture
def reminder_scheduler():
    """A stand-in reminder port recording schedule/cancel calls."""
    from unittest.mock import MagicMock
    scheduler = MagicMock()
    scheduler.schedule_event_reminders.return_value = ["notif-1"]
    return scheduler


@pytest.fixture
def recurrence_repo_with_reminders(tmp_db_path, reminder_scheduler):
    from petcare.data.db import RecurrenceRepository
    return RecurrenceRepository(db_path=tmp_db_path, reminder_scheduler=reminder_scheduler)

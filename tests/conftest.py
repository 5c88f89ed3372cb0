"""Shared test fixtures and configuration.

Sets up fake environment variables so src.config doesn't sys.exit(),
and provides common fixtures like temp-file stores and task builders.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("LLM_API_KEY", "")
os.environ.setdefault("LLM_PROVIDER", "gemini")
os.environ.setdefault("ALLOWED_USER_IDS", "12345")
os.environ.setdefault("DATABASE_PATH", "data/test-planner.db")

from datetime import datetime

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_planner.db")


@pytest.fixture
def stores(tmp_db_path):
    """Return the full set of stores backed by a temp file."""
    from src.data.store import Stores
    return Stores.open(tmp_db_path)


@pytest.fixture
def make_task():
    """Factory for tasks with sensible defaults."""
    from src.data.models import Category, Criticality, Repeat, Task

    def _make(
        id="t1",
        due=datetime(2024, 1, 1, 9, 0),
        repeat=Repeat.NONE,
        duration=60,
        criticality=Criticality.MEDIUM,
        category=Category.WORK,
        completed=None,
        reminder=None,
        title=None,
    ):
        return Task(
            id=id,
            title=title or f"Task {id}",
            category=category,
            due_date=due,
            duration=duration,
            criticality=criticality,
            repeat=repeat,
            completed_dates=list(completed or []),
            reminder=reminder,
        )

    return _make

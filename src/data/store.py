"""
Day Planner — Record Stores.

Every collection (tasks, notes, profile, rewards, daily plan, API key) lives
as one JSON document in a SQLite key-value table. Consumers read the whole
collection on load and write the whole collection on every mutation.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from src.data.models import CustomReward, DailyPlan, Note, Task, UserProfile

logger = logging.getLogger(__name__)

TASKS_KEY = "tasks"
NOTES_KEY = "notes"
PROFILE_KEY = "userProfile"
REWARDS_KEY = "customRewards"
DAILY_PLAN_KEY = "dailyPlan"
API_KEY_KEY = "apiKey"


class TaskNotFoundError(KeyError):
    """Raised by explicit lookups when no task has the given id."""


class RecordStore:
    """SQLite-backed key-value storage of JSON documents."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create the records table if it doesn't exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS records (
                    key   TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
        logger.debug("Records table initialized at %s", self._db_path)

    def read(self, key: str, default: Any = None) -> Any:
        """Return the decoded document stored under key, or default."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM records WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return default
        return json.loads(row["value"])

    def write(self, key: str, value: Any) -> None:
        """Replace the document stored under key."""
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO records (key, value) VALUES (?, ?)",
                (key, json.dumps(value)),
            )


class TaskStore:
    """The task collection."""

    def __init__(self, records: RecordStore) -> None:
        self._records = records

    def load(self) -> list[Task]:
        return [Task.from_dict(d) for d in self._records.read(TASKS_KEY, [])]

    def save(self, tasks: list[Task]) -> None:
        self._records.write(TASKS_KEY, [t.to_dict() for t in tasks])

    def get(self, task_id: str) -> Task | None:
        for task in self.load():
            if task.id == task_id:
                return task
        return None

    def get_or_raise(self, task_id: str) -> Task:
        task = self.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def add(self, task: Task) -> Task:
        """Append a task, keeping the collection ordered by anchor."""
        tasks = self.load()
        tasks.append(task)
        tasks.sort(key=lambda t: t.due_date)
        self.save(tasks)
        logger.info("Task added: %s '%s' (%s)", task.id, task.title, task.repeat)
        return task

    def update(self, task: Task) -> None:
        tasks = [task if t.id == task.id else t for t in self.load()]
        self.save(tasks)
        logger.info("Task updated: %s", task.id)

    def delete(self, task_id: str) -> bool:
        """Remove a task. Returns False when nothing matched."""
        tasks = self.load()
        remaining = [t for t in tasks if t.id != task_id]
        if len(remaining) == len(tasks):
            return False
        self.save(remaining)
        logger.info("Task deleted: %s", task_id)
        return True


class NoteStore:
    """The note collection, newest first."""

    def __init__(self, records: RecordStore) -> None:
        self._records = records

    def load(self) -> list[Note]:
        return [Note.from_dict(d) for d in self._records.read(NOTES_KEY, [])]

    def save(self, notes: list[Note]) -> None:
        self._records.write(NOTES_KEY, [n.to_dict() for n in notes])

    def add(self, note: Note) -> Note:
        self.save([note, *self.load()])
        return note

    def update(self, note: Note) -> None:
        self.save([note if n.id == note.id else n for n in self.load()])

    def delete(self, note_id: str) -> bool:
        notes = self.load()
        remaining = [n for n in notes if n.id != note_id]
        if len(remaining) == len(notes):
            return False
        self.save(remaining)
        return True


class ProfileStore:
    def __init__(self, records: RecordStore) -> None:
        self._records = records

    def load(self) -> UserProfile:
        data = self._records.read(PROFILE_KEY)
        if data is None:
            return UserProfile()
        return UserProfile.from_dict(data)

    def save(self, profile: UserProfile) -> None:
        self._records.write(PROFILE_KEY, profile.to_dict())


class RewardStore:
    def __init__(self, records: RecordStore) -> None:
        self._records = records

    def load(self) -> list[CustomReward]:
        return [CustomReward.from_dict(d) for d in self._records.read(REWARDS_KEY, [])]

    def save(self, rewards: list[CustomReward]) -> None:
        self._records.write(REWARDS_KEY, [r.to_dict() for r in rewards])

    def add(self, reward: CustomReward) -> CustomReward:
        self.save([*self.load(), reward])
        return reward


class PlanStore:
    def __init__(self, records: RecordStore) -> None:
        self._records = records

    def load(self) -> DailyPlan:
        data = self._records.read(DAILY_PLAN_KEY)
        if data is None:
            return DailyPlan()
        return DailyPlan.from_dict(data)

    def save(self, plan: DailyPlan) -> None:
        self._records.write(DAILY_PLAN_KEY, plan.to_dict())


class ApiKeyStore:
    """The AI suggestion credential entered by the user."""

    def __init__(self, records: RecordStore) -> None:
        self._records = records

    def load(self) -> str:
        return self._records.read(API_KEY_KEY, "")

    def save(self, api_key: str) -> None:
        self._records.write(API_KEY_KEY, api_key.strip())


@dataclass
class Stores:
    """All collection stores sharing one record store."""

    tasks: TaskStore
    notes: NoteStore
    profile: ProfileStore
    rewards: RewardStore
    plan: PlanStore
    api_key: ApiKeyStore

    @classmethod
    def open(cls, db_path: str | None = None) -> Stores:
        records = RecordStore(db_path)
        return cls(
            tasks=TaskStore(records),
            notes=NoteStore(records),
            profile=ProfileStore(records),
            rewards=RewardStore(records),
            plan=PlanStore(records),
            api_key=ApiKeyStore(records),
        )

"""
Day Planner — Data Models.

Plain records owned by the key-value stores. Occurrences are derived views
and are never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


class Category(str, Enum):
    WORK = "Work"
    HOME = "Home"
    LIFE = "Life"


class Criticality(str, Enum):
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Repeat(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def _enum_or_raw(enum_cls: type[Enum], value: str) -> Any:
    """Coerce a stored string into its enum member, keeping unknown values as-is."""
    try:
        return enum_cls(value)
    except ValueError:
        return value


@dataclass
class Task:
    """A (possibly recurring) task.

    ``due_date`` is the anchor: its calendar day is the first possible
    occurrence and its time-of-day is the template for every occurrence.
    """

    id: str
    title: str
    category: Category
    due_date: datetime
    duration: int                     # minutes, >= 1
    criticality: Criticality
    repeat: Repeat | str = Repeat.NONE
    completed_dates: list[str] = field(default_factory=list)  # YYYY-MM-DD
    reminder: int | None = None       # minutes before due; 0/None = off
    description: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": _value(self.category),
            "due_date": self.due_date.isoformat(),
            "duration": self.duration,
            "criticality": _value(self.criticality),
            "repeat": _value(self.repeat),
            "completed_dates": list(self.completed_dates),
            "reminder": self.reminder,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Task:
        return cls(
            id=str(data["id"]),
            title=data["title"],
            description=data.get("description"),
            category=_enum_or_raw(Category, data["category"]),
            due_date=datetime.fromisoformat(data["due_date"]),
            duration=int(data["duration"]),
            criticality=_enum_or_raw(Criticality, data["criticality"]),
            repeat=_enum_or_raw(Repeat, data.get("repeat", "none")),
            completed_dates=list(data.get("completed_dates", [])),
            reminder=data.get("reminder"),
        )


@dataclass
class Occurrence:
    """One concrete calendar realization of a task."""

    task: Task
    start: datetime        # anchor time-of-day on the occurrence day
    completed: bool

    @property
    def day(self) -> date:
        return self.start.date()

    @property
    def key(self) -> tuple[str, str]:
        return (self.task.id, self.start.date().isoformat())

    @property
    def id(self) -> str:
        """Composite id that disambiguates several occurrences of one task."""
        return f"{self.task.id}-{int(self.start.timestamp() * 1000)}"

    @property
    def title(self) -> str:
        return self.task.title

    @property
    def duration(self) -> int:
        return self.task.duration

    @property
    def start_minutes(self) -> int:
        return self.start.hour * 60 + self.start.minute

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.task.duration


@dataclass
class UserProfile:
    name: str = ""
    points: int = 0
    streak: int = 0
    last_completed_date: str | None = None   # YYYY-MM-DD
    last_planned_date: str | None = None     # YYYY-MM-DD

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "points": self.points,
            "streak": self.streak,
            "last_completed_date": self.last_completed_date,
            "last_planned_date": self.last_planned_date,
        }

    @classmethod
    def from_dict(cls, data: dict) -> UserProfile:
        return cls(
            name=data.get("name", ""),
            points=int(data.get("points", 0)),
            streak=int(data.get("streak", 0)),
            last_completed_date=data.get("last_completed_date"),
            last_planned_date=data.get("last_planned_date"),
        )


@dataclass
class DailyPlan:
    """Task ids committed during the plan-my-day flow."""

    date: str = ""                    # YYYY-MM-DD, empty = never planned
    task_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"date": self.date, "task_ids": list(self.task_ids)}

    @classmethod
    def from_dict(cls, data: dict) -> DailyPlan:
        return cls(date=data.get("date", ""), task_ids=list(data.get("task_ids", [])))


@dataclass
class Note:
    id: str
    title: str
    content: str
    created_at: str                   # ISO datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Note:
        return cls(
            id=str(data["id"]),
            title=data["title"],
            content=data.get("content", ""),
            created_at=data["created_at"],
        )


@dataclass
class CustomReward:
    id: str
    name: str
    cost: int

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "cost": self.cost}

    @classmethod
    def from_dict(cls, data: dict) -> CustomReward:
        return cls(id=str(data["id"]), name=data["name"], cost=int(data["cost"]))


def _value(v: Any) -> Any:
    return v.value if isinstance(v, Enum) else v

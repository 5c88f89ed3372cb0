"""Occurrence resolver — pure business logic.

Expands a task's recurrence rule into concrete occurrences for one day,
an inclusive range of days, or a calendar month.

Each repeat value maps to one rule with two transitions:
``first_on_or_after`` (jump into a range) and ``step`` (next occurrence).
Monthly rules match the anchor's day-of-month literally: a task anchored on
the 31st has no occurrence in 30-day months or February.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta

from src.core.dates import at_time_of, day_in_month, day_key, month_bounds, next_month, to_day
from src.data.models import Occurrence, Repeat, Task

logger = logging.getLogger(__name__)


class RecurrenceRule(ABC):
    """Base class for the closed set of recurrence variants."""

    @abstractmethod
    def matches(self, anchor: date, day: date) -> bool:
        """True when ``day`` (never before ``anchor``) is an occurrence day."""
        ...

    @abstractmethod
    def first_on_or_after(self, anchor: date, day: date) -> date | None:
        """The first occurrence day that is >= both ``anchor`` and ``day``."""
        ...

    @abstractmethod
    def step(self, anchor: date, current: date) -> date | None:
        """The occurrence day following ``current``."""
        ...


class NoRepeat(RecurrenceRule):
    def matches(self, anchor: date, day: date) -> bool:
        return anchor == day

    def first_on_or_after(self, anchor: date, day: date) -> date | None:
        return anchor if anchor >= day else None

    def step(self, anchor: date, current: date) -> date | None:
        return None


class Daily(RecurrenceRule):
    def matches(self, anchor: date, day: date) -> bool:
        return True

    def first_on_or_after(self, anchor: date, day: date) -> date | None:
        return max(anchor, day)

    def step(self, anchor: date, current: date) -> date | None:
        return current + timedelta(days=1)


class Weekly(RecurrenceRule):
    def matches(self, anchor: date, day: date) -> bool:
        return anchor.weekday() == day.weekday()

    def first_on_or_after(self, anchor: date, day: date) -> date | None:
        if day <= anchor:
            return anchor
        weeks = -(-(day - anchor).days // 7)
        return anchor + timedelta(weeks=weeks)

    def step(self, anchor: date, current: date) -> date | None:
        return current + timedelta(days=7)


class Monthly(RecurrenceRule):
    def matches(self, anchor: date, day: date) -> bool:
        return anchor.day == day.day

    def first_on_or_after(self, anchor: date, day: date) -> date | None:
        if day <= anchor:
            return anchor
        year, month = day.year, day.month
        # Every run of two consecutive months contains a 31st.
        for _ in range(3):
            candidate = day_in_month(year, month, anchor.day)
            if candidate is not None and candidate >= day:
                return candidate
            year, month = next_month(year, month)
        return None

    def step(self, anchor: date, current: date) -> date | None:
        year, month = current.year, current.month
        for _ in range(3):
            year, month = next_month(year, month)
            candidate = day_in_month(year, month, anchor.day)
            if candidate is not None:
                return candidate
        return None


_RULES: dict[str, RecurrenceRule] = {
    Repeat.NONE.value: NoRepeat(),
    Repeat.DAILY.value: Daily(),
    Repeat.WEEKLY.value: Weekly(),
    Repeat.MONTHLY.value: Monthly(),
}


def rule_for(repeat: Repeat | str) -> RecurrenceRule | None:
    """Return the rule for a repeat value, or None for an unknown value."""
    value = repeat.value if isinstance(repeat, Repeat) else repeat
    return _RULES.get(value)


# ---------------------------------------------------------------------------
# Single-day queries
# ---------------------------------------------------------------------------


def occurs_on(task: Task, day: date | datetime) -> bool:
    """Return True if the task has an occurrence on the given calendar day."""
    anchor = task.due_date.date()
    check = to_day(day)

    if anchor > check:
        return False  # not started yet

    rule = rule_for(task.repeat)
    if rule is None:
        return False
    return rule.matches(anchor, check)


def is_finished(task: Task) -> bool:
    """A one-off task with any completion is done for good."""
    return isinstance(rule_for(task.repeat), NoRepeat) and bool(task.completed_dates)


def make_occurrence(task: Task, day: date) -> Occurrence:
    """Build the occurrence of a task on a day, time-of-day taken from the anchor."""
    return Occurrence(
        task=task,
        start=at_time_of(day, task.due_date),
        completed=day_key(day) in task.completed_dates,
    )


def occurrences_on(tasks: list[Task], day: date | datetime) -> list[Occurrence]:
    """All occurrences on one day, ordered by start time."""
    check = to_day(day)
    result = [make_occurrence(t, check) for t in tasks if occurs_on(t, check)]
    result.sort(key=lambda o: o.start)
    return result


# ---------------------------------------------------------------------------
# Range expansion
# ---------------------------------------------------------------------------


def expand(
    task: Task,
    range_start: date | datetime,
    range_end: date | datetime,
) -> list[Occurrence]:
    """Expand a task into its occurrences within an inclusive range of days."""
    rule = rule_for(task.repeat)
    if rule is None:
        logger.debug("Task %s has unknown repeat %r; no occurrences", task.id, task.repeat)
        return []

    anchor = task.due_date.date()
    start, end = to_day(range_start), to_day(range_end)

    occurrences: list[Occurrence] = []
    current = rule.first_on_or_after(anchor, start)
    while current is not None and current <= end:
        occurrences.append(make_occurrence(task, current))
        current = rule.step(anchor, current)
    return occurrences


def occurrences_in_month(tasks: list[Task], year: int, month: int) -> list[Occurrence]:
    """All occurrences of all tasks in a calendar month, ordered by start."""
    first, last = month_bounds(year, month)
    result: list[Occurrence] = []
    for task in tasks:
        result.extend(expand(task, first, last))
    result.sort(key=lambda o: o.start)
    return result


def month_grid(tasks: list[Task], year: int, month: int) -> dict[int, list[Occurrence]]:
    """Occurrences grouped by day-of-month; days without tasks are absent."""
    grid: dict[int, list[Occurrence]] = {}
    for occ in occurrences_in_month(tasks, year, month):
        grid.setdefault(occ.start.day, []).append(occ)
    return grid

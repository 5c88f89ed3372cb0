"""Plan-my-day flow and dashboard sections — pure business logic.

The planning flow walks the user through today's candidate tasks; each is
committed, snoozed to tomorrow, deleted, or skipped. Finishing the flow
stores a DailyPlan and stamps the profile's last_planned_date.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta

from src.core.dates import at_time_of, day_key, start_of_day, to_day
from src.core.recurrence import is_finished, occurs_on
from src.data.models import Category, Criticality, DailyPlan, Repeat, Task, UserProfile

logger = logging.getLogger(__name__)

_CRITICALITY_RANK: dict[str, int] = {
    Criticality.URGENT.value: 0,
    Criticality.HIGH.value: 1,
    Criticality.MEDIUM.value: 2,
    Criticality.LOW.value: 3,
}


def _rank(task: Task) -> int:
    value = task.criticality.value if isinstance(task.criticality, Criticality) else task.criticality
    return _CRITICALITY_RANK.get(value, len(_CRITICALITY_RANK))


def tasks_to_plan(tasks: list[Task], today: date | datetime) -> list[Task]:
    """Candidates for today's plan: overdue first, then by criticality."""
    day = to_day(today)
    key = day_key(day)

    candidates = []
    for task in tasks:
        if key in task.completed_dates and task.repeat != Repeat.DAILY:
            continue
        if is_finished(task):
            continue
        if task.repeat == Repeat.NONE:
            if task.due_date.date() <= day:
                candidates.append(task)
        elif occurs_on(task, day):
            candidates.append(task)

    candidates.sort(key=lambda t: (t.due_date.date(), _rank(t)))
    return candidates


def snooze(task: Task, today: date | datetime) -> Task:
    """Move the task's anchor to tomorrow, keeping its time-of-day."""
    tomorrow = to_day(today) + timedelta(days=1)
    return replace(task, due_date=at_time_of(tomorrow, task.due_date))


@dataclass
class PlanningResult:
    tasks: list[Task]
    plan: DailyPlan
    profile: UserProfile


def finish_planning(
    tasks: list[Task],
    profile: UserProfile,
    committed: list[str],
    updated: list[Task],
    deleted: list[str],
    today: date | datetime,
) -> PlanningResult:
    """Apply the planning actions and record today's plan."""
    key = day_key(today)
    deleted_ids = set(deleted)
    replacements = {t.id: t for t in updated}

    new_tasks = [
        replacements.get(t.id, t) for t in tasks if t.id not in deleted_ids
    ]
    logger.info(
        "Day planned for %s: %d committed, %d updated, %d deleted",
        key, len(committed), len(updated), len(deleted_ids),
    )
    return PlanningResult(
        tasks=new_tasks,
        plan=DailyPlan(date=key, task_ids=list(committed)),
        profile=replace(profile, last_planned_date=key),
    )


def is_day_planned(plan: DailyPlan, profile: UserProfile, today: date | datetime) -> bool:
    key = day_key(today)
    return plan.date == key and profile.last_planned_date == key


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


@dataclass
class DashboardSections:
    my_day: list[Task] = field(default_factory=list)
    overdue: list[Task] = field(default_factory=list)
    today: list[Task] = field(default_factory=list)
    upcoming: list[Task] = field(default_factory=list)


def dashboard_sections(
    tasks: list[Task],
    plan: DailyPlan,
    profile: UserProfile,
    now: datetime,
    category: Category | None = None,
) -> DashboardSections:
    """Bucket tasks by anchor into overdue / today / upcoming.

    When today is planned, the committed tasks are pulled out of overdue
    and today into "my day".
    """
    start_today = start_of_day(now)
    start_tomorrow = start_today + timedelta(days=1)

    sections = DashboardSections()
    for task in sorted(tasks, key=lambda t: t.due_date):
        if category is not None and task.category != category:
            continue
        if is_finished(task):
            continue
        if task.due_date < start_today:
            sections.overdue.append(task)
        elif task.due_date < start_tomorrow:
            sections.today.append(task)
        else:
            sections.upcoming.append(task)

    if is_day_planned(plan, profile, now):
        planned = set(plan.task_ids)
        sections.my_day = [t for t in sections.overdue + sections.today if t.id in planned]
        sections.overdue = [t for t in sections.overdue if t.id not in planned]
        sections.today = [t for t in sections.today if t.id not in planned]

    return sections

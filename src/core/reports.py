"""Completion statistics for the reports view."""

from __future__ import annotations

from dataclasses import dataclass, field

from src.core.dates import days_in_month, parse_day_key
from src.data.models import Category, Task


@dataclass
class CompletionReport:
    total_tasks: int
    total_completions: int
    by_category: dict[str, int] = field(default_factory=dict)   # non-zero only
    by_day: list[int] = field(default_factory=list)             # index 0 = day 1


def completion_report(tasks: list[Task], year: int, month: int) -> CompletionReport:
    """Summarize completions overall and for one month."""
    by_category = {c.value: 0 for c in Category}
    by_day = [0] * days_in_month(year, month)
    total = 0

    for task in tasks:
        category = task.category.value if isinstance(task.category, Category) else task.category
        for key in task.completed_dates:
            total += 1
            by_category[category] = by_category.get(category, 0) + 1
            day = parse_day_key(key)
            if day.year == year and day.month == month:
                by_day[day.day - 1] += 1

    return CompletionReport(
        total_tasks=len(tasks),
        total_completions=total,
        by_category={k: v for k, v in by_category.items() if v > 0},
        by_day=by_day,
    )

"""Completion and gamification — pure business logic.

Completing an occurrence toggles its calendar-day key on the task and, when
it marks the day done, awards points and advances the streak. Un-completing
never takes points or streak back.

No I/O: callers persist the returned task and profile.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Callable

from src.core.dates import day_key, parse_day_key, to_day, yesterday_of
from src.data.models import Criticality, CustomReward, Task, UserProfile

logger = logging.getLogger(__name__)

BASE_POINTS = 10

_CRITICALITY_BONUS: dict[str, int] = {
    Criticality.URGENT.value: 15,
    Criticality.HIGH.value: 10,
    Criticality.MEDIUM.value: 5,
    Criticality.LOW.value: 0,
}


class InsufficientPointsError(Exception):
    """Raised when a reward costs more points than the profile holds."""


class RewardNotFoundError(KeyError):
    """Raised when redeeming an unknown reward id."""


@dataclass
class CompletionOutcome:
    """Result of a completion toggle."""

    task: Task
    profile: UserProfile
    completed: bool          # True if the day is now marked done
    points_awarded: int = 0


def points_for(criticality: Criticality | str) -> int:
    value = criticality.value if isinstance(criticality, Criticality) else criticality
    return BASE_POINTS + _CRITICALITY_BONUS.get(value, 0)


def _next_streak(profile: UserProfile, day: date) -> int:
    if profile.last_completed_date is None:
        return 1
    last = parse_day_key(profile.last_completed_date)
    if last >= day:
        return profile.streak
    return profile.streak + 1 if last == yesterday_of(day) else 1


def complete(
    task: Task,
    occurrence_date: date | datetime,
    profile: UserProfile,
) -> CompletionOutcome:
    """Toggle completion of the task's occurrence on a calendar day."""
    day = to_day(occurrence_date)
    key = day_key(day)

    if key in task.completed_dates:
        return CompletionOutcome(
            task=uncomplete(task, day), profile=profile, completed=False,
        )

    points = points_for(task.criticality)
    updated_task = replace(task, completed_dates=[*task.completed_dates, key])
    updated_profile = replace(
        profile,
        points=profile.points + points,
        streak=_next_streak(profile, day),
        last_completed_date=key,
    )
    logger.info(
        "Task %s completed for %s: +%d points, streak %d",
        task.id, key, points, updated_profile.streak,
    )
    return CompletionOutcome(
        task=updated_task,
        profile=updated_profile,
        completed=True,
        points_awarded=points,
    )


def uncomplete(task: Task, occurrence_date: date | datetime) -> Task:
    """Remove the day's completion. Points and streak are left as they are."""
    key = day_key(occurrence_date)
    return replace(task, completed_dates=[d for d in task.completed_dates if d != key])


def refresh_streak(profile: UserProfile, today: date | datetime) -> UserProfile:
    """Reset the streak if more than one day has passed without a completion."""
    if profile.last_completed_date is None:
        return profile
    last = parse_day_key(profile.last_completed_date)
    if last < yesterday_of(to_day(today)) and profile.streak != 0:
        logger.info("Streak broken (last completion %s)", profile.last_completed_date)
        return replace(profile, streak=0)
    return profile


def set_profile_name(profile: UserProfile, name: str) -> UserProfile:
    return replace(profile, name=name.strip())


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------


def redeem_reward(
    profile: UserProfile,
    rewards: list[CustomReward],
    reward_id: str,
) -> tuple[UserProfile, list[CustomReward]]:
    """Spend points on a reward; the reward is removed once redeemed."""
    reward = next((r for r in rewards if r.id == reward_id), None)
    if reward is None:
        raise RewardNotFoundError(reward_id)
    if profile.points < reward.cost:
        raise InsufficientPointsError(
            f"'{reward.name}' costs {reward.cost} points, you have {profile.points}"
        )

    logger.info("Reward %s redeemed for %d points", reward.id, reward.cost)
    return (
        replace(profile, points=profile.points - reward.cost),
        [r for r in rewards if r.id != reward_id],
    )


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Badge:
    id: str
    name: str
    description: str
    threshold: Callable[[list[Task], UserProfile], bool]


def _total_completions(tasks: list[Task]) -> int:
    return sum(len(t.completed_dates) for t in tasks)


BADGES: list[Badge] = [
    Badge(
        "b1", "Task Starter", "Complete your first task.",
        lambda tasks, profile: any(t.completed_dates for t in tasks),
    ),
    Badge(
        "b2", "On Fire", "Maintain a 3-day streak.",
        lambda tasks, profile: profile.streak >= 3,
    ),
    Badge(
        "b3", "Week Warrior", "Maintain a 7-day streak.",
        lambda tasks, profile: profile.streak >= 7,
    ),
    Badge(
        "b4", "Productivity Pro", "Complete 25 tasks.",
        lambda tasks, profile: _total_completions(tasks) >= 25,
    ),
    Badge(
        "b5", "Goal Getter", "Earn 1000 points.",
        lambda tasks, profile: profile.points >= 1000,
    ),
    Badge(
        "b6", "Planner Extraordinaire", "Plan tasks for a full month.",
        lambda tasks, profile: len(tasks) > 0,
    ),
]


def unlocked_badges(tasks: list[Task], profile: UserProfile) -> list[Badge]:
    return [b for b in BADGES if b.threshold(tasks, profile)]

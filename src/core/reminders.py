"""Reminder scheduler.

Computes fire times for upcoming occurrences (today and tomorrow) and keeps
one armed timer per ``(task_id, day)`` key. Every change to the task list
triggers ``sync()``, which cancels all armed timers before arming the fresh
set, so edits and deletions never leave stale reminders behind.

The timer backend and the delivery callback are injected; the default
backend runs on the asyncio event loop.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Protocol

from src.core.dates import day_key
from src.core.recurrence import is_finished, make_occurrence, occurs_on
from src.data.models import Task

logger = logging.getLogger(__name__)

ReminderKey = tuple[str, str]   # (task_id, YYYY-MM-DD)


@dataclass
class PendingReminder:
    key: ReminderKey
    fire_at: datetime
    message: str


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerBackend(Protocol):
    """Anything that can run a callback after a delay."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioTimers:
    """Timer backend on the running asyncio event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


def reminder_message(task: Task) -> str:
    return f'Reminder: "{task.title}" is scheduled to start in {task.reminder} minutes.'


def pending_reminders(
    tasks: list[Task],
    now: datetime,
    lookahead_days: int = 2,
) -> list[PendingReminder]:
    """Reminders still due to fire within the lookahead window, by fire time."""
    days = [(now + timedelta(days=i)).date() for i in range(lookahead_days)]
    pending: dict[ReminderKey, PendingReminder] = {}

    for task in tasks:
        if not task.reminder or task.reminder <= 0 or is_finished(task):
            continue
        for day in days:
            if not occurs_on(task, day):
                continue
            occ = make_occurrence(task, day)
            if occ.completed:
                continue
            fire_at = occ.start - timedelta(minutes=task.reminder)
            if fire_at <= now:
                continue
            key = (task.id, day_key(day))
            if key not in pending:
                pending[key] = PendingReminder(key, fire_at, reminder_message(task))

    return sorted(pending.values(), key=lambda r: r.fire_at)


class ReminderScheduler:
    """Owns the set of armed reminder timers for one application session."""

    def __init__(
        self,
        timers: TimerBackend,
        deliver: Callable[[str], Awaitable[None]],
        clock: Callable[[], datetime] = datetime.now,
        lookahead_days: int = 2,
    ) -> None:
        self._timers = timers
        self._deliver = deliver
        self._clock = clock
        self._lookahead_days = lookahead_days
        self._armed: dict[ReminderKey, TimerHandle] = {}
        self._deliveries: set[asyncio.Task] = set()

    @property
    def armed_keys(self) -> set[ReminderKey]:
        return set(self._armed)

    def sync(self, tasks: list[Task]) -> int:
        """Full replace: cancel everything, then arm from scratch."""
        self.cancel_all()
        return self.arm(tasks)

    def arm(self, tasks: list[Task]) -> int:
        """Arm reminders for keys not already armed. Returns how many were armed."""
        now = self._clock()
        armed = 0
        for reminder in pending_reminders(tasks, now, self._lookahead_days):
            if reminder.key in self._armed:
                continue
            delay = (reminder.fire_at - now).total_seconds()
            self._armed[reminder.key] = self._timers.call_later(
                delay, lambda r=reminder: self._fire(r),
            )
            armed += 1
        if armed:
            logger.info("Armed %d reminder(s)", armed)
        return armed

    def cancel_all(self) -> None:
        for handle in self._armed.values():
            handle.cancel()
        self._armed.clear()

    def _fire(self, reminder: PendingReminder) -> None:
        """One-shot: release the key, then hand the message to the sink."""
        self._armed.pop(reminder.key, None)
        logger.info("Reminder fired for %s on %s", *reminder.key)
        delivery = asyncio.get_running_loop().create_task(self._send(reminder))
        self._deliveries.add(delivery)
        delivery.add_done_callback(self._deliveries.discard)

    async def _send(self, reminder: PendingReminder) -> None:
        try:
            await self._deliver(reminder.message)
        except Exception as exc:
            logger.error("Failed to deliver reminder for %s: %s", reminder.key[0], exc)

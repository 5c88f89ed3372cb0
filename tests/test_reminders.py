"""Tests for src.core.reminders — fire times and the armed timer set."""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.core.reminders import (
    AsyncioTimers,
    ReminderScheduler,
    pending_reminders,
    reminder_message,
)
from src.data.models import Repeat

NOW = datetime(2024, 1, 1, 8, 0)


class FakeTimers:
    """Records call_later requests instead of scheduling them."""

    def __init__(self):
        self.calls = []

    def call_later(self, delay, callback):
        handle = MagicMock()
        self.calls.append((delay, callback, handle))
        return handle


# ---------------------------------------------------------------------------
# pending_reminders
# ---------------------------------------------------------------------------


class TestPendingReminders:
    def test_fire_time_is_start_minus_offset(self, make_task):
        task = make_task(due=datetime(2024, 1, 1, 9, 0), reminder=15)
        [r] = pending_reminders([task], NOW)
        assert r.fire_at == datetime(2024, 1, 1, 8, 45)
        assert r.key == ("t1", "2024-01-01")
        assert r.message == reminder_message(task)

    def test_message_text(self, make_task):
        task = make_task(title="Gym", reminder=10)
        assert reminder_message(task) == (
            'Reminder: "Gym" is scheduled to start in 10 minutes.'
        )

    def test_no_reminder_offset_skipped(self, make_task):
        assert pending_reminders([make_task(due=datetime(2024, 1, 1, 9, 0))], NOW) == []

    def test_past_fire_time_skipped(self, make_task):
        task = make_task(due=datetime(2024, 1, 1, 8, 10), reminder=15)
        assert pending_reminders([task], NOW) == []

    def test_finished_task_skipped(self, make_task):
        task = make_task(due=datetime(2024, 1, 1, 9, 0), reminder=15, completed=["2024-01-01"])
        assert pending_reminders([task], NOW) == []

    def test_completed_occurrence_skipped(self, make_task):
        task = make_task(
            due=datetime(2023, 12, 1, 9, 0), repeat=Repeat.DAILY, reminder=15,
            completed=["2024-01-01"],
        )
        [r] = pending_reminders([task], NOW)
        assert r.key == ("t1", "2024-01-02")

    def test_daily_task_covers_today_and_tomorrow(self, make_task):
        task = make_task(due=datetime(2023, 12, 1, 9, 0), repeat=Repeat.DAILY, reminder=5)
        keys = [r.key for r in pending_reminders([task], NOW)]
        assert keys == [("t1", "2024-01-01"), ("t1", "2024-01-02")]

    def test_lookahead_window(self, make_task):
        task = make_task(due=datetime(2023, 12, 1, 9, 0), repeat=Repeat.DAILY, reminder=5)
        assert len(pending_reminders([task], NOW, lookahead_days=1)) == 1

    def test_sorted_by_fire_time(self, make_task):
        tasks = [
            make_task(id="late", due=datetime(2024, 1, 1, 18, 0), reminder=10),
            make_task(id="early", due=datetime(2024, 1, 1, 10, 0), reminder=10),
        ]
        assert [r.key[0] for r in pending_reminders(tasks, NOW)] == ["early", "late"]


# ---------------------------------------------------------------------------
# ReminderScheduler
# ---------------------------------------------------------------------------


class TestReminderScheduler:
    def _scheduler(self, deliver=None):
        timers = FakeTimers()
        scheduler = ReminderScheduler(
            timers, deliver or AsyncMock(), clock=lambda: NOW,
        )
        return scheduler, timers

    def test_arm_uses_delay_until_fire_time(self, make_task):
        scheduler, timers = self._scheduler()
        task = make_task(due=datetime(2024, 1, 1, 9, 0), reminder=15)
        assert scheduler.arm([task]) == 1
        assert timers.calls[0][0] == 45 * 60
        assert scheduler.armed_keys == {("t1", "2024-01-01")}

    def test_arm_skips_already_armed_keys(self, make_task):
        scheduler, timers = self._scheduler()
        task = make_task(due=datetime(2024, 1, 1, 9, 0), reminder=15)
        scheduler.arm([task])
        assert scheduler.arm([task]) == 0
        assert len(timers.calls) == 1

    def test_sync_cancels_stale_timers(self, make_task):
        scheduler, timers = self._scheduler()
        old = make_task(due=datetime(2024, 1, 1, 9, 0), reminder=15)
        scheduler.sync([old])
        old_handle = timers.calls[0][2]

        moved = make_task(due=datetime(2024, 1, 1, 11, 0), reminder=15)
        scheduler.sync([moved])

        old_handle.cancel.assert_called_once()
        assert timers.calls[-1][0] == (2 * 60 + 45) * 60
        assert scheduler.armed_keys == {("t1", "2024-01-01")}

    def test_sync_after_delete_leaves_nothing_armed(self, make_task):
        scheduler, timers = self._scheduler()
        scheduler.sync([make_task(due=datetime(2024, 1, 1, 9, 0), reminder=15)])
        scheduler.sync([])
        timers.calls[0][2].cancel.assert_called_once()
        assert scheduler.armed_keys == set()

    def test_cancel_all(self, make_task):
        scheduler, timers = self._scheduler()
        scheduler.arm([
            make_task(id="a", due=datetime(2024, 1, 1, 9, 0), reminder=15),
            make_task(id="b", due=datetime(2024, 1, 1, 10, 0), reminder=15),
        ])
        scheduler.cancel_all()
        assert all(call[2].cancel.called for call in timers.calls)
        assert scheduler.armed_keys == set()

    @pytest.mark.asyncio
    async def test_fire_delivers_and_releases_key(self, make_task):
        deliver = AsyncMock()
        scheduler, timers = self._scheduler(deliver)
        task = make_task(title="Standup", due=datetime(2024, 1, 1, 9, 0), reminder=15)
        scheduler.arm([task])

        _, callback, _ = timers.calls[0]
        callback()
        await asyncio.sleep(0)

        deliver.assert_awaited_once_with(
            'Reminder: "Standup" is scheduled to start in 15 minutes.'
        )
        assert scheduler.armed_keys == set()
        # The key can be armed again after firing
        assert scheduler.arm([task]) == 1

    @pytest.mark.asyncio
    async def test_delivery_failure_is_logged_not_raised(self, make_task):
        deliver = AsyncMock(side_effect=RuntimeError("network down"))
        scheduler, timers = self._scheduler(deliver)
        scheduler.arm([make_task(due=datetime(2024, 1, 1, 9, 0), reminder=15)])

        timers.calls[0][1]()
        await asyncio.sleep(0)

        deliver.assert_awaited_once()
        assert scheduler.armed_keys == set()


@pytest.mark.asyncio
async def test_asyncio_timers_run_callback():
    fired = asyncio.Event()
    AsyncioTimers().call_later(0, fired.set)
    await asyncio.wait_for(fired.wait(), timeout=1)
    assert fired.is_set()

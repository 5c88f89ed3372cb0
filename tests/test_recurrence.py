"""Tests for src.core.recurrence — occurrence resolution and expansion."""

from datetime import date, datetime, timedelta

import pytest

from src.core.recurrence import (
    RecurrenceRule,
    expand,
    is_finished,
    month_grid,
    occurrences_in_month,
    occurrences_on,
    occurs_on,
    rule_for,
)
from src.data.models import Repeat

# 2024-01-01 is a Monday
ANCHOR = datetime(2024, 1, 1, 9, 0)


# ---------------------------------------------------------------------------
# occurs_on
# ---------------------------------------------------------------------------


class TestOccursOn:
    def test_weekly_same_weekday(self, make_task):
        task = make_task(due=ANCHOR, repeat=Repeat.WEEKLY)
        assert occurs_on(task, date(2024, 1, 8)) is True

    def test_weekly_other_weekday(self, make_task):
        task = make_task(due=ANCHOR, repeat=Repeat.WEEKLY)
        assert occurs_on(task, date(2024, 1, 9)) is False

    def test_daily_every_day_from_anchor(self, make_task):
        task = make_task(due=ANCHOR, repeat=Repeat.DAILY)
        for offset in range(0, 400, 7):
            assert occurs_on(task, date(2024, 1, 1) + timedelta(days=offset))

    def test_daily_never_before_anchor(self, make_task):
        task = make_task(due=ANCHOR, repeat=Repeat.DAILY)
        assert occurs_on(task, date(2023, 12, 31)) is False

    def test_anchor_time_does_not_matter(self, make_task):
        task = make_task(due=datetime(2024, 1, 1, 23, 59), repeat=Repeat.DAILY)
        assert occurs_on(task, datetime(2024, 1, 1, 0, 0)) is True

    def test_none_only_on_anchor_day(self, make_task):
        task = make_task(due=ANCHOR, repeat=Repeat.NONE)
        assert occurs_on(task, date(2024, 1, 1)) is True
        assert occurs_on(task, date(2024, 1, 2)) is False

    def test_monthly_matches_day_of_month(self, make_task):
        task = make_task(due=datetime(2024, 1, 15, 9, 0), repeat=Repeat.MONTHLY)
        assert occurs_on(task, date(2024, 3, 15)) is True
        assert occurs_on(task, date(2024, 3, 16)) is False

    def test_monthly_31st_skips_short_months(self, make_task):
        task = make_task(due=datetime(2024, 1, 31, 9, 0), repeat=Repeat.MONTHLY)
        assert occurs_on(task, date(2024, 2, 29)) is False
        assert occurs_on(task, date(2024, 3, 31)) is True

    def test_unknown_repeat_never_occurs(self, make_task):
        task = make_task(due=ANCHOR, repeat="yearly")
        assert occurs_on(task, date(2024, 1, 1)) is False
        assert rule_for("yearly") is None

    def test_string_repeat_values_are_accepted(self, make_task):
        task = make_task(due=ANCHOR, repeat="weekly")
        assert occurs_on(task, date(2024, 1, 8)) is True


# ---------------------------------------------------------------------------
# expand
# ---------------------------------------------------------------------------


class TestExpand:
    def test_none_inside_range(self, make_task):
        task = make_task(due=ANCHOR, repeat=Repeat.NONE)
        result = expand(task, date(2024, 1, 1), date(2024, 1, 31))
        assert len(result) == 1
        assert result[0].start == ANCHOR

    def test_none_outside_range(self, make_task):
        task = make_task(due=ANCHOR, repeat=Repeat.NONE)
        assert expand(task, date(2024, 2, 1), date(2024, 2, 29)) == []

    def test_daily_range(self, make_task):
        task = make_task(due=ANCHOR, repeat=Repeat.DAILY)
        result = expand(task, date(2024, 1, 10), date(2024, 1, 14))
        assert [o.day for o in result] == [date(2024, 1, d) for d in range(10, 15)]

    def test_daily_range_starting_before_anchor(self, make_task):
        task = make_task(due=datetime(2024, 1, 5, 9, 0), repeat=Repeat.DAILY)
        result = expand(task, date(2024, 1, 1), date(2024, 1, 7))
        assert [o.day.day for o in result] == [5, 6, 7]

    def test_weekly_unaligned_range_start(self, make_task):
        task = make_task(due=ANCHOR, repeat=Repeat.WEEKLY)
        result = expand(task, date(2024, 1, 10), date(2024, 1, 31))
        assert [o.day.day for o in result] == [15, 22, 29]

    def test_weekly_once_per_seven_days(self, make_task):
        task = make_task(due=ANCHOR, repeat=Repeat.WEEKLY)
        for offset in range(0, 60):
            start = date(2024, 1, 1) + timedelta(days=offset)
            result = expand(task, start, start + timedelta(days=6))
            assert len(result) == 1

    def test_monthly_31st_over_february_is_empty(self, make_task):
        task = make_task(due=datetime(2024, 1, 31, 9, 0), repeat=Repeat.MONTHLY)
        assert expand(task, date(2024, 2, 1), date(2024, 2, 29)) == []

    def test_monthly_31st_over_a_year(self, make_task):
        task = make_task(due=datetime(2024, 1, 31, 9, 0), repeat=Repeat.MONTHLY)
        result = expand(task, date(2024, 1, 1), date(2024, 12, 31))
        assert [o.day.month for o in result] == [1, 3, 5, 7, 8, 10, 12]

    def test_monthly_range_starting_mid_month(self, make_task):
        task = make_task(due=datetime(2024, 1, 15, 9, 0), repeat=Repeat.MONTHLY)
        result = expand(task, date(2024, 3, 20), date(2024, 5, 31))
        assert [o.day for o in result] == [date(2024, 4, 15), date(2024, 5, 15)]

    def test_time_of_day_copied_from_anchor(self, make_task):
        task = make_task(due=datetime(2024, 1, 1, 7, 30), repeat=Repeat.DAILY)
        result = expand(task, date(2024, 2, 1), date(2024, 2, 2))
        assert all((o.start.hour, o.start.minute) == (7, 30) for o in result)

    def test_completion_looked_up_per_occurrence_day(self, make_task):
        task = make_task(
            due=ANCHOR, repeat=Repeat.DAILY, completed=["2024-01-02"],
        )
        result = expand(task, date(2024, 1, 1), date(2024, 1, 3))
        assert [o.completed for o in result] == [False, True, False]

    def test_occurrence_ids_are_distinct(self, make_task):
        task = make_task(due=ANCHOR, repeat=Repeat.DAILY)
        result = expand(task, date(2024, 1, 1), date(2024, 1, 5))
        assert len({o.id for o in result}) == 5
        assert all(o.id.startswith("t1-") for o in result)
        assert result[1].key == ("t1", "2024-01-02")

    def test_unknown_repeat_yields_nothing(self, make_task):
        task = make_task(due=ANCHOR, repeat="fortnightly")
        assert expand(task, date(2024, 1, 1), date(2024, 12, 31)) == []

    def test_expand_agrees_with_occurs_on(self, make_task):
        start, end = date(2024, 1, 1), date(2024, 6, 30)
        for repeat in Repeat:
            task = make_task(due=datetime(2024, 1, 30, 8, 0), repeat=repeat)
            expanded = {o.day for o in expand(task, start, end)}
            day, matched = start, set()
            while day <= end:
                if occurs_on(task, day):
                    matched.add(day)
                day += timedelta(days=1)
            assert expanded == matched, repeat


# ---------------------------------------------------------------------------
# Day and month views
# ---------------------------------------------------------------------------


class TestViews:
    def test_occurrences_on_sorted_by_time(self, make_task):
        tasks = [
            make_task(id="late", due=datetime(2024, 1, 1, 15, 0), repeat=Repeat.DAILY),
            make_task(id="early", due=datetime(2024, 1, 1, 7, 0), repeat=Repeat.DAILY),
            make_task(id="other", due=datetime(2024, 1, 2, 8, 0), repeat=Repeat.NONE),
        ]
        result = occurrences_on(tasks, date(2024, 1, 3))
        assert [o.task.id for o in result] == ["early", "late"]
        assert result[0].start == datetime(2024, 1, 3, 7, 0)

    def test_occurrences_in_month(self, make_task):
        tasks = [
            make_task(id="w", due=ANCHOR, repeat=Repeat.WEEKLY),
            make_task(id="n", due=datetime(2024, 1, 20, 10, 0)),
        ]
        result = occurrences_in_month(tasks, 2024, 1)
        assert [o.task.id for o in result].count("w") == 5
        assert [o.task.id for o in result].count("n") == 1

    def test_month_grid(self, make_task):
        tasks = [make_task(due=ANCHOR, repeat=Repeat.WEEKLY)]
        grid = month_grid(tasks, 2024, 1)
        assert sorted(grid) == [1, 8, 15, 22, 29]


class TestIsFinished:
    def test_completed_one_off_is_finished(self, make_task):
        assert is_finished(make_task(completed=["2024-01-01"])) is True

    def test_open_one_off_is_not_finished(self, make_task):
        assert is_finished(make_task()) is False

    @pytest.mark.parametrize("repeat", [Repeat.DAILY, Repeat.WEEKLY, Repeat.MONTHLY])
    def test_recurring_never_finished(self, make_task, repeat):
        assert is_finished(make_task(repeat=repeat, completed=["2024-01-01"])) is False


class TestRuleBase:
    def test_base_rule_is_abstract(self):
        with pytest.raises(TypeError):
            RecurrenceRule()

    def test_incomplete_rule_cannot_be_built(self):
        class OnlyMatches(RecurrenceRule):
            def matches(self, anchor, day):
                return True

        with pytest.raises(TypeError):
            OnlyMatches()

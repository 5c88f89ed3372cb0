"""Tests for src.core.layout — collision groups and column packing."""

import random
from datetime import date, datetime

import pytest

from src.core.layout import (
    TimelineBlock,
    conflicts,
    find_collision_groups,
    layout_day,
    render_timeline,
    vertical_geometry,
)
from src.core.recurrence import make_occurrence

DAY = date(2024, 1, 1)


def _occ(make_task, id, hour, minute, duration):
    task = make_task(id=id, due=datetime(2024, 1, 1, hour, minute), duration=duration)
    return make_occurrence(task, DAY)


def _by_id(blocks):
    return {b.occurrence.task.id: b for b in blocks}


# ---------------------------------------------------------------------------
# conflicts / groups
# ---------------------------------------------------------------------------


class TestConflicts:
    def test_touching_endpoints_do_not_conflict(self, make_task):
        a = TimelineBlock(_occ(make_task, "a", 9, 0, 30), 540, 570)
        b = TimelineBlock(_occ(make_task, "b", 9, 30, 30), 570, 600)
        assert conflicts(a, b) is False

    def test_overlap_conflicts(self, make_task):
        a = TimelineBlock(_occ(make_task, "a", 9, 0, 60), 540, 600)
        b = TimelineBlock(_occ(make_task, "b", 9, 59, 30), 599, 629)
        assert conflicts(a, b) is True
        assert conflicts(b, a) is True

    def test_groups_are_connected_components(self, make_task):
        # a-b overlap, b-c overlap, d stands alone
        occs = [
            _occ(make_task, "a", 9, 0, 60),
            _occ(make_task, "b", 9, 30, 60),
            _occ(make_task, "c", 10, 15, 60),
            _occ(make_task, "d", 14, 0, 30),
        ]
        blocks = [TimelineBlock(o, o.start_minutes, o.end_minutes) for o in occs]
        groups = find_collision_groups(blocks)
        ids = sorted(sorted(b.occurrence.task.id for b in g) for g in groups)
        assert ids == [["a", "b", "c"], ["d"]]


# ---------------------------------------------------------------------------
# layout_day
# ---------------------------------------------------------------------------


class TestLayoutDay:
    def test_three_mutually_overlapping_need_three_columns(self, make_task):
        blocks = _by_id(layout_day([
            _occ(make_task, "a", 9, 0, 60),
            _occ(make_task, "b", 9, 20, 60),
            _occ(make_task, "c", 9, 40, 60),
        ]))
        assert sorted(b.column for b in blocks.values()) == [0, 1, 2]
        assert all(b.columns == 3 for b in blocks.values())
        assert blocks["a"].width == pytest.approx(100 / 3)
        assert blocks["c"].left == pytest.approx(200 / 3)

    def test_back_to_back_share_a_column(self, make_task):
        blocks = _by_id(layout_day([
            _occ(make_task, "a", 9, 0, 30),
            _occ(make_task, "b", 9, 30, 30),
        ]))
        assert blocks["a"].column == blocks["b"].column == 0
        assert blocks["a"].width == blocks["b"].width == 100

    def test_non_overlapping_get_full_width(self, make_task):
        blocks = layout_day([
            _occ(make_task, "a", 8, 0, 30),
            _occ(make_task, "b", 12, 0, 30),
        ])
        assert all(b.width == 100 and b.left == 0 for b in blocks)

    def test_column_reuse_inside_group(self, make_task):
        # a: 9-11, b: 9:30-10, c: 10-10:30 → c reuses b's column
        blocks = _by_id(layout_day([
            _occ(make_task, "a", 9, 0, 120),
            _occ(make_task, "b", 9, 30, 30),
            _occ(make_task, "c", 10, 0, 30),
        ]))
        assert blocks["a"].column == 0
        assert blocks["b"].column == blocks["c"].column == 1
        assert blocks["a"].columns == 2

    def test_separate_groups_do_not_inflate_each_other(self, make_task):
        blocks = _by_id(layout_day([
            _occ(make_task, "a", 9, 0, 60),
            _occ(make_task, "b", 9, 20, 60),
            _occ(make_task, "c", 9, 40, 60),
            _occ(make_task, "x", 15, 0, 60),
            _occ(make_task, "y", 15, 30, 60),
        ]))
        assert blocks["a"].columns == 3
        assert blocks["x"].columns == 2
        assert blocks["y"].width == 50

    def test_ties_place_longer_first(self, make_task):
        blocks = _by_id(layout_day([
            _occ(make_task, "short", 9, 0, 15),
            _occ(make_task, "long", 9, 0, 90),
        ]))
        assert blocks["long"].column == 0
        assert blocks["short"].column == 1

    def test_result_sorted_by_start(self, make_task):
        blocks = layout_day([
            _occ(make_task, "b", 13, 0, 30),
            _occ(make_task, "a", 8, 0, 30),
        ])
        assert [b.occurrence.task.id for b in blocks] == ["a", "b"]

    def test_same_column_never_overlaps_random(self, make_task):
        rng = random.Random(7)
        for _ in range(50):
            occs = [
                _occ(make_task, f"t{i}", rng.randint(6, 20), rng.choice([0, 15, 30, 45]),
                     rng.choice([15, 30, 45, 60, 90]))
                for i in range(12)
            ]
            blocks = layout_day(occs)
            for a in blocks:
                for b in blocks:
                    if a is not b and a.column == b.column and conflicts(a, b):
                        pytest.fail(f"{a} and {b} overlap in column {a.column}")

    def test_column_count_equals_max_overlap(self, make_task):
        rng = random.Random(11)
        for _ in range(30):
            occs = [
                _occ(make_task, f"t{i}", rng.randint(8, 12), rng.choice([0, 20, 40]),
                     rng.choice([20, 40, 60, 120]))
                for i in range(8)
            ]
            blocks = layout_day(occs)
            for group in find_collision_groups(blocks):
                depth = max(
                    sum(1 for b in group if b.start_minutes <= p < b.end_minutes)
                    for p in {b.start_minutes for b in group}
                )
                assert group[0].columns == depth

    def test_empty_day(self):
        assert layout_day([]) == []


# ---------------------------------------------------------------------------
# Geometry and rendering
# ---------------------------------------------------------------------------


class TestGeometry:
    def test_linear_mapping(self):
        assert vertical_geometry(90, 60) == (120.0, 80.0)

    def test_minimum_height(self):
        assert vertical_geometry(0, 5) == (0.0, 20)

    def test_custom_hour_height(self):
        assert vertical_geometry(60, 30, hour_height=100) == (100.0, 50.0)

    def test_block_top_and_height(self, make_task):
        [block] = layout_day([_occ(make_task, "a", 9, 30, 45)])
        assert block.top() == 760.0
        assert block.height() == 60.0


class TestRenderTimeline:
    def test_empty(self):
        assert render_timeline([]) == "No tasks for this day."

    def test_lanes_shown_for_overlaps(self, make_task):
        blocks = layout_day([
            _occ(make_task, "a", 9, 0, 60),
            _occ(make_task, "b", 9, 30, 60),
        ])
        text = render_timeline(blocks)
        assert "09:00-10:00 [1/2] Task a (a)" in text
        assert "    ⬜ 09:30-10:30 [2/2] Task b (b)" in text

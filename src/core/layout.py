"""Daily timeline layout — pure business logic.

Packs the occurrences of one day into side-by-side columns so that no two
overlapping time boxes share a column.

1. Two blocks conflict when their half-open [start, end) ranges overlap.
2. Connected components of the conflict graph form collision groups,
   each laid out independently.
3. Inside a group, blocks sorted by start (longer first on ties) go into
   the first column whose last block has ended; otherwise a new column.
4. Every block in a group gets width 100 / columns and left = column * width.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from src.data.models import Occurrence

logger = logging.getLogger(__name__)

HOUR_HEIGHT_PX = 80
MIN_BLOCK_HEIGHT_PX = 20
MINUTES_PER_DAY = 24 * 60


@dataclass
class TimelineBlock:
    """An occurrence placed on the daily timeline."""

    occurrence: Occurrence
    start_minutes: int
    end_minutes: int
    column: int = 0
    columns: int = 1
    width: float = 100.0     # percent of the available width
    left: float = 0.0        # percent offset

    @property
    def duration(self) -> int:
        return self.end_minutes - self.start_minutes

    def top(self, hour_height: int = HOUR_HEIGHT_PX) -> float:
        return vertical_geometry(self.start_minutes, self.duration, hour_height)[0]

    def height(self, hour_height: int = HOUR_HEIGHT_PX) -> float:
        return vertical_geometry(self.start_minutes, self.duration, hour_height)[1]


def vertical_geometry(
    start_minutes: int,
    duration: int,
    hour_height: int = HOUR_HEIGHT_PX,
    min_height: int = MIN_BLOCK_HEIGHT_PX,
) -> tuple[float, float]:
    """Return (top, height) in pixels for a time box."""
    top = (start_minutes / 60) * hour_height
    height = max((duration / 60) * hour_height, min_height)
    return top, height


def conflicts(a: TimelineBlock, b: TimelineBlock) -> bool:
    """Half-open overlap: touching endpoints do not conflict."""
    return a.start_minutes < b.end_minutes and a.end_minutes > b.start_minutes


def find_collision_groups(blocks: list[TimelineBlock]) -> list[list[TimelineBlock]]:
    """Split blocks into connected components of the conflict graph."""
    adjacency: list[list[int]] = [[] for _ in blocks]
    for i, a in enumerate(blocks):
        for j in range(i + 1, len(blocks)):
            if conflicts(a, blocks[j]):
                adjacency[i].append(j)
                adjacency[j].append(i)

    visited: set[int] = set()
    groups: list[list[TimelineBlock]] = []
    for i in range(len(blocks)):
        if i in visited:
            continue
        visited.add(i)
        stack = [i]
        members: list[int] = []
        while stack:
            u = stack.pop()
            members.append(u)
            for v in adjacency[u]:
                if v not in visited:
                    visited.add(v)
                    stack.append(v)
        groups.append([blocks[k] for k in sorted(members)])
    return groups


def _placement_order(block: TimelineBlock) -> tuple[int, int]:
    return (block.start_minutes, -block.duration)


def assign_columns(group: list[TimelineBlock]) -> int:
    """Greedy first-fit column assignment. Returns the column count."""
    columns: list[TimelineBlock] = []  # last block placed in each column
    for block in sorted(group, key=_placement_order):
        for index, last in enumerate(columns):
            if last.end_minutes <= block.start_minutes:
                block.column = index
                columns[index] = block
                break
        else:
            block.column = len(columns)
            columns.append(block)

    count = len(columns)
    for block in group:
        block.columns = count
        block.width = 100 / count
        block.left = block.column * block.width
    return count


def layout_day(occurrences: list[Occurrence]) -> list[TimelineBlock]:
    """Lay out one day's occurrences; result is ordered by start time."""
    blocks = [
        TimelineBlock(
            occurrence=occ,
            start_minutes=occ.start_minutes,
            end_minutes=occ.end_minutes,
        )
        for occ in occurrences
    ]
    blocks.sort(key=_placement_order)

    for group in find_collision_groups(blocks):
        count = assign_columns(group)
        if count > 1:
            logger.debug(
                "Collision group of %d blocks laid out in %d columns", len(group), count,
            )
    return blocks


# ---------------------------------------------------------------------------
# Text rendering (used by the bot)
# ---------------------------------------------------------------------------


def _hhmm(minutes: int) -> str:
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def render_timeline(blocks: list[TimelineBlock]) -> str:
    """Render laid-out blocks as a monospace list, one line per block.

    Side-by-side columns are shown as indentation so overlapping tasks are
    visibly parallel.
    """
    if not blocks:
        return "No tasks for this day."

    lines = []
    for block in blocks:
        occ = block.occurrence
        mark = "✅" if occ.completed else "⬜"
        lane = f"[{block.column + 1}/{block.columns}] " if block.columns > 1 else ""
        indent = "    " * block.column
        lines.append(
            f"{indent}{mark} {_hhmm(block.start_minutes)}-{_hhmm(block.end_minutes)} "
            f"{lane}{occ.title} ({occ.task.id})"
        )
    return "\n".join(lines)

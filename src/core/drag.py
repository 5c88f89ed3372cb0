"""Drag-to-reschedule on the daily timeline.

An explicit state machine: IDLE -> DRAGGING -> COMMITTING -> IDLE.
Only the time-of-day of the stored task's anchor changes on commit; the
anchor date is kept so recurring tasks keep their cadence.

The pointer capture taken when a drag begins is released on every exit
path: drop, cancel, or an exception inside ``session()``.
"""

from __future__ import annotations

import logging
import math
from contextlib import contextmanager
from dataclasses import replace
from enum import Enum
from typing import Callable, Iterator, Protocol

from src.core.layout import HOUR_HEIGHT_PX, TimelineBlock
from src.data.models import Task

logger = logging.getLogger(__name__)

SNAP_MINUTES = 15


def snap_to_grid(minutes: int, snap_minutes: int = SNAP_MINUTES) -> int:
    """Round minutes-since-midnight to the snap grid, clamped to the day."""
    snapped = round(minutes / snap_minutes) * snap_minutes
    last_slot = (24 * 60 - 1) // snap_minutes * snap_minutes
    return max(0, min(snapped, last_slot))


def move_to_time(task: Task, hour: int, minute: int) -> Task:
    """Rewrite the anchor's time-of-day; the anchor date is kept."""
    return replace(
        task,
        due_date=task.due_date.replace(hour=hour, minute=minute, second=0, microsecond=0),
    )


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    COMMITTING = "committing"


class DragError(Exception):
    """Raised when a drag operation is called in the wrong state."""


class PointerCapture(Protocol):
    """Exclusive pointer input held for the duration of a drag."""

    def grab(self) -> None: ...

    def release(self) -> None: ...


class TimelineDrag:
    """Drag state for one timeline."""

    def __init__(
        self,
        load_task: Callable[[str], Task | None],
        on_commit: Callable[[Task], None],
        capture: PointerCapture | None = None,
        hour_height: int = HOUR_HEIGHT_PX,
        snap_minutes: int = SNAP_MINUTES,
    ) -> None:
        self._load_task = load_task
        self._on_commit = on_commit
        self._capture = capture
        self._hour_height = hour_height
        self._snap_px = (snap_minutes / 60) * hour_height

        self.state = DragState.IDLE
        self.block: TimelineBlock | None = None
        self.original_top = 0.0
        self.new_top = 0.0
        self._origin_y = 0.0
        self._grabbed = False

    def begin(self, block: TimelineBlock, pointer_y: float) -> None:
        if self.state is not DragState.IDLE:
            raise DragError(f"Cannot begin a drag while {self.state.value}")
        if block.occurrence.completed:
            raise DragError("Completed occurrences cannot be moved")

        if self._capture is not None:
            self._capture.grab()
            self._grabbed = True

        self.block = block
        self.original_top = block.top(self._hour_height)
        self.new_top = self.original_top
        self._origin_y = pointer_y
        self.state = DragState.DRAGGING

    def move(self, pointer_y: float) -> float:
        """Follow the pointer; returns the snapped, clamped top in pixels."""
        if self.state is not DragState.DRAGGING or self.block is None:
            raise DragError("No drag in progress")

        raw_top = self.original_top + (pointer_y - self._origin_y)
        block_height = (self.block.duration / 60) * self._hour_height
        max_top = 24 * self._hour_height - block_height

        snapped = round(raw_top / self._snap_px) * self._snap_px
        if snapped > max_top:
            snapped = math.floor(max_top / self._snap_px) * self._snap_px
        self.new_top = max(0.0, snapped)
        return self.new_top

    def drop(self) -> Task | None:
        """Commit the new time. Returns the updated task, or None if unchanged."""
        if self.state is not DragState.DRAGGING or self.block is None:
            raise DragError("No drag in progress")

        self.state = DragState.COMMITTING
        try:
            if self.new_top == self.original_top:
                return None
            return self._commit(self.block, self.new_top)
        finally:
            self._reset()

    def cancel(self) -> None:
        """Abandon the drag without committing anything."""
        if self.state is not DragState.IDLE:
            logger.debug("Drag cancelled")
        self._reset()

    @contextmanager
    def session(self, block: TimelineBlock, pointer_y: float) -> Iterator[TimelineDrag]:
        """Scope a drag: normal exit drops, an exception cancels."""
        self.begin(block, pointer_y)
        try:
            yield self
        except BaseException:
            self.cancel()
            raise
        else:
            if self.state is DragState.DRAGGING:
                self.drop()
        finally:
            self._release()

    def time_at(self, top: float) -> tuple[int, int]:
        """Convert a top offset in pixels to (hour, minute)."""
        total = round((top / self._hour_height) * 60)
        return total // 60, total % 60

    def _commit(self, block: TimelineBlock, top: float) -> Task | None:
        task = self._load_task(block.occurrence.task.id)
        if task is None:
            logger.warning("Dragged task %s no longer exists", block.occurrence.task.id)
            return None

        hour, minute = self.time_at(top)
        updated = move_to_time(task, hour, minute)
        self._on_commit(updated)
        logger.info("Task %s moved to %02d:%02d", task.id, hour, minute)
        return updated

    def _release(self) -> None:
        if self._grabbed and self._capture is not None:
            self._grabbed = False
            self._capture.release()

    def _reset(self) -> None:
        self._release()
        self.state = DragState.IDLE
        self.block = None

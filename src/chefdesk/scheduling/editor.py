"""
Interactive timeline editor.

Holds the live task list for one session and turns pointer events into
constraint-respecting moves. Per gesture:

    IDLE --down on block--> PRESSED --move > threshold--> DRAGGING
      ^                        |                             |
      +------- up / leave -----+-----------------------------+

A press released without crossing the threshold is a click and selects the
task. While dragging, every move recomputes the start from the cumulative
displacement since pointer-down, clamps the block inside the window, and
snaps it. Durations never change and other tasks are never pushed around;
overlaps stay visible for the chef to resolve.

The change listener fires once per committed edit (drag completion,
replace), never per intermediate move.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from chefdesk.scheduling.entities import ScheduleTask, validate_tasks
from chefdesk.scheduling.errors import ValidationError
from chefdesk.scheduling.timemodel import (
    DEFAULT_SNAP_MINUTES,
    TimeWindow,
    duration_to_proportion,
    hour_ticks,
    offset_to_time,
    parse_clock,
    time_to_offset,
)

logger = logging.getLogger(__name__)

TASK_COLORS = ("orange", "green", "purple", "blue", "pink", "yellow", "red", "indigo")

ChangeListener = Callable[[list[ScheduleTask]], None]


class DragPhase(str, Enum):
    IDLE = "idle"
    PRESSED = "pressed"
    DRAGGING = "dragging"


class GestureOutcome(str, Enum):
    """What a finished gesture amounted to."""

    NONE = "none"
    SELECTED = "selected"
    MOVED = "moved"


@dataclass
class _Gesture:
    task_id: str
    origin_x: float
    origin_start: int  # minutes since midnight, pre-drag
    dragging: bool = False


@dataclass(frozen=True)
class TaskBlock:
    """A task positioned on the shared time axis (percent of axis width)."""

    task_id: str
    display_name: str
    start_time: str
    end_time: str
    duration_minutes: int
    left_pct: float
    width_pct: float
    color: str
    selected: bool
    active: bool

    @property
    def title(self) -> str:
        return f"{self.display_name}\n{self.start_time} - {self.end_time}\n{self.duration_minutes} minutes"


class TimelineEditor:
    """Stateful, pointer-driven editor for one schedule."""

    def __init__(
        self,
        window: TimeWindow,
        snap_minutes: int = DEFAULT_SNAP_MINUTES,
        drag_threshold_px: float = 5,
        on_change: ChangeListener | None = None,
    ):
        self.window = window
        self.snap_minutes = snap_minutes
        self.drag_threshold_px = drag_threshold_px
        self._on_change = on_change
        self._tasks: list[ScheduleTask] = []
        self._gesture: _Gesture | None = None
        self._selected: str | None = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def tasks(self) -> list[ScheduleTask]:
        return list(self._tasks)

    @property
    def phase(self) -> DragPhase:
        if self._gesture is None:
            return DragPhase.IDLE
        return DragPhase.DRAGGING if self._gesture.dragging else DragPhase.PRESSED

    @property
    def selected_task_id(self) -> str | None:
        return self._selected

    def set_change_listener(self, listener: ChangeListener | None) -> None:
        self._on_change = listener

    def _index_of(self, task_id: str) -> int | None:
        for i, task in enumerate(self._tasks):
            if task.task_id == task_id:
                return i
        return None

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.tasks)

    # -------------------------------------------------------------------------
    # Whole-list updates
    # -------------------------------------------------------------------------

    def load(self, raw_tasks: list) -> None:
        """
        Show a stored schedule. All or nothing: if any task is invalid the
        editor is left empty and ValidationError is raised. Does not fire
        the change listener.
        """
        self._gesture = None
        self._selected = None
        try:
            self._tasks = validate_tasks(raw_tasks, self.window)
        except ValidationError:
            self._tasks = []
            raise

    def replace(self, tasks: list[ScheduleTask]) -> None:
        """Swap in a freshly generated schedule and fire the change listener."""
        validated = validate_tasks(tasks, self.window)
        self._gesture = None
        if self._selected is not None and all(t.task_id != self._selected for t in validated):
            self._selected = None
        self._tasks = validated
        self._notify()

    def clear(self) -> None:
        self._tasks = []
        self._gesture = None
        self._selected = None

    def remove_task(self, task_id: str) -> bool:
        """Drop one task from the schedule (its item left the prep list)."""
        index = self._index_of(task_id)
        if index is None:
            return False
        if self._gesture is not None and self._gesture.task_id == task_id:
            self._gesture = None
        if self._selected == task_id:
            self._selected = None
        del self._tasks[index]
        self._notify()
        return True

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    def select(self, task_id: str | None) -> None:
        """Select exactly one task (or none). Unknown ids clear the selection."""
        if task_id is not None and self._index_of(task_id) is None:
            task_id = None
        self._selected = task_id

    # -------------------------------------------------------------------------
    # Pointer events
    # -------------------------------------------------------------------------

    def pointer_down(self, task_id: str, x: float) -> bool:
        """Press on a task block. Returns False if the task is not on the timeline."""
        index = self._index_of(task_id)
        if index is None:
            return False
        if self._gesture is not None:
            self._finish_gesture(allow_select=False)
        self._gesture = _Gesture(
            task_id=task_id,
            origin_x=x,
            origin_start=self._tasks[index].start_minutes,
        )
        return True

    def pointer_move(self, x: float, surface_width: float) -> ScheduleTask | None:
        """
        Pointer moved over the drag surface.

        Returns the task's new placement if it moved, otherwise None.
        """
        gesture = self._gesture
        if gesture is None or surface_width <= 0:
            return None

        delta_x = x - gesture.origin_x
        if not gesture.dragging:
            if abs(delta_x) <= self.drag_threshold_px:
                return None
            gesture.dragging = True

        index = self._index_of(gesture.task_id)
        if index is None:
            self._gesture = None
            return None
        task = self._tasks[index]

        delta_minutes = delta_x / surface_width * self.window.length_minutes
        new_start = self._place(gesture.origin_start + delta_minutes, task.duration_minutes)
        if new_start == task.start_minutes:
            return None

        moved = task.moved_to(new_start)
        self._tasks[index] = moved
        return moved

    def pointer_up(self) -> GestureOutcome:
        """Release: commit a drag, or treat a plain press as a click."""
        return self._finish_gesture(allow_select=True)

    def pointer_leave(self) -> GestureOutcome:
        """Pointer left the drag surface: end the gesture without selecting."""
        return self._finish_gesture(allow_select=False)

    def _finish_gesture(self, allow_select: bool) -> GestureOutcome:
        gesture = self._gesture
        self._gesture = None
        if gesture is None:
            return GestureOutcome.NONE

        if gesture.dragging:
            index = self._index_of(gesture.task_id)
            if index is not None and self._tasks[index].start_minutes != gesture.origin_start:
                logger.debug(f"Moved {gesture.task_id} to {self._tasks[index].start_time}")
                self._notify()
                return GestureOutcome.MOVED
            return GestureOutcome.NONE

        if allow_select:
            self.select(gesture.task_id)
            return GestureOutcome.SELECTED
        return GestureOutcome.NONE

    def dispose(self) -> None:
        """Drop any in-progress gesture and the change listener."""
        self._gesture = None
        self._on_change = None

    # -------------------------------------------------------------------------
    # Geometry
    # -------------------------------------------------------------------------

    def _place(self, candidate_start: float, duration: int) -> int:
        """Clamp a candidate start (minutes since midnight) into the window and snap it."""
        window = self.window
        max_offset = window.length_minutes - duration
        offset = min(max(candidate_start - window.start_minutes, 0), max_offset)
        start = parse_clock(offset_to_time(offset, window, self.snap_minutes))

        # Snapping can push the block past either edge; walk back onto the grid.
        latest = window.end_minutes - duration
        step = max(1, self.snap_minutes)
        if start > latest:
            start = (latest // step) * step
            if start < window.start_minutes:
                start = latest
        if start < window.start_minutes:
            start = -(-window.start_minutes // step) * step
            if start > latest:
                start = window.start_minutes
        return start

    def layout(self) -> list[TaskBlock]:
        """Blocks positioned as percentages of the axis width, in list order."""
        active = self._gesture.task_id if self._gesture is not None else None
        blocks = []
        for index, task in enumerate(self._tasks):
            left = time_to_offset(task.start_time, self.window) / self.window.length_minutes
            blocks.append(
                TaskBlock(
                    task_id=task.task_id,
                    display_name=task.display_name,
                    start_time=task.start_time,
                    end_time=task.end_time,
                    duration_minutes=task.duration_minutes,
                    left_pct=round(left * 100, 4),
                    width_pct=round(duration_to_proportion(task.duration_minutes, self.window) * 100, 4),
                    color=TASK_COLORS[index % len(TASK_COLORS)],
                    selected=task.task_id == self._selected,
                    active=task.task_id == active,
                )
            )
        return blocks

    def axis(self) -> list[str]:
        return hour_ticks(self.window)

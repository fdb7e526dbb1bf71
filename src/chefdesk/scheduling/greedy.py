"""Deterministic layout strategy.

Longest task first; each task takes the earliest snapped start where none of
its equipment tags is already busy. Tasks without tags run in parallel from
the window start. The result is serialized in the same wire shape the chat
model returns so it goes through the identical parse/validate path.
"""

import json
import logging

from chefdesk.scheduling.entities import ScheduleTaskRequest
from chefdesk.scheduling.errors import ConstraintViolation
from chefdesk.scheduling.timemodel import DEFAULT_SNAP_MINUTES, TimeWindow, format_clock

logger = logging.getLogger(__name__)


def _ceil_to_snap(minutes: int, snap: int) -> int:
    if snap <= 1:
        return minutes
    r = minutes % snap
    if r == 0:
        return minutes
    return minutes + (snap - r)


def _overlaps(start: int, end: int, busy: list[tuple[int, int]]) -> bool:
    return any(start < b_end and b_start < end for b_start, b_end in busy)


def _normalize_tag(tag: str) -> str:
    return tag.strip().lower()


class GreedyLayoutStrategy:
    """Equipment-aware longest-first placement."""

    name = "greedy"

    def __init__(self, snap_minutes: int = DEFAULT_SNAP_MINUTES):
        self.snap_minutes = snap_minutes

    def place(self, requests: list[ScheduleTaskRequest], window: TimeWindow) -> list[dict]:
        """Return wire-format elements ordered by start time."""
        busy: dict[str, list[tuple[int, int]]] = {}
        placed: list[tuple[int, int, dict]] = []

        order = sorted(enumerate(requests), key=lambda pair: (-pair[1].duration_minutes, pair[0]))
        for index, req in order:
            duration = req.duration_minutes
            if duration > window.length_minutes:
                raise ConstraintViolation(
                    f"{req.display_name} ({duration} min) does not fit in {window.start}-{window.end}"
                )

            tags = {_normalize_tag(t) for t in req.equipment_tags if t.strip()}
            start = self._earliest_free(duration, tags, busy, window)
            if start is None:
                # Every slot clashes on some tag; overlap at the window start rather than fail.
                logger.warning(f"No conflict-free slot for {req.display_name}; overlapping equipment use")
                start = window.start_minutes

            for tag in tags:
                busy.setdefault(tag, []).append((start, start + duration))

            placed.append(
                (
                    start,
                    index,
                    {
                        "menuItemId": req.task_id,
                        "menuItemName": req.display_name,
                        "startTime": format_clock(start),
                        "endTime": format_clock(start + duration),
                        "duration": duration,
                    },
                )
            )

        placed.sort(key=lambda p: (p[0], p[1]))
        return [element for _, _, element in placed]

    def _earliest_free(
        self,
        duration: int,
        tags: set[str],
        busy: dict[str, list[tuple[int, int]]],
        window: TimeWindow,
    ) -> int | None:
        start = _ceil_to_snap(window.start_minutes, self.snap_minutes)
        latest = window.end_minutes - duration
        if start > latest:
            # Window start is off-grid and the task only fits unsnapped
            start = window.start_minutes

        step = max(1, self.snap_minutes)
        while start <= latest:
            if not any(_overlaps(start, start + duration, busy.get(tag, [])) for tag in tags):
                return start
            start += step
        return None

    async def propose(self, requests: list[ScheduleTaskRequest], window: TimeWindow) -> str:
        return json.dumps({"schedule": self.place(requests, window)})

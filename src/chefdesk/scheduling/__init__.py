"""
Chefdesk - Production scheduling.

Time model, schedule entities, layout requests, the timeline editor, and
debounced persistence of the latest schedule.
"""

from chefdesk.scheduling.editor import DragPhase, GestureOutcome, TaskBlock, TimelineEditor
from chefdesk.scheduling.entities import (
    AvailableItem,
    Recipe,
    ScheduleRecord,
    ScheduleTask,
    ScheduleTaskRequest,
)
from chefdesk.scheduling.errors import (
    ConstraintViolation,
    MalformedResponse,
    ScheduleError,
    TransientIOError,
    ValidationError,
)
from chefdesk.scheduling.requester import request_schedule
from chefdesk.scheduling.timemodel import (
    TimeWindow,
    duration_to_proportion,
    offset_to_time,
    time_to_offset,
)

__all__ = [
    "AvailableItem",
    "ConstraintViolation",
    "DragPhase",
    "GestureOutcome",
    "MalformedResponse",
    "Recipe",
    "ScheduleError",
    "ScheduleRecord",
    "ScheduleTask",
    "ScheduleTaskRequest",
    "TaskBlock",
    "TimeWindow",
    "TimelineEditor",
    "TransientIOError",
    "ValidationError",
    "duration_to_proportion",
    "offset_to_time",
    "request_schedule",
    "time_to_offset",
]

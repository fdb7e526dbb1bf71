"""
Duration/time model for the production schedule.

Wall-clock times are "HH:MM" strings on a single day, minute resolution.
A TimeWindow is the bounded interval every task must fit into; offsets are
minutes elapsed since the window start.

All functions here are pure coordinate transforms. Clamping to the window is
the caller's job.
"""

import math
import re

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from chefdesk.scheduling.errors import ValidationError

MINUTES_PER_DAY = 24 * 60
DEFAULT_SNAP_MINUTES = 15

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_clock(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight. "24:00" is allowed as a day end."""
    if not isinstance(value, str):
        raise ValidationError(f"Time must be an 'HH:MM' string, got {value!r}")

    match = _CLOCK_RE.match(value.strip())
    if not match:
        raise ValidationError(f"Time must be in 'HH:MM' format, got {value!r}")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes > 59:
        raise ValidationError(f"Minute field out of range in {value!r}")

    total = hours * 60 + minutes
    if total > MINUTES_PER_DAY:
        raise ValidationError(f"Time {value!r} is past the end of the day")
    return total


def format_clock(minutes: int) -> str:
    """Convert minutes since midnight to zero-padded "HH:MM"."""
    hours, mins = divmod(int(minutes), 60)
    return f"{hours:02d}:{mins:02d}"


class TimeWindow(BaseModel):
    """The wall-clock interval (e.g. 06:00-17:00) a schedule must fit into."""

    model_config = ConfigDict(frozen=True)

    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _check_clock(cls, value: str) -> str:
        try:
            return format_clock(parse_clock(value))
        except ValidationError as e:
            raise ValueError(str(e)) from e

    @model_validator(mode="after")
    def _check_order(self) -> "TimeWindow":
        if parse_clock(self.start) >= parse_clock(self.end):
            raise ValueError(f"Window start {self.start} must be before end {self.end}")
        return self

    @property
    def start_minutes(self) -> int:
        return parse_clock(self.start)

    @property
    def end_minutes(self) -> int:
        return parse_clock(self.end)

    @property
    def length_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    def contains(self, start_time: str, end_time: str) -> bool:
        """True if [start_time, end_time] lies fully inside the window."""
        return self.start_minutes <= parse_clock(start_time) and parse_clock(end_time) <= self.end_minutes


def build_window(start: str, end: str) -> TimeWindow:
    """Build a TimeWindow, reporting bad input as a scheduling ValidationError."""
    try:
        return TimeWindow(start=start, end=end)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid time window {start}-{end}: {e.errors()[0]['msg']}") from e


def time_to_offset(time: str, window: TimeWindow) -> int:
    """Minutes elapsed between window.start and `time`."""
    return parse_clock(time) - window.start_minutes


def snap_minute(minute: float, snap_minutes: int = DEFAULT_SNAP_MINUTES) -> int:
    """Round to the nearest multiple of snap_minutes, halves rounding up."""
    if snap_minutes <= 1:
        return int(math.floor(minute + 0.5))
    return int(math.floor(minute / snap_minutes + 0.5)) * snap_minutes


def offset_to_time(
    minutes: float,
    window: TimeWindow,
    snap_minutes: int = DEFAULT_SNAP_MINUTES,
) -> str:
    """
    Inverse of time_to_offset, snapped to the granularity.

    The minute-of-hour is snapped; if snapping reaches 60 the hour carries
    and the minute field becomes zero.
    """
    absolute = window.start_minutes + minutes
    hours = int(math.floor(absolute / 60))
    minute = snap_minute(absolute - hours * 60, snap_minutes)
    if minute >= 60:
        hours += 1
        minute = 0
    return format_clock(hours * 60 + minute)


def duration_to_proportion(duration: int, window: TimeWindow) -> float:
    """Duration as a fraction of the window length. Layout only, never persisted."""
    fraction = duration / window.length_minutes
    return min(1.0, max(0.0, fraction))


def hour_ticks(window: TimeWindow) -> list[str]:
    """Labels for the timeline header: one per whole hour ("1hr", "2hr", ...)."""
    total_hours = window.length_minutes // 60
    return [f"{hour}hr" for hour in range(1, total_hours + 1)]

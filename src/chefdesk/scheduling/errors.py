"""
Scheduling error taxonomy.

Every failure a scheduling operation can produce is one of these. Callers at
the session/route boundary turn them into notifications; nothing here is
meant to reach the host process unhandled.

"No saved schedule yet" is not an error: loaders return None.
"""


class ScheduleError(Exception):
    """Base class for scheduling failures."""


class ValidationError(ScheduleError):
    """Malformed task shape, non-positive duration, or inconsistent times.

    `invalid_count` is how many tasks were rejected, for user feedback.
    """

    def __init__(self, message: str, invalid_count: int = 1):
        super().__init__(message)
        self.invalid_count = invalid_count


class ConstraintViolation(ScheduleError):
    """The generator changed a fixed duration or left the time window."""


class MalformedResponse(ScheduleError):
    """The generator's output could not be parsed into a task list."""


class TransientIOError(ScheduleError):
    """Network or storage failure. In-memory state stays authoritative."""

"""
Initial layout requester.

Turns a prep list (ScheduleTaskRequest[]) plus a TimeWindow into an ordered
list of ScheduleTask. Placement itself is delegated to a LayoutStrategy:
by default a chat-completion call, optionally the deterministic greedy
placer. Whatever the strategy returns is treated as untrusted text:

1. Strip markdown fences, parse JSON (bare array or {"schedule"|"tasks": [...]})
2. Check every element's shape
3. Check durations against the request and placement against the window

Any failure aborts the whole request. Nothing is auto-corrected.
"""

import json
import logging
import re
from typing import Any, Protocol, runtime_checkable

from chefdesk.config import settings
from chefdesk.llm.client import call_llm_chat
from chefdesk.observability.langsmith import trace_llm_call
from chefdesk.scheduling.entities import ScheduleTask, ScheduleTaskRequest
from chefdesk.scheduling.errors import (
    ConstraintViolation,
    MalformedResponse,
    ScheduleError,
    TransientIOError,
    ValidationError,
)
from chefdesk.scheduling.timemodel import TimeWindow, format_clock, parse_clock

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You are a professional kitchen production scheduler. You create optimized cooking "
    "schedules that avoid equipment conflicts and maximize efficiency. Always respond with "
    "only valid JSON, no explanations or markdown formatting."
)

# Wire names accepted for each field, first one is what the prompt asks for
_FIELD_NAMES: dict[str, tuple[str, ...]] = {
    "task_id": ("menuItemId", "taskId"),
    "display_name": ("menuItemName", "displayName"),
    "start_time": ("startTime",),
    "end_time": ("endTime",),
    "duration_minutes": ("duration", "durationMinutes"),
}

_FENCE_OPEN_RE = re.compile(r"```json\s*")
_FENCE_RE = re.compile(r"```\s*")


@runtime_checkable
class LayoutStrategy(Protocol):
    """Proposes a placement for a prep list. Returns raw response text."""

    name: str

    async def propose(self, requests: list[ScheduleTaskRequest], window: TimeWindow) -> str:
        ...


# =============================================================================
# Prompt
# =============================================================================


def build_schedule_prompt(requests: list[ScheduleTaskRequest], window: TimeWindow) -> str:
    """Build the user message describing the scheduling problem."""
    dishes = "".join(
        f"""
{idx}. {req.display_name}
   - Prep Time: {req.prep_minutes} minutes
   - Cook Time: {req.cook_minutes} minutes
   - TOTAL Duration: {req.duration_minutes} minutes (prep + cook)
   - Cooking Methods: {", ".join(req.equipment_tags) or "none"}
   - Menu Item ID: {req.task_id}
"""
        for idx, req in enumerate(requests, start=1)
    )

    return f"""Create an optimized production schedule for the following dishes. The schedule must fit within {window.start} to {window.end}.

DISHES TO SCHEDULE:
{dishes}
SCHEDULING REQUIREMENTS:
1. The duration for each task MUST be exactly the TOTAL Duration shown above (prep time + cook time)
2. Avoid equipment conflicts (same oven/stovetop equipment should not be used simultaneously)
3. Longest/most complex tasks should generally start first
4. Identify opportunities for parallel prep work
5. Keep everything within the {window.start} to {window.end} time window

RESPONSE FORMAT:
Return a JSON object with a "schedule" array using this exact structure (no markdown, no code blocks, just raw JSON):
{{"schedule": [
  {{
    "menuItemId": "string",
    "menuItemName": "string",
    "startTime": "HH:MM",
    "endTime": "HH:MM",
    "duration": number (MUST equal prep time + cook time for each dish)
  }}
]}}

Important:
- startTime and endTime must be in 24-hour format (e.g., "09:30", "14:15")
- duration MUST equal the TOTAL Duration specified for each dish above
- The difference between endTime and startTime must equal the duration"""


# =============================================================================
# Strategies
# =============================================================================


class OpenAILayoutStrategy:
    """Ask a chat-completion model for the layout."""

    name = "openai"

    def __init__(
        self,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ):
        self.model = model or settings.schedule_model
        self.temperature = settings.schedule_temperature if temperature is None else temperature
        self.max_tokens = max_tokens or settings.schedule_max_tokens

    async def propose(self, requests: list[ScheduleTaskRequest], window: TimeWindow) -> str:
        user_prompt = build_schedule_prompt(requests, window)
        async with trace_llm_call(
            "generate_schedule",
            inputs={"tasks": [r.to_wire() for r in requests], "window": window.model_dump()},
            metadata={"model": self.model},
        ) as run:
            content = await call_llm_chat(
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user_prompt},
                ],
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                json_mode=True,
                node_name="schedule",
            )
            run.end(outputs={"content": content})
        return content


def get_layout_strategy(name: str | None = None) -> LayoutStrategy:
    """Strategy by name; defaults to SCHEDULE_LAYOUT_STRATEGY."""
    from chefdesk.scheduling.greedy import GreedyLayoutStrategy

    name = name or settings.schedule_layout_strategy
    if name == "greedy":
        return GreedyLayoutStrategy(snap_minutes=settings.schedule_snap_minutes)
    if name == "openai":
        return OpenAILayoutStrategy()
    raise ValueError(f"Unknown layout strategy: {name}")


# =============================================================================
# Parsing and validation
# =============================================================================


def strip_fences(text: str) -> str:
    """Remove ```json / ``` fencing the model may wrap around its answer."""
    text = _FENCE_OPEN_RE.sub("", text)
    text = _FENCE_RE.sub("", text)
    return text.strip()


def parse_schedule_response(text: str) -> list[Any]:
    """
    Parse generator output into a list of raw task elements.

    Accepts a bare JSON array or an object wrapping it under "schedule" or
    "tasks". Raises MalformedResponse otherwise.
    """
    content = strip_fences(text or "")
    if not content:
        raise MalformedResponse("No response from layout generator")

    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse layout response: {e}; content={content[:200]!r}")
        raise MalformedResponse("Invalid schedule format from layout generator") from e

    if isinstance(parsed, dict):
        parsed = parsed.get("schedule") or parsed.get("tasks")

    if not isinstance(parsed, list) or not parsed:
        raise MalformedResponse("Layout generator returned an invalid or empty schedule")

    return parsed


def _field(item: dict[str, Any], name: str) -> Any:
    for key in _FIELD_NAMES[name]:
        value = item.get(key)
        if value not in (None, ""):
            return value
    return None


def _as_minutes(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def validate_schedule(
    items: list[Any],
    requests: list[ScheduleTaskRequest],
    window: TimeWindow,
) -> list[ScheduleTask]:
    """
    Check raw generator elements against the requests and the window.

    Shape problems raise MalformedResponse. Changed durations, inconsistent
    times, out-of-window placement, and unknown/duplicate/missing tasks raise
    ConstraintViolation.
    """
    by_id = {req.task_id: req for req in requests}
    seen: set[str] = set()
    tasks: list[ScheduleTask] = []

    for item in items:
        if not isinstance(item, dict):
            raise MalformedResponse(f"Schedule element is not an object: {item!r}")

        values = {name: _field(item, name) for name in _FIELD_NAMES}
        missing = [_FIELD_NAMES[name][0] for name, value in values.items() if value is None]
        if missing:
            logger.error(f"Incomplete task in schedule: {item}")
            raise MalformedResponse(f"Layout generator returned incomplete task data (missing {', '.join(missing)})")

        task_id = str(values["task_id"])
        stated = _as_minutes(values["duration_minutes"])
        if stated is None:
            raise MalformedResponse(f"Task {task_id}: duration is not a whole number of minutes")
        try:
            start = parse_clock(values["start_time"])
            end = parse_clock(values["end_time"])
        except ValidationError as e:
            raise MalformedResponse(f"Task {task_id}: {e}") from e

        request = by_id.get(task_id)
        if request is None:
            raise ConstraintViolation(f"Layout generator returned unknown task {task_id}")
        if task_id in seen:
            raise ConstraintViolation(f"Layout generator scheduled {request.display_name} twice")
        seen.add(task_id)

        if stated != request.duration_minutes:
            raise ConstraintViolation(
                f"{request.display_name}: duration changed from {request.duration_minutes} to {stated} min"
            )
        if end - start != request.duration_minutes:
            raise ConstraintViolation(
                f"{request.display_name}: {values['start_time']}-{values['end_time']} does not span "
                f"{request.duration_minutes} min"
            )
        if start < window.start_minutes or end > window.end_minutes:
            raise ConstraintViolation(
                f"{request.display_name}: {values['start_time']}-{values['end_time']} is outside "
                f"{window.start}-{window.end}"
            )

        tasks.append(
            ScheduleTask(
                task_id=task_id,
                display_name=request.display_name,
                start_time=format_clock(start),
                end_time=format_clock(end),
                duration_minutes=request.duration_minutes,
            )
        )

    unscheduled = [req.display_name for req in requests if req.task_id not in seen]
    if unscheduled:
        raise ConstraintViolation(f"Layout generator left out: {', '.join(unscheduled)}")

    return tasks


# =============================================================================
# Entry point
# =============================================================================


async def request_schedule(
    requests: list[ScheduleTaskRequest],
    window: TimeWindow,
    strategy: LayoutStrategy | None = None,
) -> list[ScheduleTask]:
    """
    Produce a validated schedule for the prep list.

    Long-running (a network round trip for the default strategy).

    Raises:
        ValidationError: empty prep list or inconsistent request durations
        MalformedResponse: unparseable generator output
        ConstraintViolation: generator broke a duration or window constraint
        TransientIOError: the generator could not be reached
    """
    if not requests:
        raise ValidationError("Prep list is empty", invalid_count=0)
    for req in requests:
        req.check_consistent()
    if len({req.task_id for req in requests}) != len(requests):
        raise ValidationError("Prep list contains the same item twice")

    strategy = strategy or get_layout_strategy()
    logger.info(f"Requesting layout for {len(requests)} task(s) via {strategy.name} in {window.start}-{window.end}")

    try:
        raw = await strategy.propose(requests, window)
    except ScheduleError:
        raise
    except Exception as e:
        logger.error(f"Layout generation failed: {e}")
        raise TransientIOError(f"Failed to generate schedule: {e}") from e

    tasks = validate_schedule(parse_schedule_response(raw), requests, window)
    logger.info(f"Accepted layout with {len(tasks)} task(s)")
    return tasks

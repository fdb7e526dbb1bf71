"""
Schedule entities - the vocabulary shared by the requester, editor and store.

Python attributes are snake_case; the JSON wire names (aliases) match what the
prep assistant frontend and the layout generator exchange:

    {"menuItemId", "menuItemName", "startTime", "endTime", "duration"}

A ScheduleTask is valid by construction: duration > 0, non-empty id, and
end - start == duration. Anything that fails is rejected at the boundary.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from chefdesk.scheduling.errors import ValidationError
from chefdesk.scheduling.timemodel import TimeWindow, format_clock, parse_clock


class ScheduleTask(BaseModel):
    """One dish's time-blocked placement on the schedule."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    task_id: str = Field(alias="menuItemId")
    display_name: str = Field(alias="menuItemName")
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    duration_minutes: int = Field(alias="duration")

    @model_validator(mode="after")
    def _check_invariants(self) -> "ScheduleTask":
        if not self.task_id or not self.task_id.strip():
            raise ValueError("task id must not be empty")
        if self.duration_minutes <= 0:
            raise ValueError(f"duration must be positive, got {self.duration_minutes}")
        try:
            start, end = parse_clock(self.start_time), parse_clock(self.end_time)
        except ValidationError as e:
            raise ValueError(str(e)) from e
        if end - start != self.duration_minutes:
            raise ValueError(
                f"{self.start_time}-{self.end_time} spans {end - start} min, "
                f"duration says {self.duration_minutes}"
            )
        return self

    @property
    def start_minutes(self) -> int:
        return parse_clock(self.start_time)

    @property
    def end_minutes(self) -> int:
        return parse_clock(self.end_time)

    def moved_to(self, start_minutes: int) -> "ScheduleTask":
        """Same task starting at `start_minutes`. Duration never changes."""
        return self.model_copy(
            update={
                "start_time": format_clock(start_minutes),
                "end_time": format_clock(start_minutes + self.duration_minutes),
            }
        )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class Recipe(BaseModel):
    """The parts of a recipe the prep assistant uses."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    menu_item_id: str | None = None
    prep_time_minutes: int = 0
    cook_time_minutes: int = 0
    cooking_methods: list[str] = []
    ingredients: list[dict[str, Any]] = []
    procedure: str = ""


class AvailableItem(BaseModel):
    """A chef's menu item joined with its recipe (if one exists)."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    description: str | None = None
    cuisine_type: str | None = None
    recipe: Recipe | None = None


class ScheduleTaskRequest(BaseModel):
    """A dish to place, as sent to the layout generator."""

    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(alias="menuItemId")
    display_name: str = Field(alias="menuItemName")
    prep_minutes: int = Field(alias="prepTimeMinutes", ge=0)
    cook_minutes: int = Field(alias="cookTimeMinutes", ge=0)
    duration_minutes: int = Field(alias="totalDuration")
    equipment_tags: list[str] = Field(default_factory=list, alias="cookingMethods")

    @classmethod
    def from_item(cls, item: AvailableItem) -> "ScheduleTaskRequest":
        """Build a request from a menu item; the item must have a recipe."""
        if item.recipe is None:
            raise ValidationError(f"{item.name} has no recipe yet")
        recipe = item.recipe
        try:
            return cls(
                task_id=item.id,
                display_name=item.name,
                prep_minutes=recipe.prep_time_minutes,
                cook_minutes=recipe.cook_time_minutes,
                duration_minutes=recipe.prep_time_minutes + recipe.cook_time_minutes,
                equipment_tags=list(recipe.cooking_methods),
            )
        except PydanticValidationError as e:
            raise ValidationError(f"{item.name}: bad recipe times ({e.errors()[0]['msg']})") from e

    def check_consistent(self) -> None:
        """Total must equal prep + cook and be positive."""
        if self.duration_minutes != self.prep_minutes + self.cook_minutes:
            raise ValidationError(
                f"{self.display_name}: total {self.duration_minutes} min != "
                f"prep {self.prep_minutes} + cook {self.cook_minutes}"
            )
        if self.duration_minutes <= 0:
            raise ValidationError(f"{self.display_name}: duration must be positive")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class ScheduleRecord(BaseModel):
    """The persisted unit: the latest schedule for one owner."""

    owner_id: str
    task_ids: list[str] = []
    tasks: list[ScheduleTask] = []
    window: TimeWindow
    updated_at: datetime | None = None


def validate_task(raw: ScheduleTask | dict[str, Any]) -> ScheduleTask:
    """Return a ScheduleTask or raise ValidationError."""
    if isinstance(raw, ScheduleTask):
        return raw
    try:
        return ScheduleTask.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid task {raw!r}: {e.errors()[0]['msg']}") from e


def filter_valid_tasks(
    raw_tasks: list[ScheduleTask | dict[str, Any]],
    window: TimeWindow,
) -> tuple[list[ScheduleTask], list[str]]:
    """
    Split a task list into the valid tasks and a description of each
    rejected one (bad shape, inconsistent times, or outside the window).
    """
    tasks: list[ScheduleTask] = []
    problems: list[str] = []
    for raw in raw_tasks:
        try:
            task = validate_task(raw)
        except ValidationError as e:
            problems.append(str(e))
            continue
        if not window.contains(task.start_time, task.end_time):
            problems.append(
                f"{task.display_name} ({task.start_time}-{task.end_time}) is outside "
                f"{window.start}-{window.end}"
            )
            continue
        tasks.append(task)
    return tasks, problems


def validate_tasks(
    raw_tasks: list[ScheduleTask | dict[str, Any]],
    window: TimeWindow,
) -> list[ScheduleTask]:
    """
    Validate a whole task list against the entity invariants and the window.

    All or nothing: if any task is invalid, ValidationError is raised with
    the number of offending tasks.
    """
    tasks, problems = filter_valid_tasks(raw_tasks, window)
    if problems:
        raise ValidationError("; ".join(problems), invalid_count=len(problems))
    return tasks

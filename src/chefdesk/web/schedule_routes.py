"""
API endpoints for production scheduling.

- POST /generate-schedule: stateless layout request for an explicit prep list
- /prep/...: the chef's live prep session (prep list, timeline, auto-save)

Core errors never escape as a 500: the stateless endpoint maps them to
HTTP errors, the session endpoints report them as notifications.
"""

import logging
from datetime import datetime
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from chefdesk.db.client import get_authenticated_client
from chefdesk.db.items import filter_items, load_available_items
from chefdesk.scheduling.editor import DragPhase, GestureOutcome
from chefdesk.scheduling.entities import AvailableItem, ScheduleTaskRequest
from chefdesk.scheduling.errors import ScheduleError, ValidationError
from chefdesk.scheduling.persistence import ScheduleRepository
from chefdesk.scheduling.requester import get_layout_strategy, request_schedule
from chefdesk.scheduling.session import PrepSession, SessionStore, default_window
from chefdesk.scheduling.timemodel import build_window
from chefdesk.web.auth import AuthenticatedUser, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["schedule"])

# Live sessions (keyed by user id)
sessions = SessionStore()


# =============================================================================
# Request/Response Models
# =============================================================================


class GenerateScheduleRequest(BaseModel):
    """Body of POST /generate-schedule (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    prep_list: list[ScheduleTaskRequest] = Field(default_factory=list, alias="prepList")
    time_window_start: str = Field("06:00", alias="timeWindowStart")
    time_window_end: str = Field("17:00", alias="timeWindowEnd")


class PointerEvent(BaseModel):
    """One pointer event on the timeline surface."""

    type: Literal["down", "move", "up", "leave"]
    task_id: str | None = None
    x: float = 0
    surface_width: float = 0


class ItemResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    cuisine_type: str | None = None
    has_recipe: bool = False
    in_prep_list: bool = False


class ItemDetailResponse(ItemResponse):
    """Selected item with its full recipe."""

    prep_time_minutes: int | None = None
    cook_time_minutes: int | None = None
    cooking_methods: list[str] = []
    ingredients: list[dict[str, Any]] = []
    procedure: str = ""


class BlockResponse(BaseModel):
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
    title: str


class NotificationResponse(BaseModel):
    level: str
    message: str


class SessionStateResponse(BaseModel):
    """Everything the prep assistant page renders."""

    prep_list: list[ItemResponse]
    selected_item: ItemDetailResponse | None = None
    schedule: list[dict[str, Any]]
    blocks: list[BlockResponse]
    axis: list[str]
    window_start: str
    window_end: str
    drag_phase: str
    is_generating: bool
    is_saving: bool
    last_saved_at: datetime | None = None
    last_error: str | None = None
    restore_message: str | None = None
    notifications: list[NotificationResponse] = []


class PointerResponse(BaseModel):
    accepted: bool
    outcome: str | None = None
    state: SessionStateResponse


class LayoutResponse(BaseModel):
    axis: list[str]
    blocks: list[BlockResponse]


class SaveResponse(BaseModel):
    success: bool
    saved_at: datetime | None = None
    error: str | None = None


# =============================================================================
# Helpers
# =============================================================================


def _item_response(item: AvailableItem, in_prep_list: bool = False) -> ItemResponse:
    return ItemResponse(
        id=item.id,
        name=item.name,
        description=item.description,
        cuisine_type=item.cuisine_type,
        has_recipe=item.recipe is not None,
        in_prep_list=in_prep_list,
    )


def _item_detail(item: AvailableItem) -> ItemDetailResponse:
    recipe = item.recipe
    detail = ItemDetailResponse(**_item_response(item, in_prep_list=True).model_dump())
    if recipe is not None:
        detail.prep_time_minutes = recipe.prep_time_minutes
        detail.cook_time_minutes = recipe.cook_time_minutes
        detail.cooking_methods = list(recipe.cooking_methods)
        detail.ingredients = list(recipe.ingredients)
        detail.procedure = recipe.procedure
    return detail


def _layout(session: PrepSession) -> LayoutResponse:
    blocks = [
        BlockResponse(
            task_id=block.task_id,
            display_name=block.display_name,
            start_time=block.start_time,
            end_time=block.end_time,
            duration_minutes=block.duration_minutes,
            left_pct=block.left_pct,
            width_pct=block.width_pct,
            color=block.color,
            selected=block.selected,
            active=block.active,
            title=block.title,
        )
        for block in session.editor.layout()
    ]
    return LayoutResponse(axis=session.editor.axis(), blocks=blocks)


def session_state(session: PrepSession) -> SessionStateResponse:
    """Snapshot of a session. Drains its pending notifications."""
    selected = session.selected_item
    layout = _layout(session)
    return SessionStateResponse(
        prep_list=[_item_response(item, in_prep_list=True) for item in session.prep_list],
        selected_item=_item_detail(selected) if selected else None,
        schedule=[task.to_wire() for task in session.editor.tasks],
        blocks=layout.blocks,
        axis=layout.axis,
        window_start=session.window.start,
        window_end=session.window.end,
        drag_phase=session.editor.phase.value,
        is_generating=session.is_generating,
        is_saving=session.autosaver.is_saving,
        last_saved_at=session.autosaver.last_saved_at,
        last_error=session.autosaver.last_error,
        restore_message=session.restore_message,
        notifications=[
            NotificationResponse(level=n.level, message=n.message) for n in session.drain_notifications()
        ],
    )


def _require_session(user: AuthenticatedUser) -> PrepSession:
    session = sessions.get(user.id)
    if session is None:
        raise HTTPException(status_code=404, detail="No prep session loaded")
    return session


# =============================================================================
# Stateless generation
# =============================================================================


@router.post("/generate-schedule")
async def generate_schedule(
    req: GenerateScheduleRequest,
    user: AuthenticatedUser = Depends(get_current_user),
):
    """
    Lay out an explicit prep list inside a time window.

    Returns {success: true, schedule: [...]} or a 502 with
    {success: false, error} when the generator's answer is unusable.
    """
    if not req.prep_list:
        raise HTTPException(status_code=400, detail="Prep list is required")

    try:
        window = build_window(req.time_window_start, req.time_window_end)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        tasks = await request_schedule(req.prep_list, window, get_layout_strategy())
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ScheduleError as e:
        logger.error(f"Schedule generation failed for {user.id}: {e}")
        return JSONResponse(status_code=502, content={"success": False, "error": str(e)})

    return {"success": True, "schedule": [task.to_wire() for task in tasks]}


# =============================================================================
# Prep session
# =============================================================================


@router.post("/prep/session", response_model=SessionStateResponse)
async def load_session(user: AuthenticatedUser = Depends(get_current_user)):
    """
    (Re)load the chef's prep session: fetch available items and restore the
    latest saved schedule.
    """
    db = get_authenticated_client(user.access_token)
    try:
        items = await load_available_items(db, user.id)
    except Exception as e:
        logger.error(f"Failed to load menu items for {user.id}: {e}")
        raise HTTPException(status_code=502, detail="Could not load menu items")

    session = PrepSession(
        user.id,
        ScheduleRepository(db, default_window()),
        strategy=get_layout_strategy(),
    )
    sessions.put(session)
    await session.restore(items)
    return session_state(session)


@router.get("/prep/session", response_model=SessionStateResponse)
async def get_session(user: AuthenticatedUser = Depends(get_current_user)):
    return session_state(_require_session(user))


@router.delete("/prep/session")
async def close_session(user: AuthenticatedUser = Depends(get_current_user)):
    """Leave the prep assistant. A pending save still completes."""
    sessions.discard(user.id)
    return {"success": True}


@router.get("/prep/items", response_model=list[ItemResponse])
async def list_items(search: str = "", user: AuthenticatedUser = Depends(get_current_user)):
    session = _require_session(user)
    in_list = {item.id for item in session.prep_list}
    return [_item_response(item, item.id in in_list) for item in filter_items(session.available_items, search)]


@router.post("/prep/items/{item_id}", response_model=SessionStateResponse)
async def add_item(item_id: str, user: AuthenticatedUser = Depends(get_current_user)):
    session = _require_session(user)
    if all(item.id != item_id for item in session.available_items):
        raise HTTPException(status_code=404, detail="Menu item not found")
    session.add_item(item_id)
    return session_state(session)


@router.delete("/prep/items/{item_id}", response_model=SessionStateResponse)
async def remove_item(item_id: str, user: AuthenticatedUser = Depends(get_current_user)):
    session = _require_session(user)
    if not session.remove_item(item_id):
        raise HTTPException(status_code=404, detail="Item is not in the prep list")
    return session_state(session)


@router.post("/prep/items/{item_id}/select", response_model=SessionStateResponse)
async def select_item(item_id: str, user: AuthenticatedUser = Depends(get_current_user)):
    session = _require_session(user)
    if session.select_item(item_id) is None:
        raise HTTPException(status_code=404, detail="Item is not in the prep list")
    return session_state(session)


@router.post("/prep/start-fresh", response_model=SessionStateResponse)
async def start_fresh(user: AuthenticatedUser = Depends(get_current_user)):
    session = _require_session(user)
    session.start_fresh()
    return session_state(session)


@router.post("/prep/generate", response_model=SessionStateResponse)
async def generate(user: AuthenticatedUser = Depends(get_current_user)):
    """Generate a schedule for the current prep list. Failures come back as notifications."""
    session = _require_session(user)
    await session.generate()
    return session_state(session)


@router.post("/prep/pointer", response_model=PointerResponse)
async def pointer(event: PointerEvent, user: AuthenticatedUser = Depends(get_current_user)):
    session = _require_session(user)
    accepted = True
    outcome: GestureOutcome | None = None

    if event.type == "down":
        if not event.task_id:
            raise HTTPException(status_code=400, detail="task_id is required for pointer down")
        accepted = session.pointer_down(event.task_id, event.x)
    elif event.type == "move":
        if event.surface_width <= 0:
            raise HTTPException(status_code=400, detail="surface_width must be positive")
        session.pointer_move(event.x, event.surface_width)
        accepted = session.editor.phase is not DragPhase.IDLE
    elif event.type == "up":
        outcome = session.pointer_up()
    else:
        outcome = session.pointer_leave()

    return PointerResponse(
        accepted=accepted,
        outcome=outcome.value if outcome else None,
        state=session_state(session),
    )


@router.get("/prep/layout", response_model=LayoutResponse)
async def layout(user: AuthenticatedUser = Depends(get_current_user)):
    return _layout(_require_session(user))


@router.post("/prep/save", response_model=SaveResponse)
async def save(user: AuthenticatedUser = Depends(get_current_user)):
    """Save right away (retry after a failed auto-save)."""
    session = _require_session(user)
    if not session.editor.tasks:
        return SaveResponse(success=False, error="Nothing to save")
    success = await session.save_now()
    return SaveResponse(
        success=success,
        saved_at=session.autosaver.last_saved_at,
        error=None if success else session.autosaver.last_error,
    )


@router.post("/prep/restore-message/dismiss", response_model=SessionStateResponse)
async def dismiss_restore_message(user: AuthenticatedUser = Depends(get_current_user)):
    session = _require_session(user)
    session.dismiss_restore_message()
    return session_state(session)

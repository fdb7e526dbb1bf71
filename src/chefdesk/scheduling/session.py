"""
Prep session - one chef's live prep list and production schedule.

Wires the pieces together the way the prep assistant page does:

    available items -> prep list -> request_schedule -> TimelineEditor
                                                        | (edits)
                                                        v
                                              AutoSaver -> ScheduleRepository

The editor owns the live task list. Every collaborator failure is caught
here and becomes a Notification; nothing propagates to the caller.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal

from chefdesk.config import settings
from chefdesk.scheduling.editor import GestureOutcome, TimelineEditor
from chefdesk.scheduling.entities import AvailableItem, ScheduleRecord, ScheduleTask, ScheduleTaskRequest
from chefdesk.scheduling.errors import ScheduleError, TransientIOError, ValidationError
from chefdesk.scheduling.persistence import AutoSaver, RestoreResult, ScheduleRepository, restore_record
from chefdesk.scheduling.requester import LayoutStrategy, request_schedule
from chefdesk.scheduling.timemodel import TimeWindow, build_window

logger = logging.getLogger(__name__)

# Fire-and-forget saves started during dispose()
_background_saves: set[asyncio.Task] = set()


def default_window() -> TimeWindow:
    return build_window(settings.schedule_window_start, settings.schedule_window_end)


@dataclass
class Notification:
    level: Literal["info", "error"]
    message: str


class PrepSession:
    """Live prep list + schedule for one owner."""

    def __init__(
        self,
        owner_id: str,
        repository: ScheduleRepository,
        strategy: LayoutStrategy | None = None,
        window: TimeWindow | None = None,
        snap_minutes: int | None = None,
        drag_threshold_px: float | None = None,
        save_delay: float | None = None,
    ):
        self.owner_id = owner_id
        self.repository = repository
        self.strategy = strategy
        self.window = window or default_window()
        self.editor = TimelineEditor(
            self.window,
            snap_minutes=settings.schedule_snap_minutes if snap_minutes is None else snap_minutes,
            drag_threshold_px=settings.schedule_drag_threshold_px if drag_threshold_px is None else drag_threshold_px,
            on_change=self._on_schedule_change,
        )
        self.autosaver = AutoSaver(
            repository,
            self.snapshot,
            delay=settings.schedule_save_debounce_seconds if save_delay is None else save_delay,
            on_error=self._notify_error,
        )

        self.available_items: list[AvailableItem] = []
        self.prep_list: list[AvailableItem] = []
        self.selected_item_id: str | None = None
        self.restore_message: str | None = None
        self.notifications: list[Notification] = []
        self.is_generating = False

        self._generation = 0
        self._disposed = False

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    def _notify_info(self, message: str) -> None:
        self.notifications.append(Notification("info", message))

    def _notify_error(self, message: str) -> None:
        self.notifications.append(Notification("error", message))

    def drain_notifications(self) -> list[Notification]:
        drained, self.notifications = self.notifications, []
        return drained

    def dismiss_restore_message(self) -> None:
        self.restore_message = None

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def snapshot(self) -> ScheduleRecord | None:
        """The record to persist right now, or None when there is no schedule."""
        tasks = self.editor.tasks
        if not tasks:
            return None
        return ScheduleRecord(
            owner_id=self.owner_id,
            task_ids=[item.id for item in self.prep_list],
            tasks=tasks,
            window=self.window,
        )

    def _on_schedule_change(self, tasks: list[ScheduleTask]) -> None:
        if tasks and not self._disposed:
            self.autosaver.schedule()

    async def save_now(self) -> bool:
        """Explicit save / retry after a failed auto-save."""
        self.autosaver.cancel()
        result = await self.autosaver.save_now()
        return bool(result and result.success)

    async def restore(self, available_items: list[AvailableItem]) -> RestoreResult | None:
        """
        First load: remember the available items and restore the latest
        saved schedule, if there is one.
        """
        self.available_items = list(available_items)
        try:
            loaded = await self.repository.load_latest(self.owner_id)
        except TransientIOError as e:
            self._notify_error(str(e))
            return None

        if loaded is None:
            return None
        if loaded.invalid_task_count:
            self._notify_error(
                f"Dropped {loaded.invalid_task_count} invalid task(s) from your saved schedule"
            )

        result = restore_record(loaded.record, self.available_items)
        self.prep_list = result.prep_items
        self.selected_item_id = None
        if result.window is not None:
            self.window = result.window
            self.editor.window = result.window
        try:
            self.editor.load(result.tasks)
        except ValidationError as e:
            self._notify_error(f"Saved schedule discarded: {e.invalid_count} task(s) were invalid")

        if result.updated_at is not None:
            self.autosaver.last_saved_at = result.updated_at
        self.restore_message = result.message
        if result.message:
            self._notify_info(result.message)
        return result

    # -------------------------------------------------------------------------
    # Prep list
    # -------------------------------------------------------------------------

    def _find(self, items: list[AvailableItem], item_id: str) -> AvailableItem | None:
        return next((item for item in items if item.id == item_id), None)

    @property
    def selected_item(self) -> AvailableItem | None:
        if self.selected_item_id is None:
            return None
        return self._find(self.prep_list, self.selected_item_id)

    def add_item(self, item_id: str) -> bool:
        item = self._find(self.available_items, item_id)
        if item is None or self._find(self.prep_list, item_id) is not None:
            return False
        self.prep_list.append(item)
        return True

    def remove_item(self, item_id: str) -> bool:
        item = self._find(self.prep_list, item_id)
        if item is None:
            return False
        self.prep_list.remove(item)
        if self.selected_item_id == item_id:
            self.selected_item_id = None
        self.editor.remove_task(item_id)
        return True

    def select_item(self, item_id: str) -> AvailableItem | None:
        """Exclusive selection; also highlights the matching timeline block."""
        item = self._find(self.prep_list, item_id)
        if item is None:
            return None
        self.selected_item_id = item_id
        self.editor.select(item_id)
        return item

    def start_fresh(self) -> bool:
        """Clear prep list and schedule. Returns False if there was nothing to clear."""
        if not self.prep_list and not self.editor.tasks:
            return False
        self.abandon_generation()
        self.autosaver.cancel()
        self.prep_list = []
        self.editor.clear()
        self.selected_item_id = None
        self.restore_message = None
        return True

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    def abandon_generation(self) -> None:
        """Any in-flight generation result will be discarded."""
        self._generation += 1
        self.is_generating = False

    async def generate(self) -> list[ScheduleTask] | None:
        """
        Ask for a new layout and replace the schedule with it.

        Returns the new tasks, or None if nothing was applied (refused,
        failed, or abandoned while in flight).
        """
        if self.is_generating:
            self._notify_error("A schedule is already being generated")
            return None
        if not self.prep_list:
            self._notify_error("Add menu items to your prep list before generating a schedule")
            return None

        missing = [item.name for item in self.prep_list if item.recipe is None]
        if missing:
            self._notify_error(
                f"The following items don't have recipes yet: {', '.join(missing)}. "
                "Please add recipes before generating a schedule."
            )
            return None

        self._generation += 1
        token = self._generation
        self.is_generating = True
        try:
            requests = [ScheduleTaskRequest.from_item(item) for item in self.prep_list]
            tasks = await request_schedule(requests, self.window, self.strategy)
        except ScheduleError as e:
            if token == self._generation:
                self._notify_error(f"Error generating schedule: {e}")
            return None
        finally:
            if token == self._generation:
                self.is_generating = False

        if token != self._generation or self._disposed:
            logger.info(f"Discarding stale schedule for {self.owner_id} (generation {token})")
            return None

        self.editor.replace(tasks)
        return tasks

    # -------------------------------------------------------------------------
    # Pointer events
    # -------------------------------------------------------------------------

    def pointer_down(self, task_id: str, x: float) -> bool:
        return self.editor.pointer_down(task_id, x)

    def pointer_move(self, x: float, surface_width: float) -> ScheduleTask | None:
        return self.editor.pointer_move(x, surface_width)

    def pointer_up(self) -> GestureOutcome:
        outcome = self.editor.pointer_up()
        if outcome is GestureOutcome.SELECTED and self.editor.selected_task_id:
            self.select_item(self.editor.selected_task_id)
        return outcome

    def pointer_leave(self) -> GestureOutcome:
        return self.editor.pointer_leave()

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def dispose(self) -> None:
        """
        Leave the session: drop listeners, abandon generation. A pending save
        still completes in the background.
        """
        self._disposed = True
        self.editor.dispose()
        self.abandon_generation()
        if not self.autosaver.pending:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No event loop to flush pending save for {self.owner_id}")
            self.autosaver.cancel()
            return
        task = loop.create_task(self.autosaver.flush())
        _background_saves.add(task)
        task.add_done_callback(_background_saves.discard)


class SessionStore:
    """Process-local cache of live sessions, keyed by owner."""

    def __init__(self):
        self._sessions: dict[str, PrepSession] = {}

    def get(self, owner_id: str) -> PrepSession | None:
        return self._sessions.get(owner_id)

    def put(self, session: PrepSession) -> PrepSession:
        previous = self._sessions.get(session.owner_id)
        if previous is not None and previous is not session:
            previous.dispose()
        self._sessions[session.owner_id] = session
        return session

    def discard(self, owner_id: str) -> None:
        session = self._sessions.pop(owner_id, None)
        if session is not None:
            session.dispose()

    def __len__(self) -> int:
        return len(self._sessions)

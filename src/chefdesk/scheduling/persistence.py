"""
Persistence adapter for production schedules.

- ScheduleRepository: whole-record upsert / latest-record read of the
  `prep_schedules` table, keyed by chef. No partial updates.
- Debouncer / AutoSaver: coalesce bursts of edits into one write of the
  latest snapshot after a quiet period.
- restore_record: rebuild a session from the latest record, dropping tasks
  whose menu item no longer exists.

Storage failures never touch in-memory state; they come back as a failed
SaveResult or a TransientIOError for the caller to surface.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from chefdesk.db.adapter import DatabaseAdapter
from chefdesk.scheduling.entities import AvailableItem, ScheduleRecord, ScheduleTask, filter_valid_tasks
from chefdesk.scheduling.errors import TransientIOError, ValidationError
from chefdesk.scheduling.timemodel import TimeWindow, build_window

logger = logging.getLogger(__name__)

SCHEDULES_TABLE = "prep_schedules"


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _parse_iso(iso_str: str | None) -> datetime | None:
    if not iso_str:
        return None
    try:
        if iso_str.endswith("Z"):
            iso_str = iso_str[:-1] + "+00:00"
        return datetime.fromisoformat(iso_str)
    except ValueError:
        return None


@dataclass
class SaveResult:
    success: bool
    saved_at: datetime | None = None
    error: str | None = None


@dataclass
class LoadedRecord:
    """A stored record plus how many of its tasks failed validation."""

    record: ScheduleRecord
    invalid_task_count: int = 0


# =============================================================================
# Repository
# =============================================================================


def record_to_row(record: ScheduleRecord, updated_at: datetime) -> dict[str, Any]:
    """Column layout of prep_schedules."""
    return {
        "chef_id": record.owner_id,
        "prep_list_items": list(record.task_ids),
        "schedule_data": [task.to_wire() for task in record.tasks],
        "time_window_start": record.window.start,
        "time_window_end": record.window.end,
        "updated_at": updated_at.isoformat(),
    }


def row_to_record(row: dict[str, Any], default_window: TimeWindow) -> LoadedRecord:
    """
    Rebuild a record from a row. Tasks that fail validation are dropped and
    counted; the rest of the record survives.
    """
    try:
        window = build_window(row.get("time_window_start") or "", row.get("time_window_end") or "")
    except ValidationError:
        logger.warning(f"Stored schedule for {row.get('chef_id')} has a bad window; using default")
        window = default_window

    raw_tasks = row.get("schedule_data") or []
    if not isinstance(raw_tasks, list):
        raw_tasks = []
    tasks, problems = filter_valid_tasks(raw_tasks, window)
    if problems:
        logger.warning(
            f"Dropped {len(problems)} invalid task(s) from stored schedule for {row.get('chef_id')}: "
            + "; ".join(problems)
        )

    record = ScheduleRecord(
        owner_id=row["chef_id"],
        task_ids=[str(i) for i in (row.get("prep_list_items") or [])],
        tasks=tasks,
        window=window,
        updated_at=_parse_iso(row.get("updated_at")),
    )
    return LoadedRecord(record=record, invalid_task_count=len(problems))


class ScheduleRepository:
    """Sole reader/writer of durable schedule storage."""

    def __init__(self, db: DatabaseAdapter, default_window: TimeWindow, table: str = SCHEDULES_TABLE):
        self.db = db
        self.default_window = default_window
        self.table = table

    def _upsert(self, row: dict[str, Any]) -> None:
        self.db.table(self.table).upsert(row, on_conflict="chef_id").execute()

    def _select_latest(self, owner_id: str) -> list[dict[str, Any]]:
        result = (
            self.db.table(self.table)
            .select("*")
            .eq("chef_id", owner_id)
            .order("updated_at", desc=True)
            .limit(1)
            .execute()
        )
        if result is None:
            return []
        return result.data or []

    async def save(self, record: ScheduleRecord) -> SaveResult:
        """Upsert the owner's record (create on first save, replace after)."""
        saved_at = _utc_now()
        try:
            await asyncio.to_thread(self._upsert, record_to_row(record, saved_at))
        except Exception as e:
            logger.error(f"Failed to save schedule for {record.owner_id}: {e}")
            return SaveResult(success=False, error=str(e))

        logger.info(f"Saved schedule for {record.owner_id} ({len(record.tasks)} task(s))")
        return SaveResult(success=True, saved_at=saved_at)

    async def load_latest(self, owner_id: str) -> LoadedRecord | None:
        """
        Most recently updated record for the owner, or None on first use.

        Raises:
            TransientIOError: storage could not be read
        """
        try:
            rows = await asyncio.to_thread(self._select_latest, owner_id)
        except Exception as e:
            logger.error(f"Failed to load schedule for {owner_id}: {e}")
            raise TransientIOError(f"Could not load saved schedule: {e}") from e

        if not rows:
            return None
        return row_to_record(rows[0], self.default_window)


# =============================================================================
# Restore
# =============================================================================


@dataclass
class RestoreResult:
    prep_items: list[AvailableItem] = field(default_factory=list)
    tasks: list[ScheduleTask] = field(default_factory=list)
    dropped_task_ids: list[str] = field(default_factory=list)
    window: TimeWindow | None = None
    updated_at: datetime | None = None
    message: str | None = None


def restore_record(record: ScheduleRecord, available_items: list[AvailableItem]) -> RestoreResult:
    """
    Rebuild the prep list and schedule from a stored record.

    Ids that no longer resolve against the available items are dropped
    silently (both from the prep list and the schedule). Scheduled tasks
    are kept only when their item is on the restored prep list.
    """
    items_by_id = {item.id: item for item in available_items}

    prep_items = [items_by_id[i] for i in record.task_ids if i in items_by_id]
    prep_ids = {item.id for item in prep_items}
    tasks = [task for task in record.tasks if task.task_id in prep_ids]
    dropped = sorted(
        {i for i in record.task_ids if i not in items_by_id}
        | {task.task_id for task in record.tasks if task.task_id not in prep_ids}
    )
    if dropped:
        logger.info(f"Dropped {len(dropped)} item(s) from saved schedule: {dropped}")

    message = None
    if prep_items:
        message = f"Loaded your last schedule with {len(prep_items)} item(s)"

    return RestoreResult(
        prep_items=prep_items,
        tasks=tasks,
        dropped_task_ids=dropped,
        window=record.window,
        updated_at=record.updated_at,
        message=message,
    )


# =============================================================================
# Debounced auto-save
# =============================================================================


class Debouncer:
    """
    Run an async callback once `delay` seconds after the last trigger().

    Must be triggered from inside the running event loop.
    """

    def __init__(self, delay: float, callback: Callable[[], Awaitable[Any]]):
        self.delay = delay
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None
        self._running: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        """(Re)start the quiet period."""
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        task = asyncio.get_running_loop().create_task(self._callback())
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def flush(self) -> None:
        """Fire now if a call is pending."""
        if self._handle is None:
            return
        self.cancel()
        await self._callback()

    async def wait_idle(self) -> None:
        """Wait for callbacks already fired to finish."""
        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)


class AutoSaver:
    """
    Debounced writer of the latest schedule snapshot.

    `snapshot` is read at fire time, so a burst of edits persists only the
    state after the last one. Returning None from it skips the write.

    Writes are serialized: a save fired while another is in flight waits for
    it, then snapshots. The last write to land is always the newest state.
    """

    def __init__(
        self,
        repository: ScheduleRepository,
        snapshot: Callable[[], ScheduleRecord | None],
        delay: float = 1.0,
        on_error: Callable[[str], None] | None = None,
    ):
        self.repository = repository
        self._snapshot = snapshot
        self._on_error = on_error
        self._debouncer = Debouncer(delay, self.save_now)
        self._write_lock = asyncio.Lock()
        self.is_saving = False
        self.last_saved_at: datetime | None = None
        self.last_error: str | None = None

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def schedule(self) -> None:
        self._debouncer.trigger()

    def cancel(self) -> None:
        self._debouncer.cancel()

    async def flush(self) -> None:
        await self._debouncer.flush()

    async def wait_idle(self) -> None:
        await self._debouncer.wait_idle()

    async def save_now(self) -> SaveResult | None:
        async with self._write_lock:
            record = self._snapshot()
            if record is None:
                return None

            self.is_saving = True
            try:
                result = await self.repository.save(record)
            finally:
                self.is_saving = False

        if result.success:
            self.last_saved_at = result.saved_at
            self.last_error = None
        else:
            self.last_error = result.error
            if self._on_error is not None:
                self._on_error(f"Error saving schedule: {result.error}")
        return result

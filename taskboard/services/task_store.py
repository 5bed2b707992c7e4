"""In-memory task board cache kept fresh by the backend's change feed.

The store owns three collections (tasks, columns and profiles by id). They are
loaded by a snapshot fetch and then patched by insert/update/delete events.
Change-feed callbacks only enqueue normalized events; a single consumer task
applies them in delivery order, so the collections have exactly one writer.
"""
import asyncio
import contextlib
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from taskboard.config import Settings, settings as default_settings
from taskboard.core.exceptions import BackendError
from taskboard.middleware.metrics import change_events_total, change_feed_connected
from taskboard.schemas.column import TaskColumn
from taskboard.schemas.events import ChangeEvent, EventKind, normalize_change_payload, parse_event_kind
from taskboard.schemas.profile import Profile
from taskboard.schemas.task import Task

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)
RecordLike = Union[Dict[str, Any], BaseModel]


def _record_id(record: RecordLike) -> Optional[str]:
    if isinstance(record, BaseModel):
        value = getattr(record, "id", None)
    elif isinstance(record, dict):
        value = record.get("id")
    else:
        return None
    return None if value is None else str(value)


def _coerce(model: Type[RecordT], record: RecordLike) -> Optional[RecordT]:
    if isinstance(record, model):
        return record
    try:
        return model.model_validate(record)
    except ValidationError as exc:
        logger.warning("Ignoring malformed %s record: %s", model.__name__, exc.errors()[:3])
        return None


def _merge(items: List[RecordT], kind: EventKind, record: RecordT, *, prepend: bool) -> bool:
    """Apply one change to ``items`` in place. Returns False for a no-op."""
    for index, current in enumerate(items):
        if current.id == record.id:
            items[index] = record
            return True
    if kind is EventKind.INSERT:
        if prepend:
            items.insert(0, record)
        else:
            items.append(record)
        return True
    return False


def _remove(items: List[RecordT], record_id: str) -> bool:
    for index, current in enumerate(items):
        if current.id == record_id:
            del items[index]
            return True
    return False


class TaskDataStore:
    """Locally consistent view of the board backed by a gateway and a change feed.

    Use it as an async context manager so subscriptions are always released::

        async with TaskDataStore(gateway, feed) as store:
            store.filtered_view("bug", my_tasks_only=False, current_user_id=None)
    """

    def __init__(self, gateway, feed, config: Settings = default_settings):
        self.gateway = gateway
        self.feed = feed
        self.config = config

        self.tasks: List[Task] = []
        self.columns: List[TaskColumn] = []
        self.profiles: Dict[str, Profile] = {}
        self.is_loading = True
        self.is_connected = False

        self._queue: "asyncio.Queue[ChangeEvent]" = asyncio.Queue()
        self._subscriptions: List[Any] = []
        self._channel_status: Dict[str, bool] = {}
        self._consumer: Optional[asyncio.Task] = None
        self._opened = False
        self._closed = False

    @property
    def synced_tables(self) -> List[str]:
        return [self.config.TASKS_TABLE, self.config.COLUMNS_TABLE]

    @property
    def closed(self) -> bool:
        return self._closed

    # ── lifecycle ────────────────────────────────────────────────────────────

    async def __aenter__(self) -> "TaskDataStore":
        try:
            await self.open()
        except BaseException:
            await self.teardown()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.teardown()

    async def open(self) -> None:
        """Subscribe to the change feed, load snapshots, then start applying events.

        Events that arrive while the snapshot is in flight wait in the queue
        and are applied on top of it.
        """
        if self._closed:
            raise RuntimeError("TaskDataStore has been torn down")
        if self._opened:
            return
        self._opened = True

        logger.info("Setting up change-feed subscriptions for %s", ", ".join(self.synced_tables))
        self._channel_status = {table: False for table in self.synced_tables}
        for table in self.synced_tables:
            try:
                subscription = await self.feed.subscribe(
                    table,
                    self._make_handler(table),
                    self._make_status_handler(table),
                )
            except Exception:
                logger.exception("Subscribing to %s failed, running without live updates for it", table)
                self._channel_status[table] = False
                self.set_connection_status(False)
                continue
            self._subscriptions.append(subscription)

        await self.initialize()
        if self._closed:
            return
        self._consumer = asyncio.create_task(self._consume(), name="taskboard-change-consumer")

    async def teardown(self) -> None:
        """Release subscriptions and stop applying events. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        logger.info("Cleaning up change-feed subscriptions")

        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            try:
                await subscription.unsubscribe()
            except Exception:
                logger.warning("Unsubscribing from %s failed", getattr(subscription, "table", "?"), exc_info=True)

        if self._consumer is not None:
            self._consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer
            self._consumer = None

        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

        self.set_connection_status(False)

    # ── snapshot ─────────────────────────────────────────────────────────────

    async def _fetch(self, table: str, model: Type[RecordT]) -> Optional[List[RecordT]]:
        try:
            rows = await self.gateway.fetch_all(table)
        except BackendError as exc:
            logger.error("Snapshot fetch of %s failed, keeping previous state: %s", table, exc)
            return None
        except Exception:
            logger.exception("Unexpected error fetching %s snapshot, keeping previous state", table)
            return None
        records = []
        for row in rows:
            record = _coerce(model, row)
            if record is not None:
                records.append(record)
        return records

    async def initialize(self) -> None:
        """Load full snapshots of columns, tasks and profiles.

        Each collection is replaced only when its own fetch succeeds. The
        loading flag is cleared on every exit path.
        """
        self.is_loading = True
        try:
            columns = await self._fetch(self.config.COLUMNS_TABLE, TaskColumn)
            if columns is not None and not self._closed:
                self.columns = sorted(columns, key=lambda column: column.position)

            tasks = await self._fetch(self.config.TASKS_TABLE, Task)
            if tasks is not None and not self._closed:
                self.tasks = tasks

            await self.refresh_profiles()
        finally:
            self.is_loading = False
        logger.info(
            "Snapshot loaded: %d columns, %d tasks, %d profiles",
            len(self.columns),
            len(self.tasks),
            len(self.profiles),
        )

    async def refresh_profiles(self) -> None:
        """Re-read profiles; they have no change feed of their own."""
        profiles = await self._fetch(self.config.PROFILES_TABLE, Profile)
        if profiles is not None and not self._closed:
            self.profiles = {profile.id: profile for profile in profiles}

    # ── change feed ──────────────────────────────────────────────────────────

    def _make_handler(self, table: str):
        def handler(payload: Any) -> None:
            self.enqueue(table, payload)

        return handler

    def _make_status_handler(self, table: str):
        def on_status(connected: bool) -> None:
            self._channel_status[table] = connected
            self.set_connection_status(
                bool(self._channel_status) and all(self._channel_status.values())
            )

        return on_status

    def enqueue(self, table: str, payload: Any) -> bool:
        """Queue a raw change-feed payload for the consumer. Never raises."""
        if self._closed:
            return False
        event = normalize_change_payload(table, payload)
        if event is None:
            logger.warning("Dropping malformed change event for %s", table)
            change_events_total.labels(table, "unknown", "dropped").inc()
            return False
        self._queue.put_nowait(event)
        return True

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                self.apply_event(event)
            except Exception:
                logger.exception("Failed to apply %s event on %s", event.kind.value, event.table)
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued event has been applied."""
        await self._queue.join()

    def apply_event(self, event: ChangeEvent) -> bool:
        if event.table == self.config.TASKS_TABLE:
            return self.apply_task_event(event.kind, event.record)
        if event.table == self.config.COLUMNS_TABLE:
            return self.apply_column_event(event.kind, event.record)
        logger.debug("Ignoring change event for unsynced table %s", event.table)
        return False

    def apply_task_event(self, event_kind, record: RecordLike) -> bool:
        """Apply an insert/update/delete to the task collection.

        Returns True when the collection changed. Unknown kinds, malformed
        records and updates/deletes for unknown ids are ignored.
        """
        return self._apply(self.config.TASKS_TABLE, self.tasks, Task, event_kind, record, prepend=True)

    def apply_column_event(self, event_kind, record: RecordLike) -> bool:
        """Apply an insert/update/delete to the columns, keeping them sorted by position."""
        applied = self._apply(self.config.COLUMNS_TABLE, self.columns, TaskColumn, event_kind, record, prepend=False)
        if applied:
            self.columns.sort(key=lambda column: column.position)
        return applied

    def _apply(self, table, items, model, event_kind, record, *, prepend: bool) -> bool:
        if self._closed:
            return False
        kind = parse_event_kind(event_kind)
        if kind is None:
            logger.warning("Ignoring %s event of unknown kind %r", table, event_kind)
            change_events_total.labels(table, "unknown", "dropped").inc()
            return False

        if kind is EventKind.DELETE:
            record_id = _record_id(record)
            applied = record_id is not None and _remove(items, record_id)
        else:
            parsed = _coerce(model, record)
            applied = parsed is not None and _merge(items, kind, parsed, prepend=prepend)

        change_events_total.labels(table, kind.value, "applied" if applied else "ignored").inc()
        return applied

    def set_connection_status(self, connected: bool) -> None:
        if connected != self.is_connected:
            logger.info("Change feed %s", "connected" if connected else "disconnected")
        self.is_connected = connected
        change_feed_connected.set(1 if connected else 0)

    # ── views ────────────────────────────────────────────────────────────────

    def filtered_view(
        self,
        search_query: str = "",
        my_tasks_only: bool = False,
        current_user_id: Optional[str] = None,
    ) -> List[Task]:
        """Tasks matching the search text and, optionally, assigned to the current user.

        Order follows the task collection.
        """
        needle = (search_query or "").lower()
        result = []
        for task in self.tasks:
            if not task.matches(needle):
                continue
            if my_tasks_only and (task.assignee_id is None or task.assignee_id != current_user_id):
                continue
            result.append(task)
        return result

    def get_task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def get_column(self, column_id: str) -> Optional[TaskColumn]:
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

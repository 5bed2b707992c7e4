"""Tests for the task data store: snapshot, change events, views and lifecycle."""
import httpx
import pytest

from taskboard.config import Settings
from taskboard.core.exceptions import BackendError
from taskboard.integrations.realtime import LocalChangeFeed
from taskboard.integrations.supabase import SupabaseGateway
from taskboard.schemas.events import EventKind
from taskboard.services.task_store import TaskDataStore

from conftest import COLUMNS, PROFILES, TASKS


def _task(task_id, title="Task", **fields):
    row = {
        "id": task_id,
        "title": title,
        "column_id": "col-todo",
        "priority": "medium",
        "created_at": "2025-03-05T09:00:00+00:00",
    }
    row.update(fields)
    return row


def _ids(items):
    return [item.id for item in items]


class SilentFeed(LocalChangeFeed):
    """Feed that never acknowledges subscriptions."""

    async def subscribe(self, table, handler, on_status=None):
        return await super().subscribe(table, handler, None)


class DownFeed(LocalChangeFeed):
    """Feed whose socket cannot be reached."""

    async def subscribe(self, table, handler, on_status=None):
        raise OSError("realtime socket refused")


class HtmlClient:
    """httpx.AsyncClient stand-in answering every request with an HTML page."""

    def __init__(self, *args, **kwargs):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

    async def get(self, url, **kwargs):
        return httpx.Response(200, text="<html>maintenance</html>", request=httpx.Request("GET", url))


@pytest.mark.asyncio
async def test_initialize_loads_snapshots(store):
    """Snapshot fetch fills all three collections in their defined order."""
    assert store.is_loading is False
    assert _ids(store.columns) == ["col-todo", "col-doing", "col-done"]
    # created_at descending
    assert _ids(store.tasks) == ["task-3", "task-2", "task-1"]
    assert set(store.profiles) == {"U1", "U2"}
    assert store.profiles["U1"].full_name == "Ana Ruiz"


@pytest.mark.asyncio
async def test_failed_reinitialize_keeps_previous_state(store, gateway, monkeypatch):
    """A fetch error on re-invocation leaves loaded data untouched and clears loading."""
    before = (list(store.tasks), list(store.columns), dict(store.profiles))

    async def broken_fetch(table, access_token=None):
        raise BackendError("connection refused")

    monkeypatch.setattr(gateway, "fetch_all", broken_fetch)
    await store.initialize()

    assert (store.tasks, store.columns, store.profiles) == before
    assert store.is_loading is False


@pytest.mark.asyncio
async def test_unexpected_fetch_error_keeps_previous_state(store, gateway, monkeypatch):
    before = (list(store.tasks), list(store.columns), dict(store.profiles))

    async def broken_fetch(table, access_token=None):
        raise KeyError("rows")

    monkeypatch.setattr(gateway, "fetch_all", broken_fetch)
    await store.initialize()

    assert (store.tasks, store.columns, store.profiles) == before
    assert store.is_loading is False


@pytest.mark.asyncio
async def test_non_json_snapshot_response_does_not_raise(feed, monkeypatch):
    monkeypatch.setattr("taskboard.integrations.supabase.httpx.AsyncClient", HtmlClient)
    live = Settings(BACKEND_MODE="live", SUPABASE_URL="https://demo.supabase.co", SUPABASE_ANON_KEY="anon-key")
    store = TaskDataStore(SupabaseGateway(live), feed, live)

    await store.initialize()

    assert store.tasks == []
    assert store.columns == []
    assert store.profiles == {}
    assert store.is_loading is False


@pytest.mark.asyncio
async def test_initialize_finishing_after_teardown_leaves_state_alone(store, gateway, config, monkeypatch):
    before = list(store.tasks)
    real_fetch = gateway.fetch_all
    gateway.seed(config.TASKS_TABLE, [{"id": "late", "title": "Late", "column_id": "col-todo"}])

    async def fetch_during_shutdown(table, access_token=None):
        await store.teardown()
        return await real_fetch(table)

    monkeypatch.setattr(gateway, "fetch_all", fetch_during_shutdown)
    await store.initialize()

    assert store.tasks == before
    assert store.is_loading is False


@pytest.mark.asyncio
async def test_partial_fetch_failure_only_skips_failed_collection(config, feed, gateway, monkeypatch):
    store = TaskDataStore(gateway, feed, config)
    real_fetch = gateway.fetch_all

    async def flaky_fetch(table, access_token=None):
        if table == config.PROFILES_TABLE:
            raise BackendError("timeout")
        return await real_fetch(table)

    monkeypatch.setattr(gateway, "fetch_all", flaky_fetch)
    await store.initialize()

    assert len(store.tasks) == 3
    assert len(store.columns) == 3
    assert store.profiles == {}
    assert store.is_loading is False


@pytest.mark.asyncio
async def test_snapshot_skips_malformed_rows(config, feed, gateway):
    gateway.seed(config.TASKS_TABLE, [{"id": "broken", "title": "No column"}])
    store = TaskDataStore(gateway, feed, config)
    await store.initialize()
    assert "broken" not in _ids(store.tasks)
    assert len(store.tasks) == 3


@pytest.mark.asyncio
async def test_task_insert_prepends(store):
    assert store.apply_task_event("insert", _task("task-9", "Newest")) is True
    assert store.tasks[0].id == "task-9"
    assert len(store.tasks) == 4


@pytest.mark.asyncio
async def test_duplicate_insert_behaves_like_update(store):
    """Insert for a known id replaces the record in place, without duplicating it."""
    store.apply_task_event(EventKind.INSERT, _task("task-2", "Renamed by insert"))
    by_insert = list(store.tasks)

    store.apply_task_event(EventKind.UPDATE, _task("task-2", "Renamed by insert"))
    assert store.tasks == by_insert
    assert _ids(store.tasks) == ["task-3", "task-2", "task-1"]
    assert store.get_task("task-2").title == "Renamed by insert"


@pytest.mark.asyncio
async def test_update_of_unknown_task_is_ignored(store):
    assert store.apply_task_event("update", _task("ghost")) is False
    assert store.get_task("ghost") is None
    assert len(store.tasks) == 3


@pytest.mark.asyncio
async def test_delete_removes_task_regardless_of_prior_state(store):
    sequence = [
        ("insert", _task("task-7")),
        ("update", _task("task-7", "Again")),
        ("insert", _task("task-7", "Duplicate delivery")),
        ("delete", {"id": "task-7"}),
        ("delete", {"id": "task-1"}),
    ]
    for kind, record in sequence:
        store.apply_task_event(kind, record)
    assert store.get_task("task-7") is None
    assert store.get_task("task-1") is None


@pytest.mark.asyncio
async def test_delete_of_never_seen_id_is_noop(store):
    before = len(store.tasks)
    assert store.apply_task_event("delete", {"id": "never-seen"}) is False
    assert len(store.tasks) == before


@pytest.mark.asyncio
async def test_malformed_events_are_ignored(store):
    before = list(store.tasks)
    assert store.apply_task_event("truncate", _task("task-1")) is False
    assert store.apply_task_event("update", {"id": "task-1", "priority": "urgent!"}) is False
    assert store.apply_task_event("delete", {"title": "no id"}) is False
    assert store.apply_task_event("insert", None) is False
    assert store.tasks == before


@pytest.mark.asyncio
async def test_columns_stay_sorted_by_position(store):
    events = [
        ("insert", {"id": "col-review", "title": "Revision", "position": 1}),
        ("update", {"id": "col-todo", "title": "Por hacer", "position": 5}),
        ("insert", {"id": "col-first", "title": "Backlog", "position": -1}),
        ("delete", {"id": "col-doing"}),
        ("update", {"id": "col-done", "title": "Terminado", "position": 0}),
    ]
    for kind, record in events:
        store.apply_column_event(kind, record)
        positions = [column.position for column in store.columns]
        assert positions == sorted(positions)

    assert _ids(store.columns) == ["col-first", "col-done", "col-review", "col-todo"]


@pytest.mark.asyncio
async def test_filtered_view_empty_query_returns_everything_in_order(store):
    assert store.filtered_view("", False, None) == store.tasks


@pytest.mark.asyncio
async def test_filtered_view_matches_title_or_description(config, feed):
    store = TaskDataStore(None, feed, config)
    store.apply_task_event("insert", _task("b", "Other", description="not urgent at all"))
    store.apply_task_event("insert", _task("a", "Fix urgent bug"))

    assert _ids(store.filtered_view("urgent", False, None)) == ["a", "b"]
    assert _ids(store.filtered_view("URGENT", False, None)) == ["a", "b"]
    assert _ids(store.filtered_view("at all", False, None)) == ["b"]


@pytest.mark.asyncio
async def test_filtered_view_my_tasks_only(config, feed):
    store = TaskDataStore(None, feed, config)
    store.apply_task_event("insert", _task("unassigned", assignee_id=None))
    store.apply_task_event("insert", _task("theirs", assignee_id="U2"))
    store.apply_task_event("insert", _task("mine", assignee_id="U1"))

    assert _ids(store.filtered_view("", True, "U1")) == ["mine"]
    # An unassigned task never counts as "mine", even without a current user.
    assert store.filtered_view("", True, None) == []


@pytest.mark.asyncio
async def test_change_feed_events_are_applied_in_order(store, gateway, config):
    await gateway.insert(config.TASKS_TABLE, _task("live-1", "From the feed"))
    await gateway.update(config.TASKS_TABLE, "live-1", {"title": "Edited"})
    await gateway.update(config.COLUMNS_TABLE, "col-todo", {"position": 10})
    await store.drain()

    assert store.tasks[0].id == "live-1"
    assert store.tasks[0].title == "Edited"
    assert store.columns[-1].id == "col-todo"

    await gateway.delete(config.TASKS_TABLE, "live-1")
    await store.drain()
    assert store.get_task("live-1") is None


@pytest.mark.asyncio
async def test_malformed_feed_payload_does_not_break_consumer(store, feed, config):
    feed.publish(config.TASKS_TABLE, {"eventType": "INSERT", "new": {"id": "x"}})
    feed.publish(config.TASKS_TABLE, "garbage")
    feed.publish(config.TASKS_TABLE, {"eventType": "INSERT", "new": _task("ok-1")})
    await store.drain()

    assert store.get_task("x") is None
    assert store.get_task("ok-1") is not None


@pytest.mark.asyncio
async def test_connection_status_follows_subscriptions(config, gateway):
    feed = LocalChangeFeed()
    store = TaskDataStore(gateway, feed, config)
    assert store.is_connected is False

    async with store:
        assert store.is_connected is True
        feed.drop_connection()
        assert store.is_connected is False

    assert store.is_connected is False


@pytest.mark.asyncio
async def test_not_connected_before_acknowledgement(config, gateway):
    feed = SilentFeed()
    async with TaskDataStore(gateway, feed, config) as store:
        assert store.is_connected is False


@pytest.mark.asyncio
async def test_subscription_failure_still_loads_snapshot(config, gateway):
    async with TaskDataStore(gateway, DownFeed(), config) as store:
        assert store.is_connected is False
        assert store.is_loading is False
        assert len(store.tasks) == 3
        assert len(store.columns) == 3


@pytest.mark.asyncio
async def test_consumer_survives_failing_event(store, gateway, config, monkeypatch):
    real_apply = store.apply_event
    calls = []

    def flaky_apply(event):
        calls.append(event.record["id"])
        if len(calls) == 1:
            raise RuntimeError("boom")
        return real_apply(event)

    monkeypatch.setattr(store, "apply_event", flaky_apply)
    await gateway.insert(config.TASKS_TABLE, _task("first"))
    await gateway.insert(config.TASKS_TABLE, _task("second"))
    await store.drain()

    assert calls == ["first", "second"]
    assert store.get_task("first") is None
    assert store.get_task("second") is not None


@pytest.mark.asyncio
async def test_teardown_is_idempotent_and_stops_events(config, gateway, feed):
    store = TaskDataStore(gateway, feed, config)
    await store.open()
    assert feed.subscriber_count(config.TASKS_TABLE) == 1

    await store.teardown()
    await store.teardown()

    assert feed.subscriber_count(config.TASKS_TABLE) == 0
    assert feed.subscriber_count(config.COLUMNS_TABLE) == 0
    assert store.closed is True

    before = list(store.tasks)
    assert store.enqueue(config.TASKS_TABLE, {"eventType": "INSERT", "new": _task("late")}) is False
    assert store.apply_task_event("insert", _task("late")) is False
    assert store.tasks == before


@pytest.mark.asyncio
async def test_context_manager_tears_down_on_error(config, gateway, feed):
    store = TaskDataStore(gateway, feed, config)
    with pytest.raises(RuntimeError):
        async with store:
            raise RuntimeError("boom")
    assert store.closed is True
    assert feed.subscriber_count(config.TASKS_TABLE) == 0


@pytest.mark.asyncio
async def test_reopen_after_teardown_is_rejected(config, gateway, feed):
    store = TaskDataStore(gateway, feed, config)
    await store.teardown()
    with pytest.raises(RuntimeError):
        await store.open()


def test_fixture_data_is_consistent():
    column_ids = {column["id"] for column in COLUMNS}
    assert all(task["column_id"] in column_ids for task in TASKS)
    profile_ids = {profile["id"] for profile in PROFILES}
    assert {task["assignee_id"] for task in TASKS if task["assignee_id"]} <= profile_ids

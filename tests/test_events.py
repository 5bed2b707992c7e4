"""Tests for change-feed payload normalization."""
from taskboard.schemas.events import ChangeEvent, EventKind, normalize_change_payload, parse_event_kind


def test_client_library_shape():
    event = normalize_change_payload(
        "tasks",
        {"eventType": "UPDATE", "new": {"id": "t1", "title": "A"}, "old": {"id": "t1"}},
    )
    assert event == ChangeEvent(
        table="tasks",
        kind=EventKind.UPDATE,
        new={"id": "t1", "title": "A"},
        old={"id": "t1"},
    )
    assert event.record == {"id": "t1", "title": "A"}


def test_realtime_wire_shape():
    payload = {
        "ids": [1],
        "data": {
            "schema": "public",
            "table": "task_columns",
            "type": "INSERT",
            "record": {"id": "c1", "title": "Done", "position": 3},
            "old_record": None,
        },
    }
    event = normalize_change_payload("task_columns", payload)
    assert event.kind is EventKind.INSERT
    assert event.record["position"] == 3


def test_delete_uses_old_record():
    event = normalize_change_payload("tasks", {"eventType": "DELETE", "new": {}, "old": {"id": "t9"}})
    assert event.kind is EventKind.DELETE
    assert event.new is None
    assert event.record == {"id": "t9"}


def test_unusable_payloads_are_rejected():
    assert normalize_change_payload("tasks", None) is None
    assert normalize_change_payload("tasks", ["INSERT"]) is None
    assert normalize_change_payload("tasks", {"eventType": "TRUNCATE", "new": {"id": "t1"}}) is None
    assert normalize_change_payload("tasks", {"eventType": "INSERT", "new": {"title": "no id"}}) is None
    assert normalize_change_payload("tasks", {"eventType": "DELETE", "old": {}}) is None


def test_parse_event_kind():
    assert parse_event_kind("insert") is EventKind.INSERT
    assert parse_event_kind(" Delete ") is EventKind.DELETE
    assert parse_event_kind(EventKind.UPDATE) is EventKind.UPDATE
    assert parse_event_kind("*") is None
    assert parse_event_kind(3) is None

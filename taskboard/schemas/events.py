"""Change-feed event schemas and payload normalization."""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class EventKind(str, Enum):
    """Row change kind delivered by the change feed."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class ChangeEvent:
    """One row change for a table."""

    table: str
    kind: EventKind
    new: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None

    @property
    def record(self) -> Optional[Dict[str, Any]]:
        """Row the event applies to: the new row, or the old one for deletes."""
        if self.kind is EventKind.DELETE:
            return self.old or self.new
        return self.new


def _as_row(value: Any) -> Optional[Dict[str, Any]]:
    if isinstance(value, Mapping) and value:
        return dict(value)
    return None


def parse_event_kind(value: Any) -> Optional[EventKind]:
    """Map ``INSERT``/``insert``/``EventKind.INSERT`` to an EventKind, else None."""
    if isinstance(value, EventKind):
        return value
    if not isinstance(value, str):
        return None
    try:
        return EventKind(value.strip().lower())
    except ValueError:
        return None


def normalize_change_payload(table: str, payload: Any) -> Optional[ChangeEvent]:
    """Build a ChangeEvent from a raw change-feed payload.

    Accepts the client-library shape ``{"eventType", "new", "old"}`` as well as
    the realtime wire shape ``{"data": {"type", "record", "old_record"}}``.
    Returns None for anything that cannot be applied.
    """
    if not isinstance(payload, Mapping):
        return None
    body = payload.get("data") if isinstance(payload.get("data"), Mapping) else payload

    kind = parse_event_kind(
        body.get("eventType") or body.get("eventKind") or body.get("type")
    )
    if kind is None:
        return None

    new = _as_row(body.get("new", body.get("record")))
    old = _as_row(body.get("old", body.get("old_record")))
    event = ChangeEvent(table=table, kind=kind, new=new, old=old)

    record = event.record
    if record is None or record.get("id") is None:
        return None
    return event

"""Response schemas for board views."""
from datetime import date
from typing import List

from pydantic import BaseModel

from taskboard.schemas.column import TaskColumn
from taskboard.schemas.profile import Profile
from taskboard.schemas.task import Priority, Task


class BoardColumnResponse(BaseModel):
    """Column with its tasks."""

    column: TaskColumn
    tasks: List[Task]

    class Config:
        from_attributes = True


class BoardResponse(BaseModel):
    """Kanban board."""

    columns: List[BoardColumnResponse]
    is_loading: bool
    is_connected: bool


class CalendarEventResponse(BaseModel):
    """All-day calendar event."""

    task_id: str
    title: str
    start: date
    end: date
    priority: Priority
    all_day: bool = True

    class Config:
        from_attributes = True


class MemberWorkloadResponse(BaseModel):
    """Workload of one team member."""

    profile: Profile
    total: int
    active: int
    completed: int
    critical: int
    high: int
    current_tasks: List[Task]

    class Config:
        from_attributes = True


class WorkloadResponse(BaseModel):
    """Team workload."""

    members: List[MemberWorkloadResponse]
    unassigned: List[Task]

    class Config:
        from_attributes = True


class SyncStatusResponse(BaseModel):
    """Store state as seen by the presentation layer."""

    is_loading: bool
    is_connected: bool
    tasks: int
    columns: int
    profiles: int

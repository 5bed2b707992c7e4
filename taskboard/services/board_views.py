"""Derived board views: kanban columns, sortable list, calendar and team workload."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence

from taskboard.schemas.column import TaskColumn
from taskboard.schemas.profile import Profile
from taskboard.schemas.task import PRIORITY_RANK, Priority, Task

SORTABLE_FIELDS = ("title", "priority", "due_date", "created_at", "column_id", "assignee_id")


@dataclass
class BoardColumnDTO:
    """A board column with the tasks currently in it."""

    column: TaskColumn
    tasks: List[Task]


@dataclass
class CalendarEventDTO:
    """All-day calendar entry for a task due date."""

    task_id: str
    title: str
    start: date
    end: date
    priority: Priority
    all_day: bool = True


@dataclass
class MemberWorkloadDTO:
    """Task counts for one team member."""

    profile: Profile
    total: int
    active: int
    completed: int
    critical: int
    high: int
    current_tasks: List[Task] = field(default_factory=list)


@dataclass
class WorkloadDTO:
    """Workload across the team plus the unassigned backlog."""

    members: List[MemberWorkloadDTO]
    unassigned: List[Task]


def board_view(columns: Sequence[TaskColumn], tasks: Sequence[Task]) -> List[BoardColumnDTO]:
    """Group ``tasks`` under their column, columns in display order."""
    by_column: Dict[str, List[Task]] = {column.id: [] for column in columns}
    for task in tasks:
        bucket = by_column.get(task.column_id)
        # Tasks pointing at a column we no longer know about stay hidden
        # until the column (or the task's move) arrives.
        if bucket is not None:
            bucket.append(task)
    return [BoardColumnDTO(column=column, tasks=by_column[column.id]) for column in columns]


def _sort_value(task: Task, key: str):
    value = getattr(task, key)
    if key == "priority" and value is not None:
        return PRIORITY_RANK[value]
    if key == "title" and value is not None:
        return value.lower()
    return value


def list_view(tasks: Sequence[Task], sort_key: Optional[str] = None, descending: bool = False) -> List[Task]:
    """Sort tasks for the list view; null values always go last.

    Without a key the incoming order is kept.
    """
    if not sort_key:
        return list(tasks)
    if sort_key not in SORTABLE_FIELDS:
        raise ValueError(f"Cannot sort by {sort_key!r}; expected one of {', '.join(SORTABLE_FIELDS)}")

    present = [task for task in tasks if getattr(task, sort_key) is not None]
    missing = [task for task in tasks if getattr(task, sort_key) is None]
    present.sort(key=lambda task: _sort_value(task, sort_key), reverse=descending)
    return present + missing


def calendar_view(
    tasks: Sequence[Task],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[CalendarEventDTO]:
    """Calendar entries for tasks with a due date, optionally within [start, end]."""
    events = []
    for task in tasks:
        if task.due_date is None:
            continue
        if start is not None and task.due_date < start:
            continue
        if end is not None and task.due_date > end:
            continue
        events.append(
            CalendarEventDTO(
                task_id=task.id,
                title=task.title,
                start=task.due_date,
                end=task.due_date,
                priority=task.priority,
            )
        )
    return events


def find_done_column(columns: Sequence[TaskColumn], done_title: str) -> Optional[TaskColumn]:
    wanted = done_title.strip().lower()
    for column in columns:
        if column.title.strip().lower() == wanted:
            return column
    return None


def workload_view(
    profiles: Sequence[Profile],
    tasks: Sequence[Task],
    columns: Sequence[TaskColumn],
    *,
    done_title: str,
    preview_size: int = 3,
) -> WorkloadDTO:
    """Per-member totals; completed means "in the done column"."""
    done_column = find_done_column(columns, done_title)
    done_id = done_column.id if done_column else None

    members = []
    for profile in profiles:
        member_tasks = [task for task in tasks if task.assignee_id == profile.id]
        open_tasks = [task for task in member_tasks if task.column_id != done_id]
        members.append(
            MemberWorkloadDTO(
                profile=profile,
                total=len(member_tasks),
                active=len(open_tasks),
                completed=len(member_tasks) - len(open_tasks),
                critical=sum(1 for task in open_tasks if task.priority == Priority.CRITICAL),
                high=sum(1 for task in open_tasks if task.priority == Priority.HIGH),
                current_tasks=open_tasks[:preview_size],
            )
        )

    unassigned = [task for task in tasks if not task.assignee_id]
    return WorkloadDTO(members=members, unassigned=unassigned)

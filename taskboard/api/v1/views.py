"""Read-only board views: kanban, calendar and team workload."""
from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends

from taskboard.dependencies import get_current_user, get_store
from taskboard.schemas.auth import AuthUser
from taskboard.schemas.views import (
    BoardColumnResponse,
    BoardResponse,
    CalendarEventResponse,
    WorkloadResponse,
)
from taskboard.services.board_views import board_view, calendar_view, workload_view
from taskboard.services.task_store import TaskDataStore

router = APIRouter()


@router.get("/board", response_model=BoardResponse)
async def get_board(
    q: str = "",
    mine: bool = False,
    store: TaskDataStore = Depends(get_store),
    current_user: AuthUser = Depends(get_current_user),
):
    """Kanban board: columns in order with their filtered tasks."""
    tasks = store.filtered_view(q, mine, current_user.id)
    columns = [
        BoardColumnResponse.model_validate(entry)
        for entry in board_view(store.columns, tasks)
    ]
    return BoardResponse(columns=columns, is_loading=store.is_loading, is_connected=store.is_connected)


@router.get("/calendar", response_model=List[CalendarEventResponse])
async def get_calendar(
    q: str = "",
    mine: bool = False,
    start: Optional[date] = None,
    end: Optional[date] = None,
    store: TaskDataStore = Depends(get_store),
    current_user: AuthUser = Depends(get_current_user),
):
    """Due dates of filtered tasks as calendar events."""
    tasks = store.filtered_view(q, mine, current_user.id)
    return [CalendarEventResponse.model_validate(event) for event in calendar_view(tasks, start, end)]


@router.get("/workload", response_model=WorkloadResponse)
async def get_workload(
    store: TaskDataStore = Depends(get_store),
    current_user: AuthUser = Depends(get_current_user),
):
    """Per-member task counts and the unassigned backlog."""
    workload = workload_view(
        list(store.profiles.values()),
        store.tasks,
        store.columns,
        done_title=store.config.DONE_COLUMN_TITLE,
        preview_size=store.config.WORKLOAD_PREVIEW_SIZE,
    )
    return WorkloadResponse.model_validate(workload)

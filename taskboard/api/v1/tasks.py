"""Task endpoints: list view and mutations."""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from taskboard.core.exceptions import NotFoundError, ValidationError
from taskboard.dependencies import get_access_token, get_current_user, get_services, get_store
from taskboard.schemas.auth import AuthUser
from taskboard.schemas.task import Task, TaskCreate, TaskMove, TaskUpdate
from taskboard.services.board_views import list_view
from taskboard.services.bootstrap_service import Services
from taskboard.services.task_store import TaskDataStore

router = APIRouter()


@router.get("", response_model=List[Task])
async def list_tasks(
    q: str = "",
    mine: bool = False,
    sort: Optional[str] = None,
    direction: str = Query("asc", pattern="^(asc|desc)$"),
    store: TaskDataStore = Depends(get_store),
    current_user: AuthUser = Depends(get_current_user),
):
    """Filtered tasks, optionally sorted by a column of the list view."""
    tasks = store.filtered_view(q, mine, current_user.id)
    try:
        return list_view(tasks, sort, descending=direction == "desc")
    except ValueError as exc:
        raise ValidationError(str(exc))


@router.get("/{task_id}", response_model=Task)
async def get_task(
    task_id: str,
    store: TaskDataStore = Depends(get_store),
    current_user: AuthUser = Depends(get_current_user),
):
    task = store.get_task(task_id)
    if task is None:
        raise NotFoundError("Task not found")
    return task


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskCreate,
    services: Services = Depends(get_services),
    token: str = Depends(get_access_token),
    current_user: AuthUser = Depends(get_current_user),
):
    """Create a task; it shows up on the board once the change feed confirms it."""
    return await services.board.create_task(payload, access_token=token)


@router.patch("/{task_id}", response_model=Task)
async def update_task(
    task_id: str,
    payload: TaskUpdate,
    services: Services = Depends(get_services),
    token: str = Depends(get_access_token),
    current_user: AuthUser = Depends(get_current_user),
):
    return await services.board.update_task(task_id, payload, access_token=token)


@router.post("/{task_id}/move", response_model=Task)
async def move_task(
    task_id: str,
    payload: TaskMove,
    services: Services = Depends(get_services),
    token: str = Depends(get_access_token),
    current_user: AuthUser = Depends(get_current_user),
):
    """Move a task to another column."""
    return await services.board.move_task(task_id, payload.column_id, access_token=token)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: str,
    services: Services = Depends(get_services),
    token: str = Depends(get_access_token),
    current_user: AuthUser = Depends(get_current_user),
):
    await services.board.delete_task(task_id, access_token=token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

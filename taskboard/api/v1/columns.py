"""Board column endpoints."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response, status

from taskboard.dependencies import get_access_token, get_current_user, get_services, get_store
from taskboard.schemas.auth import AuthUser
from taskboard.schemas.column import ColumnCreate, ColumnUpdate, TaskColumn
from taskboard.services.bootstrap_service import Services
from taskboard.services.task_store import TaskDataStore

router = APIRouter()


@router.get("", response_model=List[TaskColumn])
async def list_columns(
    store: TaskDataStore = Depends(get_store),
    current_user: AuthUser = Depends(get_current_user),
):
    """Columns in display order."""
    return store.columns


@router.post("", response_model=TaskColumn, status_code=status.HTTP_201_CREATED)
async def create_column(
    payload: ColumnCreate,
    services: Services = Depends(get_services),
    token: str = Depends(get_access_token),
    current_user: AuthUser = Depends(get_current_user),
):
    return await services.board.create_column(payload, access_token=token)


@router.patch("/{column_id}", response_model=TaskColumn)
async def update_column(
    column_id: str,
    payload: ColumnUpdate,
    services: Services = Depends(get_services),
    token: str = Depends(get_access_token),
    current_user: AuthUser = Depends(get_current_user),
):
    """Rename or reposition a column."""
    return await services.board.update_column(column_id, payload, access_token=token)


@router.delete("/{column_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_column(
    column_id: str,
    services: Services = Depends(get_services),
    token: str = Depends(get_access_token),
    current_user: AuthUser = Depends(get_current_user),
):
    await services.board.delete_column(column_id, access_token=token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""Store synchronisation endpoints."""
from fastapi import APIRouter, Depends

from taskboard.dependencies import get_current_user, get_store
from taskboard.schemas.auth import AuthUser
from taskboard.schemas.views import SyncStatusResponse
from taskboard.services.task_store import TaskDataStore

router = APIRouter()


def _status(store: TaskDataStore) -> SyncStatusResponse:
    return SyncStatusResponse(
        is_loading=store.is_loading,
        is_connected=store.is_connected,
        tasks=len(store.tasks),
        columns=len(store.columns),
        profiles=len(store.profiles),
    )


@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(
    store: TaskDataStore = Depends(get_store),
    current_user: AuthUser = Depends(get_current_user),
):
    return _status(store)


@router.post("/refresh", response_model=SyncStatusResponse)
async def refresh(
    store: TaskDataStore = Depends(get_store),
    current_user: AuthUser = Depends(get_current_user),
):
    """Re-run the snapshot fetch; failures keep the current state."""
    await store.initialize()
    return _status(store)

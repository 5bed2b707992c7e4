"""Task and column mutations issued on behalf of a signed-in user.

Mutations only go to the backend. The store picks the result up from the
change feed, so nothing here patches local state.
"""
import logging
from typing import Any, Dict, Optional

from taskboard.config import Settings, settings as default_settings
from taskboard.core.exceptions import NotFoundError, ValidationError
from taskboard.integrations.supabase import SupabaseGateway
from taskboard.schemas.column import ColumnCreate, ColumnUpdate
from taskboard.schemas.task import TaskCreate, TaskUpdate
from taskboard.services.task_store import TaskDataStore

logger = logging.getLogger(__name__)


class BoardService:
    """Create, edit, move and delete tasks and columns."""

    def __init__(self, gateway: SupabaseGateway, store: TaskDataStore, config: Settings = default_settings):
        self.gateway = gateway
        self.store = store
        self.config = config

    async def create_task(self, payload: TaskCreate, access_token: Optional[str] = None) -> Dict[str, Any]:
        fields = payload.model_dump(mode="json")
        if not fields.get("column_id"):
            if not self.store.columns:
                raise ValidationError("Board has no columns to place the task in")
            fields["column_id"] = self.store.columns[0].id
        row = await self.gateway.insert(self.config.TASKS_TABLE, fields, access_token=access_token)
        logger.info("Created task %s in column %s", row.get("id"), fields["column_id"])
        return row

    async def update_task(
        self,
        task_id: str,
        payload: TaskUpdate,
        access_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        fields = payload.model_dump(mode="json", exclude_unset=True)
        if not fields:
            raise ValidationError("No fields to update")
        row = await self.gateway.update(self.config.TASKS_TABLE, task_id, fields, access_token=access_token)
        if row is None:
            raise NotFoundError("Task not found")
        return row

    async def move_task(self, task_id: str, column_id: str, access_token: Optional[str] = None) -> Dict[str, Any]:
        """Move a task to another column (drag and drop on the board)."""
        if self.store.get_column(column_id) is None:
            raise NotFoundError("Column not found")
        return await self.update_task(task_id, TaskUpdate(column_id=column_id), access_token=access_token)

    async def delete_task(self, task_id: str, access_token: Optional[str] = None) -> None:
        deleted = await self.gateway.delete(self.config.TASKS_TABLE, task_id, access_token=access_token)
        if not deleted:
            raise NotFoundError("Task not found")
        logger.info("Deleted task %s", task_id)

    async def create_column(self, payload: ColumnCreate, access_token: Optional[str] = None) -> Dict[str, Any]:
        return await self.gateway.insert(
            self.config.COLUMNS_TABLE,
            payload.model_dump(mode="json"),
            access_token=access_token,
        )

    async def update_column(
        self,
        column_id: str,
        payload: ColumnUpdate,
        access_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        fields = payload.model_dump(mode="json", exclude_unset=True)
        if not fields:
            raise ValidationError("No fields to update")
        row = await self.gateway.update(self.config.COLUMNS_TABLE, column_id, fields, access_token=access_token)
        if row is None:
            raise NotFoundError("Column not found")
        return row

    async def delete_column(self, column_id: str, access_token: Optional[str] = None) -> None:
        deleted = await self.gateway.delete(self.config.COLUMNS_TABLE, column_id, access_token=access_token)
        if not deleted:
            raise NotFoundError("Column not found")
        logger.info("Deleted column %s", column_id)

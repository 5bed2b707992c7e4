"""Task schemas."""
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator


class Priority(str, Enum):
    """Task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Ordinal used when sorting the list view by priority.
PRIORITY_RANK = {
    Priority.LOW: 0,
    Priority.MEDIUM: 1,
    Priority.HIGH: 2,
    Priority.CRITICAL: 3,
}


def _coerce_due_date(value):
    # The backend may hand back a full timestamp for date columns.
    if isinstance(value, str) and "T" in value:
        return value.split("T", 1)[0]
    if isinstance(value, datetime):
        return value.date()
    if value == "":
        return None
    return value


class TaskBase(BaseModel):
    """Base task schema."""

    title: str
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    assignee_id: Optional[str] = None
    due_date: Optional[date] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def coerce_due_date(cls, value):
        return _coerce_due_date(value)


class TaskCreate(TaskBase):
    """Task creation schema.

    When ``column_id`` is omitted the task lands in the first board column.
    """

    column_id: Optional[str] = None


class TaskUpdate(BaseModel):
    """Task update schema."""

    title: Optional[str] = None
    description: Optional[str] = None
    column_id: Optional[str] = None
    priority: Optional[Priority] = None
    assignee_id: Optional[str] = None
    due_date: Optional[date] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def coerce_due_date(cls, value):
        return _coerce_due_date(value)


class TaskMove(BaseModel):
    """Move a task to another column."""

    column_id: str


class Task(TaskBase):
    """Task row as stored by the backend."""

    id: str
    column_id: str
    created_at: datetime

    class Config:
        from_attributes = True

    def matches(self, needle: str) -> bool:
        """Case-insensitive substring match on title or description."""
        if not needle:
            return True
        if needle in self.title.lower():
            return True
        return self.description is not None and needle in self.description.lower()

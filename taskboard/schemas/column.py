"""Board column schemas."""
from typing import Optional

from pydantic import BaseModel


class ColumnCreate(BaseModel):
    """Column creation schema."""

    title: str
    position: int


class ColumnUpdate(BaseModel):
    """Column update schema."""

    title: Optional[str] = None
    position: Optional[int] = None


class TaskColumn(ColumnCreate):
    """Column row as stored by the backend."""

    id: str

    class Config:
        from_attributes = True

"""Profile schemas."""
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class ProfileRole(str, Enum):
    """Team role."""

    MANAGER = "manager"
    TECHNICIAN = "technician"


class Profile(BaseModel):
    """Profile row as stored by the backend."""

    id: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: ProfileRole = ProfileRole.TECHNICIAN

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    """Profile update schema."""

    full_name: Optional[str] = None

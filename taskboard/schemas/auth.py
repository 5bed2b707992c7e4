"""Authentication schemas."""
from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr


class TokenRequest(BaseModel):
    """Token request schema."""

    email: EmailStr
    password: str


class AuthUser(BaseModel):
    """Identity as reported by the auth service."""

    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = {}


class TokenResponse(BaseModel):
    """Token response schema."""

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user: AuthUser

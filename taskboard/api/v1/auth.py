"""Authentication API endpoints."""
from fastapi import APIRouter, Depends, Response, status
from fastapi.security import OAuth2PasswordRequestForm

from taskboard.core.exceptions import UnauthorizedError
from taskboard.dependencies import get_access_token, get_current_user, get_services
from taskboard.schemas.auth import AuthUser, TokenResponse
from taskboard.services.bootstrap_service import Services

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    services: Services = Depends(get_services),
):
    """Login endpoint - returns the backend session.

    Supports OAuth2 password flow (form data) where username is the email.
    """
    session = await services.auth.sign_in(form_data.username, form_data.password)
    if session is None:
        raise UnauthorizedError("Incorrect email or password")
    return session


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    token: str = Depends(get_access_token),
    services: Services = Depends(get_services),
):
    await services.auth.sign_out(token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=AuthUser)
async def get_current_user_info(
    current_user: AuthUser = Depends(get_current_user),
):
    """Get current authenticated user information."""
    return current_user

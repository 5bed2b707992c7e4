"""FastAPI dependencies for services and authentication."""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from taskboard.config import settings
from taskboard.core.exceptions import UnauthorizedError
from taskboard.schemas.auth import AuthUser
from taskboard.services.bootstrap_service import Services
from taskboard.services.task_store import TaskDataStore

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_PREFIX}/auth/login", auto_error=False)


def get_services(request: Request) -> Services:
    """Services built by the application lifespan."""
    return request.app.state.services


def get_store(services: Services = Depends(get_services)) -> TaskDataStore:
    return services.store


async def get_access_token(token: Optional[str] = Depends(oauth2_scheme)) -> str:
    if not token:
        raise UnauthorizedError()
    return token


async def get_current_user(
    token: str = Depends(get_access_token),
    services: Services = Depends(get_services),
) -> AuthUser:
    """Resolve the bearer token to the signed-in user."""
    user = await services.auth.get_user(token)
    if user is None:
        raise UnauthorizedError("Could not validate credentials")
    return user

"""Team profile endpoints."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, File, UploadFile

from taskboard.core.exceptions import NotFoundError, ValidationError
from taskboard.dependencies import get_access_token, get_current_user, get_services, get_store
from taskboard.schemas.auth import AuthUser
from taskboard.schemas.profile import Profile, ProfileUpdate
from taskboard.services.bootstrap_service import Services
from taskboard.services.task_store import TaskDataStore

router = APIRouter()


@router.get("", response_model=List[Profile])
async def list_profiles(
    store: TaskDataStore = Depends(get_store),
    current_user: AuthUser = Depends(get_current_user),
):
    return list(store.profiles.values())


@router.get("/me", response_model=Profile)
async def get_my_profile(
    store: TaskDataStore = Depends(get_store),
    current_user: AuthUser = Depends(get_current_user),
):
    profile = store.profiles.get(current_user.id)
    if profile is None:
        raise NotFoundError("Profile not found")
    return profile


@router.patch("/me", response_model=Profile)
async def update_my_profile(
    payload: ProfileUpdate,
    services: Services = Depends(get_services),
    token: str = Depends(get_access_token),
    current_user: AuthUser = Depends(get_current_user),
):
    if payload.full_name is None:
        raise ValidationError("No fields to update")
    return await services.profiles.update_full_name(current_user.id, token, payload.full_name)


@router.post("/me/avatar", response_model=Profile)
async def upload_avatar(
    file: UploadFile = File(...),
    services: Services = Depends(get_services),
    token: str = Depends(get_access_token),
    current_user: AuthUser = Depends(get_current_user),
):
    """Upload a new avatar image (max 5MB)."""
    data = await file.read()
    return await services.profiles.upload_avatar(
        current_user.id,
        token,
        file.filename or "avatar",
        data,
        file.content_type,
    )

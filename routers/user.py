from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from routers.auth import get_auth_service, get_current_user_id
from utils.auth_service import AuthService


router = APIRouter(prefix="/user", tags=["user"])


class UpdateProfileIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    phone: Optional[str] = None
    profile_image: Optional[str] = Field(default=None, alias="profileImage")
    password: Optional[str] = None


@router.get("/profile")
def get_profile(
    user_id: int = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service),
):
    return service.get_profile(user_id)


@router.put("/profile")
def update_profile(
    payload: UpdateProfileIn,
    user_id: int = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service),
):
    """Only non-empty fields are applied; a new password is re-hashed."""
    return service.update_profile(
        user_id,
        name=payload.name,
        phone=payload.phone,
        profile_image=payload.profile_image,
        password=payload.password,
    )

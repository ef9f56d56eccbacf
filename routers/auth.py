from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import Session

from config import Settings, get_settings
from database import get_db
from utils.auth_service import AuthService
from utils.notifier import Notifier, build_notifier
from utils.security import decode_token


router = APIRouter(prefix="/auth", tags=["auth"])
bearer = HTTPBearer(auto_error=False)


@lru_cache
def get_notifier() -> Notifier:
    return build_notifier(get_settings())


def get_auth_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: Notifier = Depends(get_notifier),
) -> AuthService:
    # Mail goes out after the response is sent.
    return AuthService(db, settings, notifier, dispatch=background_tasks.add_task)


def get_current_user_id(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    settings: Settings = Depends(get_settings),
) -> int:
    if not creds or not creds.credentials:
        raise HTTPException(401, "Missing Authorization token")
    user_id = decode_token(creds.credentials, secret=settings.jwt_secret, algorithm=settings.jwt_algorithm)
    if user_id is None:
        raise HTTPException(401, "Invalid token")
    return user_id


class OtpBody(BaseModel):
    otp: Optional[str] = None

    @field_validator("otp", mode="before")
    @classmethod
    def otp_as_text(cls, value):
        # Clients may send the code as a JSON number.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class SignupIn(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None


class VerifyOtpIn(OtpBody):
    email: Optional[str] = None


class LoginIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordIn(BaseModel):
    email: Optional[str] = None


class ResetPasswordIn(OtpBody):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    new_password: Optional[str] = Field(default=None, alias="newPassword")


@router.post("/signup", status_code=201)
def signup(payload: SignupIn, service: AuthService = Depends(get_auth_service)):
    return service.signup(
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        password=payload.password,
    )


@router.post("/verify-otp")
def verify_otp(payload: VerifyOtpIn, service: AuthService = Depends(get_auth_service)):
    return service.verify_otp(email=payload.email, otp=payload.otp)


@router.post("/login")
def login(payload: LoginIn, service: AuthService = Depends(get_auth_service)):
    return service.login(email=payload.email, password=payload.password)


@router.post("/forgot-password")
def forgot_password(payload: ForgotPasswordIn, service: AuthService = Depends(get_auth_service)):
    return service.forgot_password(email=payload.email)


@router.post("/reset-password")
def reset_password(payload: ResetPasswordIn, service: AuthService = Depends(get_auth_service)):
    return service.reset_password(email=payload.email, otp=payload.otp, new_password=payload.new_password)

"""
Credential lifecycle: signup, OTP verification, login and password reset.

Account state per email is implicit: no row (unregistered), a row with
``is_verified`` False, or a row with ``is_verified`` True. Signup and
forgot-password both issue an OTP through the same ledger primitive; verify
and reset both claim one matching, unexpired code and then clear every
outstanding code for the email.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import Settings
from errors import AuthError, ConflictError, OtpError, UnknownAccount, ValidationError
from models import User, utcnow
from utils.notifier import Notifier
from utils.otp_service import claim_otp, consume_otps, generate_otp, issue_otp
from utils.security import burn_password_check, create_token, hash_password, verify_password


logger = logging.getLogger(__name__)

Dispatch = Callable[..., Any]


def _direct(fn: Callable[..., Any], *args: Any) -> None:
    fn(*args)


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def serialize_user(user: User) -> Dict[str, Any]:
    return {"id": user.id, "name": user.name, "email": user.email, "phone": user.phone}


def serialize_profile(user: User) -> Dict[str, Any]:
    return {
        **serialize_user(user),
        "profile_image": user.profile_image,
        "is_verified": bool(user.is_verified),
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


class AuthService:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        notifier: Notifier,
        *,
        dispatch: Optional[Dispatch] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.settings = settings
        self.notifier = notifier
        # BackgroundTasks.add_task in the HTTP layer; a plain call otherwise.
        self.dispatch = dispatch or _direct
        self.clock = clock

    def _find_user(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def _token_for(self, user: User) -> Dict[str, Any]:
        token = create_token(
            user_id=user.id,
            secret=self.settings.jwt_secret,
            algorithm=self.settings.jwt_algorithm,
            expire_days=self.settings.jwt_expire_days,
        )
        return {"token": token, "user": serialize_user(user)}

    def _issue_and_notify(self, email: str, message: str) -> Dict[str, Any]:
        code = generate_otp(self.settings.otp_length)
        issue_otp(self.db, email=email, code=code, now=self.clock())
        self.dispatch(self.notifier.send, email, code)

        resp: Dict[str, Any] = {"message": message}
        if self.settings.echo_otp:
            resp["otp"] = code
        return resp

    def _claim(self, email: str, code: str) -> None:
        claimed = claim_otp(
            self.db,
            email=email,
            code=code,
            now=self.clock(),
            ttl_seconds=self.settings.otp_ttl_seconds,
        )
        if not claimed:
            self.db.rollback()
            raise OtpError()
        # Sibling codes from the same window must not be replayable.
        consume_otps(self.db, email=email, commit=False)

    def signup(self, *, name: Optional[str], email: Optional[str], phone: Optional[str],
               password: Optional[str]) -> Dict[str, Any]:
        email = normalize_email(email)
        name = (name or "").strip()
        if not name or not email or not password:
            raise ValidationError()

        if self._find_user(email):
            raise ConflictError()

        user = User(
            name=name,
            email=email,
            phone=(phone or "").strip() or None,
            password_hash=hash_password(password),
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent signup for the same email.
            self.db.rollback()
            raise ConflictError()

        logger.info("User %s registered", user.id)
        return self._issue_and_notify(email, "Signup successful. OTP sent to email.")

    def verify_otp(self, *, email: Optional[str], otp: Optional[str]) -> Dict[str, Any]:
        email = normalize_email(email)
        if not email or not otp:
            raise ValidationError()

        self._claim(email, otp)
        user = self._find_user(email)
        if user is not None and not user.is_verified:
            user.is_verified = True
        self.db.commit()

        if user is None:
            logger.warning("OTP matched for %s but no user exists", email)
            raise UnknownAccount()
        return self._token_for(user)

    def login(self, *, email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError()

        user = self._find_user(email)
        # Same error and same bcrypt cost for unknown email and wrong password.
        if user is None:
            burn_password_check(password)
            raise AuthError()
        if not verify_password(password, user.password_hash):
            raise AuthError()
        return self._token_for(user)

    def forgot_password(self, *, email: Optional[str]) -> Dict[str, Any]:
        email = normalize_email(email)
        if not email:
            raise ValidationError("Missing email")

        user = self._find_user(email)
        if user is None:
            raise UnknownAccount()
        return self._issue_and_notify(user.email, "OTP sent to email")

    def reset_password(self, *, email: Optional[str], otp: Optional[str],
                       new_password: Optional[str]) -> Dict[str, Any]:
        email = normalize_email(email)
        if not email or not otp or not new_password:
            raise ValidationError()

        # Hash before touching the ledger so the transaction stays short.
        new_hash = hash_password(new_password)
        self._claim(email, otp)
        user = self._find_user(email)
        if user is not None:
            user.password_hash = new_hash
        self.db.commit()

        if user is None:
            raise UnknownAccount()
        return {"message": "Password reset successful"}

    def get_profile(self, user_id: int) -> Dict[str, Any]:
        user = self.db.get(User, user_id)
        if user is None:
            raise UnknownAccount("User not found", status_code=404)
        return {"user": serialize_profile(user)}

    def update_profile(
        self,
        user_id: int,
        *,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        profile_image: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Dict[str, Any]:
        user = self.db.get(User, user_id)
        if user is None:
            raise UnknownAccount("User not found", status_code=404)

        # Empty values mean "leave unchanged".
        if name and name.strip():
            user.name = name.strip()
        if phone and phone.strip():
            user.phone = phone.strip()
        if profile_image and profile_image.strip():
            user.profile_image = profile_image.strip()
        if password:
            user.password_hash = hash_password(password)

        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return {"user": serialize_profile(user)}

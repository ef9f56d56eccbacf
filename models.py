from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from database import Base


def utcnow() -> datetime:
    # Naive UTC, matching what SQLite hands back.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    # Always stored lowercase.
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)

    # Store password hash (bcrypt). Never store plaintext.
    password_hash = Column(String, nullable=False)

    # Flips to True on the first successful OTP verification.
    is_verified = Column(Boolean, default=False, nullable=False)

    profile_image = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class OtpChallenge(Base):
    """
    An outstanding OTP for an email.

    Several rows per email may coexist. Rows are never updated: they are
    created on issuance and deleted on consumption or expiry.
    """

    __tablename__ = "otp_challenges"

    id = Column(Integer, primary_key=True)
    email = Column(String, nullable=False, index=True)
    otp = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

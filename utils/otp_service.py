"""
OTP ledger operations.

Codes live in the ``otp_challenges`` table, one row per issuance. A row is
valid for ``ttl_seconds`` from ``created_at``; the scheduled purge removes
stale rows, but every lookup re-checks the window itself because the purge
only runs periodically.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from models import OtpChallenge, utcnow


logger = logging.getLogger(__name__)

OTP_TTL_SECONDS = 300


def generate_otp(length: int = 6) -> str:
    """Uniform in [10^(length-1), 10^length - 1], so never a leading zero."""
    if length < 1:
        raise ValueError("OTP length must be at least 1")
    low = 10 ** (length - 1)
    high = 10 ** length - 1
    return str(low + secrets.randbelow(high - low + 1))


def _cutoff(now: Optional[datetime], ttl_seconds: int) -> datetime:
    return (now or utcnow()) - timedelta(seconds=ttl_seconds)


def issue_otp(db: Session, *, email: str, code: str, now: Optional[datetime] = None) -> OtpChallenge:
    """Append a challenge. Existing challenges for the email stay valid."""
    row = OtpChallenge(email=email.strip().lower(), otp=code, created_at=now or utcnow())
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def claim_otp(
    db: Session,
    *,
    email: str,
    code: str,
    now: Optional[datetime] = None,
    ttl_seconds: int = OTP_TTL_SECONDS,
) -> bool:
    """
    Delete the unexpired rows matching (email, code) in a single statement.

    Returns True if at least one row was removed. Two concurrent claims for
    the same code cannot both see a deleted row, so only one of them wins.
    Does not commit; the caller commits together with its own changes.
    """
    code = (code or "").strip()
    if not code:
        return False
    deleted = (
        db.query(OtpChallenge)
        .filter(
            OtpChallenge.email == email.strip().lower(),
            OtpChallenge.otp == code,
            OtpChallenge.created_at > _cutoff(now, ttl_seconds),
        )
        .delete(synchronize_session=False)
    )
    return bool(deleted)


def consume_otps(db: Session, *, email: str, commit: bool = True) -> int:
    """Delete every challenge for the email. No-op when there are none."""
    deleted = (
        db.query(OtpChallenge)
        .filter(OtpChallenge.email == email.strip().lower())
        .delete(synchronize_session=False)
    )
    if commit:
        db.commit()
    return int(deleted or 0)


def purge_expired_otps(db: Session, *, now: Optional[datetime] = None, ttl_seconds: int = OTP_TTL_SECONDS) -> int:
    deleted = (
        db.query(OtpChallenge)
        .filter(OtpChallenge.created_at <= _cutoff(now, ttl_seconds))
        .delete(synchronize_session=False)
    )
    db.commit()
    if deleted:
        logger.info("Purged %d expired OTP challenges", deleted)
    return int(deleted or 0)

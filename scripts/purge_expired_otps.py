import os
import sys

from sqlalchemy.orm import Session

# Add repository root to path so we can import models/db
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from config import get_settings  # noqa: E402
from database import Base, SessionLocal, engine  # noqa: E402
from utils.otp_service import purge_expired_otps  # noqa: E402


def run_purge() -> int:
    """
    One-off purge of expired OTP challenges.

    The API process already does this on a schedule; this is for deployments
    that run the purge from cron instead.
    """
    Base.metadata.create_all(bind=engine)
    db: Session = SessionLocal()
    try:
        deleted = purge_expired_otps(db, ttl_seconds=get_settings().otp_ttl_seconds)
    finally:
        db.close()
    print(f"Purged {deleted} expired OTP challenges")
    return deleted


if __name__ == "__main__":
    run_purge()

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from app_logging import setup_logging
from config import get_settings
from database import Base, SessionLocal, engine
from errors import AuthServiceError
from routers.auth import router as auth_router
from routers.user import router as user_router
from utils.otp_service import purge_expired_otps


settings = get_settings()
setup_logging(settings)
logger = logging.getLogger(__name__)

app = FastAPI(title="Auth Service")

# Schema is small and additive (users, otp_challenges); no migration tool.
Base.metadata.create_all(bind=engine)

app.include_router(auth_router, prefix="/api")
app.include_router(user_router, prefix="/api")


@app.exception_handler(AuthServiceError)
def _auth_service_error(request: Request, exc: AuthServiceError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
def _request_validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"message": "Missing fields"})


@app.exception_handler(StarletteHTTPException)
def _http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(Exception)
def _unhandled_error(request: Request, exc: Exception):
    # Never leak the cause to the client.
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Server error"})


def _purge_expired_otps() -> int:
    """Storage-side TTL: drop OTP challenges older than the validity window."""
    db: Session = SessionLocal()
    try:
        return purge_expired_otps(db, ttl_seconds=settings.otp_ttl_seconds)
    finally:
        db.close()


# Ledger timestamps are naive UTC, so the purge clock is UTC too.
otp_purger = BackgroundScheduler(timezone="UTC")
otp_purger.add_job(
    _purge_expired_otps,
    "interval",
    seconds=settings.otp_purge_interval_seconds,
    id="purge_expired_otps",
    max_instances=1,
    coalesce=True,
)


@app.on_event("startup")
def _start_otp_purger():
    if not otp_purger.running:
        otp_purger.start()


@app.on_event("shutdown")
def _stop_otp_purger():
    if otp_purger.running:
        otp_purger.shutdown(wait=False)


@app.get("/")
def root():
    return {"status": "ok", "message": "Server is running"}

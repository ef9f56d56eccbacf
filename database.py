from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from config import get_settings


_PSYCOPG_SCHEMES = ("postgres://", "postgresql://")


def _database_url() -> str:
    url = get_settings().database_url
    if not url:
        # Users and OTP challenges in a local file.
        return "sqlite:///./app.db"
    # A bare Postgres scheme gets the psycopg (v3) driver; explicit drivers are kept.
    for scheme in _PSYCOPG_SCHEMES:
        if url.startswith(scheme):
            return "postgresql+psycopg://" + url[len(scheme):]
    return url


DATABASE_URL = _database_url()

_engine_kwargs = {"pool_pre_ping": True}
if DATABASE_URL.startswith("sqlite"):
    _engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 10}
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every session gets an empty database.
        _engine_kwargs["poolclass"] = StaticPool
else:
    _engine_kwargs["pool_timeout"] = 10

engine = create_engine(DATABASE_URL, **_engine_kwargs)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

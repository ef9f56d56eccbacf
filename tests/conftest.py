"""
Shared fixtures.

The database URL must point at in-memory SQLite before any project module
is imported, since the engine is created at import time.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "testing_secret"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from config import Settings, get_settings  # noqa: E402
from database import Base, SessionLocal, engine  # noqa: E402


class FakeNotifier:
    def __init__(self, ok: bool = True):
        self.ok = ok
        self.sent = []

    def send(self, email, code):
        self.sent.append((email, code))
        return self.ok


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        environment="development",
        jwt_secret="testing_secret",
        mail_transports="console",
    )


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def app(db, settings, notifier):
    from main import app as _app
    from routers.auth import get_notifier

    _app.dependency_overrides[get_settings] = lambda: settings
    _app.dependency_overrides[get_notifier] = lambda: notifier
    yield _app
    _app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    # Not used as a context manager, so the purge scheduler does not start.
    return TestClient(app)

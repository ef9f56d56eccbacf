from datetime import timedelta

from fastapi.testclient import TestClient

from models import OtpChallenge, User
from routers.auth import get_auth_service


SIGNUP = {"name": "A", "email": "a@x.com", "phone": "1234567890", "password": "pw1"}


def _signup(client, **overrides):
    res = client.post("/api/auth/signup", json={**SIGNUP, **overrides})
    assert res.status_code == 201, res.text
    return res.json()


def test_root(client):
    assert client.get("/").json() == {"status": "ok", "message": "Server is running"}


def test_signup_verify_scenario(client, notifier):
    body = _signup(client)
    assert body["message"] == "Signup successful. OTP sent to email."
    code = body["otp"]
    assert notifier.sent == [("a@x.com", code)]

    wrong = "100000" if code != "100000" else "100001"
    res = client.post("/api/auth/verify-otp", json={"email": "a@x.com", "otp": wrong})
    assert res.status_code == 400
    assert res.json() == {"message": "Invalid or expired OTP"}

    res = client.post("/api/auth/verify-otp", json={"email": "a@x.com", "otp": code})
    assert res.status_code == 200
    data = res.json()
    assert data["token"]
    assert data["user"]["email"] == "a@x.com"
    assert data["user"]["phone"] == "1234567890"
    assert set(data["user"]) == {"id", "name", "email", "phone"}

    res = client.post("/api/auth/verify-otp", json={"email": "a@x.com", "otp": code})
    assert res.status_code == 400
    assert res.json() == {"message": "Invalid or expired OTP"}


def test_verify_otp_accepts_numeric_code(client):
    code = _signup(client)["otp"]
    res = client.post("/api/auth/verify-otp", json={"email": "a@x.com", "otp": int(code)})
    assert res.status_code == 200, res.text
    assert res.json()["token"]


def test_reset_password_accepts_numeric_code(client):
    _signup(client)
    code = client.post("/api/auth/forgot-password", json={"email": "a@x.com"}).json()["otp"]
    res = client.post("/api/auth/reset-password",
                      json={"email": "a@x.com", "otp": int(code), "newPassword": "pw2"})
    assert res.status_code == 200, res.text
    assert client.post("/api/auth/login", json={"email": "a@x.com", "password": "pw2"}).status_code == 200


def test_signup_hides_otp_in_production(client, settings):
    settings.environment = "production"
    body = _signup(client)
    assert "otp" not in body


def test_signup_duplicate_and_missing_fields(client):
    _signup(client)
    res = client.post("/api/auth/signup", json={**SIGNUP, "email": "A@X.COM"})
    assert res.status_code == 400
    assert res.json() == {"message": "User already exists"}

    res = client.post("/api/auth/signup", json={"email": "b@x.com"})
    assert res.status_code == 400
    assert res.json() == {"message": "Missing fields"}


def test_malformed_body_is_a_bad_request(client):
    res = client.post("/api/auth/login", content=b"not json", headers={"content-type": "application/json"})
    assert res.status_code == 400
    assert res.json() == {"message": "Missing fields"}


def test_login(client):
    _signup(client)

    res = client.post("/api/auth/login", json={"email": "A@x.com", "password": "pw1"})
    assert res.status_code == 200
    assert res.json()["user"]["email"] == "a@x.com"

    bad_password = client.post("/api/auth/login", json={"email": "a@x.com", "password": "nope"})
    unknown = client.post("/api/auth/login", json={"email": "z@x.com", "password": "pw1"})
    assert bad_password.status_code == unknown.status_code == 400
    assert bad_password.json() == unknown.json() == {"message": "Invalid credentials"}

    res = client.post("/api/auth/login", json={"email": "a@x.com"})
    assert res.status_code == 400


def test_forgot_and_reset_password_scenario(client, db):
    signup_code = _signup(client)["otp"]

    res = client.post("/api/auth/forgot-password", json={"email": "nobody@x.com"})
    assert res.status_code == 400
    assert res.json() == {"message": "No user with that email"}

    res = client.post("/api/auth/forgot-password", json={"email": "a@x.com"})
    assert res.status_code == 200
    reset_code = res.json()["otp"]

    db.expire_all()
    assert db.query(OtpChallenge).filter_by(email="a@x.com").count() == 2
    assert db.query(User).one().is_verified is False

    res = client.post("/api/auth/reset-password",
                      json={"email": "a@x.com", "otp": reset_code, "newPassword": "pw2"})
    assert res.status_code == 200
    assert res.json() == {"message": "Password reset successful"}

    db.expire_all()
    assert db.query(OtpChallenge).count() == 0

    old = client.post("/api/auth/login", json={"email": "a@x.com", "password": "pw1"})
    new = client.post("/api/auth/login", json={"email": "a@x.com", "password": "pw2"})
    assert old.status_code == 400
    assert new.status_code == 200

    res = client.post("/api/auth/verify-otp", json={"email": "a@x.com", "otp": signup_code})
    assert res.status_code == 400


def test_reset_password_with_expired_code(client, db):
    code = _signup(client)["otp"]
    row = db.query(OtpChallenge).filter_by(otp=code).one()
    row.created_at = row.created_at - timedelta(seconds=301)
    db.commit()

    res = client.post("/api/auth/reset-password",
                      json={"email": "a@x.com", "otp": code, "newPassword": "pw2"})
    assert res.status_code == 400
    assert res.json() == {"message": "Invalid or expired OTP"}


def test_notifier_failure_does_not_fail_signup(client, notifier):
    notifier.ok = False
    res = client.post("/api/auth/signup", json=SIGNUP)
    assert res.status_code == 201
    assert len(notifier.sent) == 1


def test_unexpected_error_is_generic_500(app):
    class Broken:
        def login(self, **kwargs):
            raise RuntimeError("database is on fire")

    app.dependency_overrides[get_auth_service] = lambda: Broken()
    client = TestClient(app, raise_server_exceptions=False)

    res = client.post("/api/auth/login", json={"email": "a@x.com", "password": "pw1"})
    assert res.status_code == 500
    assert res.json() == {"message": "Server error"}
    assert "fire" not in res.text


def test_otp_purger_follows_app_lifecycle(app):
    from main import otp_purger

    with TestClient(app):
        assert otp_purger.running
        assert otp_purger.get_job("purge_expired_otps") is not None
    assert not otp_purger.running


def test_database_url_driver_selection(monkeypatch):
    import database
    from config import Settings

    def url_for(value):
        monkeypatch.setattr(database, "get_settings", lambda: Settings(_env_file=None, database_url=value))
        return database._database_url()

    assert url_for("postgres://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert url_for("postgresql://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert url_for("postgresql+psycopg2://u:p@h/db") == "postgresql+psycopg2://u:p@h/db"
    assert url_for("") == "sqlite:///./app.db"

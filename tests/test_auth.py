import time
import uuid

import pytest
from sqlalchemy.exc import IntegrityError

import app.auth as auth
from app.auth import get_auth_client, map_login_error, map_signup_error
from app.main import app
from domain.models import Profile
from infra.clients import AuthServiceError

from .conftest import auth_headers, make_token


class FakeAuthClient:
    def __init__(self, error=None, session=None):
        self.error = error
        self.session = session or {}
        self.calls = []

    def _answer(self, name, *args):
        self.calls.append((name,) + args)
        if self.error:
            raise AuthServiceError(self.error, status_code=400)
        return self.session

    def sign_in(self, email, password):
        return self._answer("sign_in", email)

    def sign_up(self, email, password, metadata=None):
        return self._answer("sign_up", email, metadata)

    def sign_out(self, access_token):
        self._answer("sign_out", access_token)


@pytest.fixture
def fake_auth(client):
    fake = FakeAuthClient()
    app.dependency_overrides[get_auth_client] = lambda: fake
    return fake


def test_error_mapping():
    assert map_login_error("Invalid login credentials") == (
        "Invalid email or password. Please check your credentials and try again."
    )
    assert map_login_error("Email not confirmed").startswith("Please check your email")
    assert map_login_error("something else") == "Login failed. Please try again."
    assert map_signup_error("User already registered").startswith("An account with this email already exists")
    assert map_signup_error("Password should be at least 6 characters") == "Password must be at least 6 characters long."
    assert map_signup_error(None) == "Signup failed. Please try again."


def test_signup_creates_profile(client, db, fake_auth):
    user_id = str(uuid.uuid4())
    fake_auth.session = {"access_token": "tok", "refresh_token": "ref", "user": {"id": user_id}}

    res = client.post("/auth/signup", json={"email": "neo@example.com", "password": "secret1", "username": "neo_1"})

    assert res.status_code == 200
    body = res.json()
    assert body["user"] == {"id": user_id, "email": "neo@example.com", "username": "neo_1"}
    assert body["requires_confirmation"] is False
    assert fake_auth.calls[0][2] == {"username": "neo_1", "display_name": "neo_1"}
    assert db.query(Profile).filter(Profile.id == user_id).one().username == "neo_1"


def test_signup_without_session_requires_confirmation(client, fake_auth):
    fake_auth.session = {"id": str(uuid.uuid4()), "email": "a@example.com"}
    res = client.post("/auth/signup", json={"email": "a@example.com", "password": "secret1", "username": "anna"})
    assert res.status_code == 200
    assert res.json()["requires_confirmation"] is True


def test_signup_validation(client, fake_auth, make_profile):
    make_profile("taken")

    res = client.post("/auth/signup", json={"email": "a@example.com", "password": "secret1", "username": "no"})
    assert res.status_code == 400
    assert res.json()["detail"].startswith("Username must be 3-20 characters")

    res = client.post("/auth/signup", json={"email": "a@example.com", "password": "secret1", "username": "taken"})
    assert res.status_code == 400
    assert res.json()["detail"].startswith("Username is already taken")

    res = client.post("/auth/signup", json={"email": "not-an-email", "password": "secret1", "username": "fresh"})
    assert res.status_code == 400
    assert fake_auth.calls == []


def test_signup_maps_service_error(client, fake_auth):
    fake_auth.error = "User already registered"
    res = client.post("/auth/signup", json={"email": "a@example.com", "password": "secret1", "username": "fresh"})
    assert res.status_code == 400
    assert res.json()["detail"] == "An account with this email already exists. Please try logging in instead."


def test_login(client, fake_auth):
    fake_auth.session = {"access_token": "tok", "refresh_token": "ref", "expires_in": 3600, "user": {"id": "u1"}}
    res = client.post("/auth/login", json={"email": "a@example.com", "password": "pw"})
    assert res.status_code == 200
    assert res.json()["access_token"] == "tok"
    assert res.json()["token_type"] == "bearer"

    fake_auth.error = "Invalid login credentials"
    res = client.post("/auth/login", json={"email": "a@example.com", "password": "bad"})
    assert res.status_code == 401
    assert res.json()["detail"].startswith("Invalid email or password")


def test_logout(client, fake_auth):
    user_id = str(uuid.uuid4())
    res = client.post("/auth/logout", headers=auth_headers(user_id))
    assert res.json() == {"success": True}
    assert fake_auth.calls[0][0] == "sign_out"

    fake_auth.error = "session missing"
    res = client.post("/auth/logout", headers=auth_headers(user_id))
    assert res.json() == {"success": False, "detail": "session missing"}


def test_me_requires_valid_token(client):
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401

    expired = make_token(str(uuid.uuid4()), expires_in=-60)
    assert client.get("/auth/me", headers={"Authorization": f"Bearer {expired}"}).status_code == 401


def test_me_bootstraps_profile(client, db):
    user_id = str(uuid.uuid4())
    res = client.get("/auth/me", headers=auth_headers(user_id, email="trin@example.com", username="trinity"))

    assert res.status_code == 200
    body = res.json()
    assert body["id"] == user_id
    assert body["username"] == "trinity"
    assert body["is_default"] is False
    assert db.query(Profile).count() == 1

    # second call reuses the row
    again = client.get("/auth/me", headers=auth_headers(user_id, username="trinity")).json()
    assert again["created_at"] == body["created_at"]
    assert db.query(Profile).count() == 1


def test_me_falls_back_when_username_is_taken(client, make_profile):
    make_profile("trinity")
    user_id = str(uuid.uuid4())
    body = client.get("/auth/me", headers=auth_headers(user_id, username="trinity")).json()
    assert body["username"] == f"user_{user_id.replace('-', '')[:8]}"


def test_me_times_out_to_default_user(client, monkeypatch):
    def slow(db, claims):
        time.sleep(0.5)
        return {"never": True}

    monkeypatch.setattr(auth, "PROFILE_QUERY_TIMEOUT_SECONDS", 0.05)
    monkeypatch.setattr(auth, "load_or_create_profile", slow)

    user_id = str(uuid.uuid4())
    body = client.get("/auth/me", headers=auth_headers(user_id, email="morpheus@example.com")).json()

    assert body["is_default"] is True
    assert body["id"] == user_id
    assert body["username"] == "morpheus"
    assert body["followers_count"] == 0


def test_me_falls_back_to_default_user_on_query_error(client, monkeypatch):
    def broken(db, claims):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(auth, "load_or_create_profile", broken)

    user_id = str(uuid.uuid4())
    res = client.get("/auth/me", headers=auth_headers(user_id, email="tank@example.com"))
    assert res.status_code == 200
    assert res.json()["is_default"] is True
    assert res.json()["username"] == "tank"


def test_concurrent_first_login_reuses_existing_profile(db, monkeypatch):
    user_id = str(uuid.uuid4())
    real_commit = db.commit

    def lose_race():
        # The other request inserts the profile first
        db.rollback()
        monkeypatch.setattr(db, "commit", real_commit)
        db.add(Profile(id=user_id, username="winner", email="winner@example.com"))
        real_commit()
        raise IntegrityError("INSERT INTO profiles", {}, Exception("duplicate key"))

    monkeypatch.setattr(db, "commit", lose_race)

    data = auth.load_or_create_profile(db, {"sub": user_id, "email": "late@example.com"})
    assert data["username"] == "winner"
    assert data["is_default"] is False
    assert db.query(Profile).filter(Profile.id == user_id).count() == 1


def test_username_available(client, make_profile):
    make_profile("oracle")
    assert client.get("/auth/username-available", params={"username": "oracle"}).json()["available"] is False
    assert client.get("/auth/username-available", params={"username": "cypher"}).json() == {
        "username": "cypher",
        "valid": True,
        "available": True,
    }
    assert client.get("/auth/username-available", params={"username": "x!"}).json()["valid"] is False

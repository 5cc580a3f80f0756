import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import domain.models  # noqa: F401  (registers the tables on Base.metadata)
from app.db import Base, get_db
from app.main import app
from app.settings import JWT_ALGORITHM, JWT_AUDIENCE, SUPABASE_JWT_SECRET
from domain.models import Profile


def make_token(user_id, email="dev@example.com", username=None, expires_in=3600):
    now = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "aud": JWT_AUDIENCE,
        "email": email,
        "role": "authenticated",
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
        "user_metadata": {"username": username} if username else {},
    }
    return jwt.encode(claims, SUPABASE_JWT_SECRET, algorithm=JWT_ALGORITHM)


def auth_headers(user_id, **kwargs):
    return {"Authorization": f"Bearer {make_token(user_id, **kwargs)}"}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def client(db):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_profile(db):
    def _make(username, display_name=None, **fields):
        profile = Profile(
            id=str(uuid.uuid4()),
            username=username,
            email=f"{username}@example.com",
            display_name=display_name or username.title(),
            **fields,
        )
        db.add(profile)
        db.commit()
        return profile

    return _make

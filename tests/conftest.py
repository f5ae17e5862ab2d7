import os

# Configure before anything imports daystack.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["EMAIL_SERVER"] = ""
os.environ["GOOGLE_CLIENT_ID"] = ""
os.environ["GOOGLE_CLIENT_SECRET"] = ""

import pytest
from fastapi.testclient import TestClient

import daystack.models  # noqa: F401
from daystack.auth import issue_session
from daystack.database import Base, SessionLocal, engine
from daystack.main import app
from daystack.services.user_service import UserService


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
def user(db):
    return UserService.upsert(db, "ada@example.com", "Ada", verified=True)


@pytest.fixture
def other_user(db):
    return UserService.upsert(db, "grace@example.com", "Grace", verified=True)


@pytest.fixture
def token(db, user):
    return issue_session(db, user.id, user.email, "email")


@pytest.fixture
def anon_client(db):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def client(db, token):
    with TestClient(app) as c:
        c.headers["Authorization"] = f"Bearer {token}"
        yield c


@pytest.fixture
def other_client(db, other_user):
    other_token = issue_session(db, other_user.id, other_user.email, "email")
    with TestClient(app) as c:
        c.headers["Authorization"] = f"Bearer {other_token}"
        yield c


@pytest.fixture
def make_habit(client):
    def _make(name="Read", type="boolean", target=None, color="#3B82F6"):
        resp = client.post("/api/v1/habits", json={"name": name, "type": type, "target": target, "color": color})
        assert resp.status_code == 200, resp.text
        return resp.json()
    return _make

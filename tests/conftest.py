"""Shared test fixtures for the DocuHub test suite.

Tests run against a throwaway SQLite file. The app creates its tables on
import, and every table is emptied before each test.
"""

import os
import tempfile

# Force auth off and use the test database before any app imports.
_TEST_DIR = tempfile.mkdtemp(prefix="docuhub-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["AUTH_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "development"
os.environ["LOG_FORMAT"] = "text"
os.environ["AI_MODEL"] = ""

import pytest
from fastapi.testclient import TestClient

from docuhub.database import Base, get_db, SessionLocal
from docuhub.main import app
from docuhub.core.token_factory import create_token
from docuhub.core.config import settings
from docuhub.middleware.request_context import _rate_buckets


@pytest.fixture(autouse=True)
def _clean_tables():
    """Empty every table before each test, children first."""
    db = SessionLocal()
    try:
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
    finally:
        db.close()
    yield


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def client(db):
    """FastAPI TestClient with the DB dependency overridden to use the test session."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    _rate_buckets.clear()  # Reset rate limiter so tests don't hit 429
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_enabled(monkeypatch):
    monkeypatch.setattr(settings, "auth_enabled", True)


def bearer(user_id: str, role: str = "editor") -> dict:
    """Authorization header for a user that exists in the database."""
    token = create_token(subject=user_id, role=role, secret=settings.jwt_secret_key)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_user(db):
    """Create a user row directly and return ``(user, headers)``."""
    from docuhub.services import auth_service

    counter = {"n": 0}

    def _make(display_name: str = None, role: str = "editor"):
        counter["n"] += 1
        name = display_name or f"User {counter['n']}"
        user = auth_service.register_user(
            db, f"user{counter['n']}@example.com", "correct-horse", name
        )
        if user.role != role:
            user = auth_service.update_user_role(db, user.user_id, role)
        return user, bearer(user.user_id, user.role)

    return _make


# --- payload factories ---


def make_environment(name: str = "Prod", **overrides) -> dict:
    payload = {"name": name, "description": "Production", "color": "#ef4444"}
    payload.update(overrides)
    return payload


def make_project(environment_id: int, code: str = "PRY", name: str = "Payments", **overrides) -> dict:
    payload = {"code": code, "name": name, "environment_id": environment_id}
    payload.update(overrides)
    return payload


def make_document(project_id: int, title: str = "Test Document", content: str = "hello", **overrides) -> dict:
    payload = {"project_id": project_id, "type": "tecnica", "title": title, "content": content}
    payload.update(overrides)
    return payload


def make_spec_content(title: str = "Pets API") -> dict:
    return {
        "openapi": "3.0.0",
        "info": {"title": title, "version": "1.0.0"},
        "x-internal": {"owner": "platform"},
        "paths": {
            "/pets": {
                "get": {"summary": "List pets", "responses": {"200": {"description": "OK"}}},
            },
        },
        "components": {"schemas": {"Pet": {"type": "object"}}},
    }


def make_api_spec(project_id=None, name: str = "Pets", **overrides) -> dict:
    payload = {"name": name, "project_id": project_id, "spec_content": make_spec_content()}
    payload.update(overrides)
    return payload


# --- API helpers ---


def create_environment(client, headers=None, **kwargs) -> dict:
    resp = client.post("/api/environments", json=make_environment(**kwargs), headers=headers or {})
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_project(client, headers=None, environment_id=None, **kwargs) -> dict:
    if environment_id is None:
        environment_id = create_environment(client, headers)["id"]
    resp = client.post("/api/projects", json=make_project(environment_id, **kwargs), headers=headers or {})
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_document(client, project_id: int, headers=None, **kwargs) -> dict:
    resp = client.post("/api/documents", json=make_document(project_id, **kwargs), headers=headers or {})
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_api_spec(client, project_id=None, headers=None, **kwargs) -> dict:
    resp = client.post("/api/api-specs", json=make_api_spec(project_id, **kwargs), headers=headers or {})
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_api_key(client, headers=None, **payload) -> dict:
    payload.setdefault("name", "CI key")
    resp = client.post("/api/api-keys", json=payload, headers=headers or {})
    assert resp.status_code == 201, resp.text
    return resp.json()

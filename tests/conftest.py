# tests/conftest.py

from __future__ import annotations

import os

# Settings are read at import time; pin them before tasktracker is imported.
os.environ.setdefault("TASKTRACKER_JWT_SECRET", "test-secret")
os.environ.setdefault("TASKTRACKER_ENV", "test")
os.environ.setdefault("TASKTRACKER_DATABASE_URL", "sqlite://")

from collections.abc import Callable, Iterator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from tasktracker.database import get_db, init_db  # noqa: E402
from tasktracker.main import app  # noqa: E402

from .helpers import bearer  # noqa: E402


@pytest.fixture()
def session_factory() -> Iterator[sessionmaker]:
    """Fresh in-memory database per test, shared across connections."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture()
def client(session_factory: sessionmaker) -> Iterator[TestClient]:
    def _get_test_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_test_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def register(client: TestClient) -> Callable[..., dict]:
    """Register a user and return the response body ({message, token, user})."""

    def _register(username: str, email: str, password: str = "password1") -> dict:
        resp = client.post(
            "/auth/register",
            json={"username": username, "email": email, "password": password},
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _register


@pytest.fixture()
def alice(register) -> dict:
    return register("alice", "alice@x.com")


@pytest.fixture()
def bob(register) -> dict:
    return register("bob", "bob@x.com")


@pytest.fixture()
def alice_headers(alice: dict) -> dict[str, str]:
    return bearer(alice["token"])


@pytest.fixture()
def bob_headers(bob: dict) -> dict[str, str]:
    return bearer(bob["token"])

# tests/conftest.py

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from todo_api.accounts import AccountService
from todo_api.config import Settings
from todo_api.db import Database
from todo_api.main import create_app
from todo_api.tasks import TaskStore

TEST_SECRET = "test-secret"
# keep hashing cheap in tests
TEST_ITERS = 1_000


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'todo.sqlite3'}",
        jwt_secret=TEST_SECRET,
        pbkdf2_iters=TEST_ITERS,
    )


@pytest.fixture()
def db(settings: Settings) -> Iterator[Database]:
    database = Database(settings.database_url)
    database.setup()
    yield database
    database.teardown()


@pytest.fixture()
def accounts(db: Database, settings: Settings) -> AccountService:
    return AccountService(
        db,
        jwt_secret=settings.jwt_secret,
        jwt_ttl_seconds=settings.jwt_ttl_seconds,
        pbkdf2_iters=settings.pbkdf2_iters,
    )


@pytest.fixture()
def clock() -> Callable[[], datetime]:
    """Deterministic clock: each call is one second after the previous."""
    start = datetime(2024, 1, 1, 12, 0, 0)
    ticks = {"n": 0}

    def _now() -> datetime:
        ticks["n"] += 1
        return start + timedelta(seconds=ticks["n"])

    return _now


@pytest.fixture()
def store(db: Database, clock: Callable[[], datetime]) -> TaskStore:
    return TaskStore(db, clock=clock)


@pytest.fixture()
def client(settings: Settings) -> Iterator[TestClient]:
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


def signup(client: TestClient, email: str, password: str = "secret1") -> dict:
    res = client.post("/auth/signup", json={"email": email, "password": password})
    assert res.status_code == 201, res.text
    return res.json()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}

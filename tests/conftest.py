"""Shared test fixtures."""

import os
from collections.abc import Callable, Generator
from contextlib import ExitStack

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import ecocampus.config as config_module
import ecocampus.database as db_module
import ecocampus.records.tables  # noqa: F401
from ecocampus.store.client import StoreClient
from ecocampus.store.sql import SqlTableBackend

DEMO_USERS = (
    "admin@demo.com:password123:ADMIN:Admin,"
    "staff@demo.com:password123:STAFF:Staff,"
    "student@demo.com:password123:STUDENT:Student"
)


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    """Keep the developer's environment and .env out of every test."""
    for key in list(os.environ):
        if key.startswith("ECOCAMPUS_") or key == "API_KEY":
            monkeypatch.delenv(key)
    monkeypatch.setattr(config_module, "_ENV_FILE", tmp_path / ".env")


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created.

    StaticPool ensures every session uses the same connection,
    so the in-memory database is shared across the test.
    """
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(eng)
    return eng


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    with Session(engine) as s:
        yield s


@pytest.fixture
def store(engine) -> StoreClient:
    return StoreClient(SqlTableBackend(engine))


@pytest.fixture
def make_client(engine, monkeypatch) -> Generator[Callable[..., TestClient], None, None]:
    """Build TestClients whose lifespan reads the given ECOCAMPUS_* settings."""
    from ecocampus.main import app

    # Patch the module-level engine so the lifespan's init_db() and SQL store use it
    monkeypatch.setattr(db_module, "engine", engine)

    with ExitStack() as stack:

        def _make(**env: str) -> TestClient:
            settings = {"ECOCAMPUS_ENVIRONMENT": "development", "ECOCAMPUS_DEMO_USERS": DEMO_USERS}
            settings.update(env)
            for key, value in settings.items():
                monkeypatch.setenv(key, value)
            return stack.enter_context(TestClient(app))

        yield _make


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()

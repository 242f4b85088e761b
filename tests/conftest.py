"""Pytest configuration and shared fixtures."""

import logging
from collections.abc import AsyncGenerator, Generator
from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from taskpulse.core import db_client
from taskpulse.domain.user import User
from taskpulse.interface.auth import require_principal
from taskpulse.main import app


logger = logging.getLogger(__name__)


def utc(year: int, month: int, day: int, hour: int = 0) -> datetime:
    """Shorthand for an aware UTC datetime."""
    return datetime(year, month, day, hour, tzinfo=UTC)


@pytest.fixture
async def db_path(tmp_path) -> AsyncGenerator[str, None]:
    """Schema-initialised SQLite file, connection closed on teardown."""
    path = str(tmp_path / "tasks.db")
    await db_client.init_db(db_path=path)
    yield path
    await db_client.close_connection(db_path=path)


@pytest.fixture
def principal() -> User:
    return User(id="1", username="alice", token_version=0)


@pytest.fixture
def client(principal: User) -> Generator[TestClient, None, None]:
    """Test client with the identity dependency resolved to a fixed principal.

    The app lifespan is not entered, so no database is initialised.
    """
    app.dependency_overrides[require_principal] = lambda: principal
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client() -> TestClient:
    """Test client that goes through real bearer token verification."""
    return TestClient(app)

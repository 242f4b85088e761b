"""Pytest configuration and fixtures for unit tests."""

from datetime import UTC, datetime, timedelta

import pytest

from taskpulse.core.cache_client import InMemoryCache
from taskpulse.services.paged_cache import PagedCache
from tests.unit.mocks import InMemoryTaskStore


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def in_memory_store():
    """Provides a fresh InMemoryTaskStore for each test."""
    return InMemoryTaskStore()


@pytest.fixture
def patched_db(monkeypatch, in_memory_store):
    """Patches taskpulse.core.db_client store functions to use InMemoryTaskStore."""
    for name in (
        "create_user",
        "get_user",
        "list_users",
        "create_task",
        "get_task",
        "update_task",
        "find_tasks",
        "count_tasks",
    ):
        monkeypatch.setattr(f"taskpulse.core.db_client.{name}", getattr(in_memory_store, name))

    return in_memory_store


@pytest.fixture
def clock():
    """Clock fixed at 2024-01-08T00:00Z until advanced."""
    return FakeClock(datetime(2024, 1, 8, tzinfo=UTC))


@pytest.fixture
def memory_cache():
    return InMemoryCache()


@pytest.fixture
def paged_cache(memory_cache, clock):
    """PagedCache with a five minute TTL over an in-memory backend."""
    return PagedCache(memory_cache, ttl_seconds=300, clock=clock)

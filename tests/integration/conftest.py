"""Pytest configuration and fixtures for integration tests."""

import pytest


@pytest.fixture
def sqlite_store(monkeypatch, db_path):
    """Points every store call without an explicit path at the temporary database."""
    monkeypatch.setattr("taskpulse.core.config.settings.sqlite_db_path", db_path)
    return db_path

"""Pytest configuration and fixtures for integration tests.

These run against a real sqlite file created in a temporary directory.
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from src.core import db_client
from src.core.config import settings
from src.main import app


@pytest.fixture
async def owner_id(sqlite_db) -> str:
    """A stored user that tasks can reference."""
    record = await db_client.create_record(
        collection="users",
        data={"email": "owner@example.com", "name": "Owner", "password_hash": "scrypt$00$00"},
    )
    return record["id"]


@pytest.fixture
def live_client(sqlite_db_path, monkeypatch) -> Generator[TestClient, None, None]:
    """Full application with its lifespan running against a temporary database."""
    monkeypatch.setattr(settings, "enable_reminders", False)
    with TestClient(app) as client:
        yield client

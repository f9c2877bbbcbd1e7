"""Pytest configuration and shared fixtures."""

import logging
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from src.core import db_client
from src.core.config import settings
from src.core.rate_limiter import rate_limiter


logger = logging.getLogger(__name__)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Each test starts with empty request counters."""
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def sqlite_db_path(tmp_path: Path, monkeypatch) -> str:
    """Point the app at a throwaway sqlite file for the duration of a test."""
    path = str(tmp_path / "timebox-test.db")
    monkeypatch.setattr(settings, "sqlite_db_path", path)
    return path


@pytest.fixture
async def sqlite_db(sqlite_db_path: str) -> AsyncGenerator[str]:
    """Initialised schema on a fresh database; the connection is closed afterwards."""
    await db_client.init_db()
    yield sqlite_db_path
    await db_client.close_connection()

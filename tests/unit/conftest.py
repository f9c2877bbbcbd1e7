"""Pytest configuration and fixtures for unit tests."""

from datetime import datetime, timedelta

import pytest

from src.domain.task import Task
from src.interface.email_sender import SendEmailResult
from tests.unit.mocks import NOW, InMemoryDBClient


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


async def _mock_send_task_reminder_email(**kwargs) -> SendEmailResult:
    """Mock email sender that returns success instantly."""
    return SendEmailResult(success=True, message_id="mock_message_id")


async def _mock_send_verification_email(**kwargs) -> SendEmailResult:
    return SendEmailResult(success=True, message_id="mock_verification_id")


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches src.core.db_client functions to use InMemoryDBClient.

    Also patches the email sender to avoid real HTTP calls and retry delays.
    """
    monkeypatch.setattr("src.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("src.core.db_client.create_records", in_memory_db.create_records)
    monkeypatch.setattr("src.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("src.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("src.core.db_client.get_full_list", in_memory_db.get_full_list)
    monkeypatch.setattr("src.core.db_client.get_first_record", in_memory_db.get_first_record)

    monkeypatch.setattr(
        "src.services.reminder_service.send_task_reminder_email",
        _mock_send_task_reminder_email,
    )
    monkeypatch.setattr(
        "src.services.user_service.send_verification_email",
        _mock_send_verification_email,
    )

    return in_memory_db


@pytest.fixture
def task_factory():
    """Build Task values relative to the fixed clock.

    Usage:
        task = task_factory(start=-1, end=2, is_completed=True)  # offsets in hours
    """

    def _create(*, start: float = -1, end: float = 1, **overrides) -> Task:
        data = {
            "id": "1",
            "owner_id": "u1",
            "title": "Write report",
            "start_time": NOW + timedelta(hours=start),
            "end_time": NOW + timedelta(hours=end),
        }
        data.update(overrides)
        return Task(**data)

    return _create


@pytest.fixture
def seed_task(in_memory_db):
    """Insert a task record directly, bypassing validation.

    Usage:
        task_id = await seed_task(owner_id="1000", start=-1, end=2)
    """

    async def _seed(*, owner_id: str = "1000", start: float = -1, end: float = 1, **overrides) -> str:
        data = {
            "owner_id": owner_id,
            "title": "Seeded task",
            "description": None,
            "start_time": NOW + timedelta(hours=start),
            "end_time": NOW + timedelta(hours=end),
            "priority": "medium",
            "is_completed": False,
            "is_deleted": False,
        }
        data.update(overrides)
        record = await in_memory_db.create_record(collection="tasks", data=data)
        return record["id"]

    return _seed

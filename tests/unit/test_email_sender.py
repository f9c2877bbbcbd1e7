"""Tests for the reminder and verification email sender using httpx."""

from collections.abc import Generator
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from src.interface.email_sender import (
    build_reminder_email,
    build_verification_email,
    send_task_reminder_email,
    send_verification_email,
)


END = datetime(2026, 3, 4, 10, 5, tzinfo=UTC)


@pytest.fixture(autouse=True)
def mock_asyncio_sleep() -> Generator[AsyncMock, None, None]:
    """Mock asyncio.sleep to avoid actual delays in retry tests."""
    with patch("src.interface.email_sender.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


@pytest.fixture
def email_api(monkeypatch) -> None:
    monkeypatch.setattr("src.interface.email_sender.settings.email_api_url", "https://mail.example.com/send")
    monkeypatch.setattr("src.interface.email_sender.settings.email_api_key", "key-123")


def _response(status_code: int, *, json_data: dict | None = None, text: str = "") -> MagicMock:
    response = MagicMock(spec=httpx.Response)
    response.status_code = status_code
    response.is_success = 200 <= status_code < 300
    response.json.return_value = json_data or {}
    response.text = text
    response.request = MagicMock()
    return response


@pytest.mark.unit
class TestBuildReminderEmail:
    def test_mentions_title_and_local_end_time(self, monkeypatch):
        monkeypatch.setattr("src.core.time_window.settings.timezone", "Asia/Tokyo")

        subject, body = build_reminder_email(user_name="Kim", task_title="Standup notes", end_time=END)

        assert subject == "Reminder: Standup notes ends soon"
        assert "Hi Kim" in body
        assert "19:05" in body


@pytest.mark.unit
class TestSendTaskReminderEmail:
    async def test_console_fallback_without_api(self, monkeypatch):
        monkeypatch.setattr("src.interface.email_sender.settings.email_api_url", None)

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            result = await send_task_reminder_email(
                to_email="a@example.com", user_name="A", task_title="T", end_time=END
            )

        assert result.success is True
        assert result.delivered_to_console is True
        mock_post.assert_not_called()

    async def test_success(self, email_api):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(202, json_data={"id": "msg_1"})

            result = await send_task_reminder_email(
                to_email="a@example.com", user_name="A", task_title="T", end_time=END
            )

        assert result.success is True
        assert result.message_id == "msg_1"
        call_kwargs = mock_post.call_args.kwargs
        assert call_kwargs["json"]["to"] == "a@example.com"
        assert call_kwargs["headers"]["Authorization"] == "Bearer key-123"

    async def test_client_error_not_retried(self, email_api):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(422, text="invalid recipient")

            result = await send_task_reminder_email(
                to_email="bad", user_name="A", task_title="T", end_time=END
            )

        assert result.success is False
        assert "invalid recipient" in result.error
        assert mock_post.call_count == 1

    async def test_server_error_retried(self, email_api, mock_asyncio_sleep):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(503)

            result = await send_task_reminder_email(
                to_email="a@example.com", user_name="A", task_title="T", end_time=END, max_retries=3
            )

        assert result.success is False
        assert result.error == "Failed after retries: Server error: 503"
        assert mock_post.call_count == 3
        assert mock_asyncio_sleep.await_count == 2

    async def test_transport_error_then_success(self, email_api):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [httpx.ConnectError("refused"), _response(200, json_data={"id": "msg_2"})]

            result = await send_task_reminder_email(
                to_email="a@example.com", user_name="A", task_title="T", end_time=END
            )

        assert result.success is True
        assert mock_post.call_count == 2


@pytest.mark.unit
class TestSendVerificationEmail:
    def test_body_carries_link_and_lifetime(self):
        subject, body = build_verification_email(user_name="Kim", verify_url="https://api.example.com/v?token=abc")

        assert subject == "Verify your timebox email"
        assert "https://api.example.com/v?token=abc" in body
        assert "60 minutes" in body

    async def test_console_fallback_without_api(self, monkeypatch):
        monkeypatch.setattr("src.interface.email_sender.settings.email_api_url", None)

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            result = await send_verification_email(to_email="a@example.com", user_name="A", verify_url="u")

        assert result.delivered_to_console is True
        mock_post.assert_not_called()

    async def test_posts_through_email_api(self, email_api):
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(202, json_data={"id": "msg_3"})

            result = await send_verification_email(to_email="a@example.com", user_name="A", verify_url="u")

        assert result.message_id == "msg_3"
        assert mock_post.call_args.kwargs["json"]["subject"] == "Verify your timebox email"

"""Reminder and verification email sender with retry logic over an HTTP email API."""

import asyncio
import logging
from datetime import datetime

import httpx
from pydantic import BaseModel, Field

from src.core.config import constants, settings
from src.core.time_window import app_timezone


logger = logging.getLogger(__name__)


# HTTP status code constants for error handling
HTTP_CLIENT_ERROR_START = 400
HTTP_CLIENT_ERROR_END = 500


class SendEmailResult(BaseModel):
    """Result of sending an email."""

    success: bool = Field(..., description="Whether the email was accepted")
    message_id: str | None = Field(None, description="Provider message ID if successful")
    error: str | None = Field(None, description="Error message if failed")
    delivered_to_console: bool = Field(False, description="True when no email API is configured")


def build_reminder_email(*, user_name: str, task_title: str, end_time: datetime) -> tuple[str, str]:
    """Render the subject and plain-text body of a task reminder."""
    local_end = end_time.astimezone(app_timezone())
    subject = f"Reminder: {task_title} ends soon"
    body = (
        f"Hi {user_name},\n\n"
        f'Your task "{task_title}" ends at {local_end:%H:%M} ({local_end:%Y-%m-%d}).\n'
        f"Mark it complete before then so it doesn't count as failed.\n"
    )
    return subject, body


def build_verification_email(*, user_name: str, verify_url: str) -> tuple[str, str]:
    subject = "Verify your timebox email"
    body = (
        f"Hi {user_name},\n\n"
        f"Please verify your email address to enable reminders: {verify_url}\n"
        f"The link expires in {constants.EMAIL_VERIFICATION_TTL_MINUTES} minutes.\n"
    )
    return subject, body


async def _post_email(
    *,
    payload: dict[str, str],
    max_retries: int,
    retry_delay: float,
) -> SendEmailResult:
    """Core sending logic with retry and exponential backoff."""
    url = settings.require_credential("email_api_url", "Email API")
    headers = {"Content-Type": "application/json"}
    if settings.email_api_key:
        headers["Authorization"] = f"Bearer {settings.email_api_key}"

    for attempt in range(max_retries):
        try:
            async with httpx.AsyncClient(timeout=constants.API_TIMEOUT_SECONDS) as client:
                response = await client.post(url, json=payload, headers=headers)

                if response.is_success:
                    data = response.json() if response.content else {}
                    message_id = data.get("id") if isinstance(data, dict) else None
                    return SendEmailResult(success=True, message_id=message_id)

                if HTTP_CLIENT_ERROR_START <= response.status_code < HTTP_CLIENT_ERROR_END:
                    return SendEmailResult(success=False, error=f"Client error: {response.text}")

                raise httpx.HTTPStatusError(
                    f"Server error: {response.status_code}", request=response.request, response=response
                )
        except httpx.HTTPError as e:
            if attempt < max_retries - 1:
                logger.warning("Email send attempt failed, retrying", extra={"attempt": attempt + 1, "error": str(e)})
                await asyncio.sleep(retry_delay * (2**attempt))
            else:
                return SendEmailResult(success=False, error=f"Failed after retries: {e!s}")

    return SendEmailResult(success=False, error="Max retries exceeded")


async def send_task_reminder_email(
    *,
    to_email: str,
    user_name: str,
    task_title: str,
    end_time: datetime,
    max_retries: int = constants.EMAIL_MAX_RETRIES,
    retry_delay: float = 1.0,
) -> SendEmailResult:
    """Email a task owner that their task is about to end.

    Without ``EMAIL_API_URL`` the reminder is written to the log instead.
    """
    subject, body = build_reminder_email(user_name=user_name, task_title=task_title, end_time=end_time)

    if not settings.email_api_url:
        logger.info("Console reminder", extra={"to": to_email, "subject": subject, "body": body})
        return SendEmailResult(success=True, delivered_to_console=True)

    payload = {"from": settings.email_from, "to": to_email, "subject": subject, "text": body}
    return await _post_email(payload=payload, max_retries=max_retries, retry_delay=retry_delay)


async def send_verification_email(
    *,
    to_email: str,
    user_name: str,
    verify_url: str,
    max_retries: int = constants.EMAIL_MAX_RETRIES,
    retry_delay: float = 1.0,
) -> SendEmailResult:
    """Email a confirmation link for ``to_email``.

    Without ``EMAIL_API_URL`` the link is written to the log instead.
    """
    subject, body = build_verification_email(user_name=user_name, verify_url=verify_url)

    if not settings.email_api_url:
        logger.info("Console verification email", extra={"to": to_email, "subject": subject, "body": body})
        return SendEmailResult(success=True, delivered_to_console=True)

    payload = {"from": settings.email_from, "to": to_email, "subject": subject, "text": body}
    return await _post_email(payload=payload, max_retries=max_retries, retry_delay=retry_delay)

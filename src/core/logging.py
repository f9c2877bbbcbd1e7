"""Observability for timebox, built on Pydantic Logfire.

Modules log through the standard library (``logging.getLogger(__name__)``);
``configure_logfire`` routes those records into Logfire. Service functions
open a span per operation with ``span("task_service.create_task")`` and
attach the acting user to log records with ``log_with_user_context``.
"""

import logging

import logfire
from fastapi import FastAPI

from src.core.config import settings


def configure_logfire() -> None:
    """Configure Pydantic Logfire and route stdlib logging through it.

    Nothing leaves the process unless LOGFIRE_TOKEN is set.
    """
    logfire.configure(
        token=settings.logfire_token,
        service_name="timebox",
        service_version="0.1.0",
        environment="production" if settings.is_production else "development",
        send_to_logfire="if-token-present",
    )
    logging.basicConfig(level=logging.INFO, handlers=[logfire.LogfireLoggingHandler()])
    logging.getLogger(__name__).info("Logfire configured", extra={"production": settings.is_production})


def instrument_fastapi(app: FastAPI) -> None:
    """Trace every request handled by the API."""
    logfire.instrument_fastapi(app)
    logging.getLogger(__name__).info("FastAPI instrumentation configured")


def instrument_httpx() -> None:
    """Trace outbound calls to the email API."""
    logfire.instrument_httpx()
    logging.getLogger(__name__).info("httpx instrumentation configured")


def span(name: str) -> logfire.LogfireSpan:
    """Open a Logfire span around one service operation, named ``module.function``."""
    return logfire.span(name)


def log_with_user_context(
    logger: logging.Logger,
    level: str,
    message: str,
    user_id: str | None = None,
    **extra: object,
) -> None:
    """Log ``message`` at ``level`` with the acting user and any extra fields attached.

    Usage:
        log_with_user_context(logger, "info", "Deleted task", user_id="7", task_id="42")
    """
    context = {"user_id": user_id, **extra} if user_id else extra
    getattr(logger, level.lower())(message, extra=context)

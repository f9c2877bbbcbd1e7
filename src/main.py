"""timebox - personal time-boxed task manager API."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.core.config import Settings, constants, settings
from src.core.db_client import close_connection, init_db
from src.core.errors import AppError, ErrorCode, ServerError
from src.core.logging import configure_logfire, instrument_fastapi, instrument_httpx
from src.core.rate_limiter import check_request_rate_limit
from src.core.scheduler import start_scheduler, stop_scheduler
from src.interface.auth_router import router as auth_router
from src.interface.task_router import router as task_router
from src.interface.user_router import router as user_router


logger = logging.getLogger(__name__)


def validate_startup_configuration() -> None:
    """Fail fast on settings the API cannot run with.

    Raises:
        ValueError: If a setting is unusable
    """
    logger.info("startup_validation_begin")

    if settings.is_production and settings.secret_key == Settings.model_fields["secret_key"].default:
        raise ValueError("SECRET_KEY must be changed from its development default in production")

    try:
        ZoneInfo(settings.timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown TIMEZONE: {settings.timezone}") from e

    if settings.email_api_url:
        logger.info("startup_validation", extra={"service": "email_api", "status": "configured"})
    else:
        logger.info("startup_validation", extra={"service": "email_api", "status": "console"})

    logger.info("startup_validation_complete", extra={"status": "ok"})


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    # Configure logging first so startup logs are captured
    configure_logfire()
    instrument_httpx()

    try:
        validate_startup_configuration()
    except ValueError as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\nStartup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    await init_db()
    logger.info("Database initialized")

    if settings.enable_reminders:
        start_scheduler()
    yield
    # Shutdown
    if settings.enable_reminders:
        stop_scheduler()
    await close_connection()


app = FastAPI(
    title="timebox",
    description="Personal time-boxed task manager",
    version="0.1.0",
    lifespan=lifespan,
    dependencies=[Depends(check_request_rate_limit)],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render domain errors as ``{code, message}`` with their HTTP status."""
    logger.info(
        "request_rejected",
        extra={"path": request.url.path, "code": exc.code, "status_code": exc.status_code},
    )
    return JSONResponse(
        content=exc.to_response().model_dump(), status_code=exc.status_code, headers=exc.headers or None
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are a 400 with the first problem as the message."""
    errors = exc.errors()
    message = errors[0]["msg"] if errors else "Validation failed"
    logger.info("request_validation_failed", extra={"path": request.url.path, "errors": len(errors)})
    return JSONResponse(
        content={
            "code": ErrorCode.ERR_VALIDATION,
            "message": message,
            "errors": [{"loc": list(e["loc"]), "msg": e["msg"]} for e in errors],
        },
        status_code=constants.HTTP_BAD_REQUEST,
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log anything unexpected and hide its details from the client."""
    logger.exception("unhandled_error", extra={"path": request.url.path, "error_type": type(exc).__name__})
    return JSONResponse(content=ServerError().to_response().model_dump(), status_code=constants.HTTP_SERVER_ERROR)


# Register routers
app.include_router(auth_router)
app.include_router(task_router)
app.include_router(user_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=constants.HTTP_OK)

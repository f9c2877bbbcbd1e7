"""Error taxonomy for task, window and account failures.

Every client-facing failure is an ``AppError`` subclass carrying a stable
error code and the HTTP status it maps to. The request boundary in
``src.main`` renders them as ``ErrorResponse`` bodies.
"""

from pydantic import BaseModel


class ErrorCode:
    """Error codes for specific error conditions."""

    # Request errors
    ERR_VALIDATION = "ERR_VALIDATION"

    # Scheduling errors
    ERR_INVALID_TIME_RANGE = "ERR_INVALID_TIME_RANGE"
    ERR_INVALID_TIME_WINDOW = "ERR_INVALID_TIME_WINDOW"
    ERR_INVALID_RECURRENCE_DATE = "ERR_INVALID_RECURRENCE_DATE"
    ERR_NO_VALID_OCCURRENCES = "ERR_NO_VALID_OCCURRENCES"

    # Task lifecycle errors
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_TASK_LOCKED = "ERR_TASK_LOCKED"
    ERR_CANNOT_UNCOMPLETE = "ERR_CANNOT_UNCOMPLETE"
    ERR_TASK_NOT_STARTED = "ERR_TASK_NOT_STARTED"
    ERR_TASK_EXPIRED = "ERR_TASK_EXPIRED"

    # User errors
    ERR_USER_ALREADY_EXISTS = "ERR_USER_ALREADY_EXISTS"
    ERR_INVALID_CREDENTIALS = "ERR_INVALID_CREDENTIALS"
    ERR_NOT_AUTHENTICATED = "ERR_NOT_AUTHENTICATED"
    ERR_EMAIL_ALREADY_VERIFIED = "ERR_EMAIL_ALREADY_VERIFIED"
    ERR_INVALID_TOKEN = "ERR_INVALID_TOKEN"

    # Throttling errors
    ERR_RATE_LIMITED = "ERR_RATE_LIMITED"

    # Generic errors
    ERR_SERVER = "ERR_SERVER"


class ErrorResponse(BaseModel):
    """Structured error body returned to clients."""

    code: str
    message: str


class AppError(Exception):
    """Base class for errors that are reported to the caller as-is."""

    code: str = ErrorCode.ERR_SERVER
    status_code: int = 500
    default_message: str = "Server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        """Build the client-facing error body."""
        return ErrorResponse(code=self.code, message=self.message)

    @property
    def headers(self) -> dict[str, str]:
        """Extra response headers sent with the error body."""
        return {}


class TaskValidationError(AppError):
    """Malformed or missing request fields."""

    code = ErrorCode.ERR_VALIDATION
    status_code = 400
    default_message = "Validation failed"


class InvalidTimeRangeError(AppError):
    """End time is not after start time."""

    code = ErrorCode.ERR_INVALID_TIME_RANGE
    status_code = 400
    default_message = "End time must be after start time"


class InvalidTimeWindowError(AppError):
    """Start or end time falls outside the admissible window."""

    code = ErrorCode.ERR_INVALID_TIME_WINDOW
    status_code = 400
    default_message = "Start time must be within 7 days before or after today"


class InvalidRecurrenceDateError(AppError):
    """A custom recurrence date could not be parsed."""

    code = ErrorCode.ERR_INVALID_RECURRENCE_DATE
    status_code = 400
    default_message = "Invalid date in recurrence.dates"


class NoValidOccurrencesError(AppError):
    """Recurrence expansion produced nothing inside the horizon."""

    code = ErrorCode.ERR_NO_VALID_OCCURRENCES
    status_code = 400
    default_message = "No valid occurrences to schedule within next 30 days"


class TaskNotFoundError(AppError):
    """Task is absent or owned by someone else."""

    code = ErrorCode.ERR_NOT_FOUND
    status_code = 404
    default_message = "Task not found"


class TaskLockedError(AppError):
    """Task no longer accepts changes."""

    code = ErrorCode.ERR_TASK_LOCKED
    status_code = 400
    default_message = "Cannot update a completed task"


class CannotUncompleteError(AppError):
    """Completed tasks can never be marked incomplete again."""

    code = ErrorCode.ERR_CANNOT_UNCOMPLETE
    status_code = 400
    default_message = "Cannot unmark a completed task"


class TaskNotStartedError(AppError):
    """Task cannot be completed before its start time."""

    code = ErrorCode.ERR_TASK_NOT_STARTED
    status_code = 400
    default_message = "Cannot complete a task that has not started yet"


class TaskExpiredError(AppError):
    """Task end time has passed."""

    code = ErrorCode.ERR_TASK_EXPIRED
    status_code = 400
    default_message = "Task has expired"


class UserAlreadyExistsError(AppError):
    """Email address is already registered."""

    code = ErrorCode.ERR_USER_ALREADY_EXISTS
    status_code = 400
    default_message = "User already exists"


class InvalidCredentialsError(AppError):
    """Email/password pair did not match."""

    code = ErrorCode.ERR_INVALID_CREDENTIALS
    status_code = 400
    default_message = "Invalid credentials"


class ServerError(AppError):
    """Unexpected collaborator failure. Internal detail is never exposed."""

    code = ErrorCode.ERR_SERVER
    status_code = 500
    default_message = "Server error"


class NotAuthenticatedError(AppError):
    """Missing, tampered or expired session."""

    code = ErrorCode.ERR_NOT_AUTHENTICATED
    status_code = 401
    default_message = "Not authenticated"


class EmailAlreadyVerifiedError(AppError):
    """Verification was requested for an address that is already verified."""

    code = ErrorCode.ERR_EMAIL_ALREADY_VERIFIED
    status_code = 400
    default_message = "Email already verified"


class InvalidVerificationTokenError(AppError):
    """Verification token is missing, unknown or past its expiry."""

    code = ErrorCode.ERR_INVALID_TOKEN
    status_code = 400
    default_message = "Invalid or expired token"


class RateLimitExceededError(AppError):
    """Too many requests from one client inside the current window."""

    code = ErrorCode.ERR_RATE_LIMITED
    status_code = 429
    default_message = "Too many requests, please try again later"

    def __init__(self, message: str | None = None, *, retry_after: int, limit: int) -> None:
        super().__init__(message)
        self.retry_after = retry_after
        self.limit = limit

    @property
    def headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.retry_after), "X-RateLimit-Limit": str(self.limit)}

"""Configuration management for timebox."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage Configuration
    sqlite_db_path: str = Field(default="./data/timebox.db", description="SQLite database file path")

    # Session Configuration
    secret_key: str = Field(default="dev_session_secret_change_me", description="Secret used to sign session cookies")
    is_production: bool = Field(default=False, description="Enable secure cookies and production logging")
    session_max_age_days: int = Field(default=90, description="Lifetime of a login session in days")

    # Scheduling Configuration
    timezone: str = Field(
        default="UTC",
        description="Timezone used for naive timestamps and recurrence time-of-day projection",
    )
    enable_reminders: bool = Field(default=True, description="Enable/disable the task reminder sweep")

    # CORS Configuration
    cors_origins: list[str] = Field(default=["http://localhost:3000"], description="Allowed browser origins")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Email API Configuration (optional)
    email_api_url: str | None = Field(default=None, description="HTTP endpoint of the transactional email API")
    email_api_key: str | None = Field(default=None, description="Bearer token for the email API")
    email_from: str = Field(default="reminders@timebox.local", description="Sender address for reminder emails")

    # Links in verification emails
    backend_base_url: str = Field(
        default="http://localhost:8000", description="Public base URL of this API, used in verification links"
    )
    frontend_base_url: str | None = Field(
        default=None, description="If set, confirming an email redirects to this app's settings page"
    )

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # API Configuration
    API_TIMEOUT_SECONDS: int = 30

    # HTTP Status Codes
    HTTP_OK: int = 200
    HTTP_FOUND: int = 302
    HTTP_BAD_REQUEST: int = 400
    HTTP_SERVER_ERROR: int = 500

    # Task Validation
    TITLE_MAX_LENGTH: int = 255
    USER_NAME_MIN_LENGTH: int = 2
    PASSWORD_MIN_LENGTH: int = 6

    # Scheduling Windows
    START_WINDOW_PAST_DAYS: int = 7  # How far back a start time may be
    START_WINDOW_FUTURE_DAYS: int = 7  # How far ahead a one-off start time may be
    RECURRENCE_HORIZON_DAYS: int = 30  # How far ahead recurring occurrences are materialised

    # Reminder Sweep
    REMINDER_LEAD_MINUTES: int = 5  # Remind when a task ends within this many minutes
    REMINDER_RETENTION_MINUTES: int = 60  # Forget sent reminders after this long
    EMAIL_MAX_RETRIES: int = 3

    # Email Verification
    EMAIL_VERIFICATION_TTL_MINUTES: int = 60  # Lifetime of a verification link

    # Rate Limiting (per client address, fixed windows)
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    MAX_REQUESTS_PER_WINDOW: int = 100  # Any route
    MAX_AUTH_ATTEMPTS_PER_WINDOW: int = 10  # Login and registration

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()

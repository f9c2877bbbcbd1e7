"""User service for registration, authentication and profile management."""

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta
from urllib.parse import urlencode

from src.core import db_client
from src.core.config import constants, settings
from src.core.errors import (
    EmailAlreadyVerifiedError,
    InvalidCredentialsError,
    InvalidVerificationTokenError,
    ServerError,
    UserAlreadyExistsError,
)
from src.core.logging import log_with_user_context, span
from src.core.time_window import utc_now
from src.domain.create_models import UserCreate
from src.domain.update_models import PasswordChange, ProfileUpdate
from src.domain.user import Theme, User
from src.interface.email_sender import send_verification_email


logger = logging.getLogger(__name__)

COLLECTION = "users"

# scrypt cost parameters (interactive-login profile)
_SCRYPT_N = 2**14
_SCRYPT_R = 8
_SCRYPT_P = 1
_SALT_BYTES = 16
_VERIFICATION_TOKEN_BYTES = 32


def hash_password(password: str) -> str:
    """Hash a password with a fresh random salt.

    Returns:
        ``scrypt$<salt hex>$<digest hex>``
    """
    salt = secrets.token_bytes(_SALT_BYTES)
    digest = hashlib.scrypt(password.encode(), salt=salt, n=_SCRYPT_N, r=_SCRYPT_R, p=_SCRYPT_P)
    return f"scrypt${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored_hash: str) -> bool:
    """Check a password against a stored ``hash_password`` value in constant time."""
    try:
        scheme, salt_hex, digest_hex = stored_hash.split("$")
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(digest_hex)
    except ValueError:
        logger.warning("Malformed password hash")
        return False

    if scheme != "scrypt":
        return False

    digest = hashlib.scrypt(password.encode(), salt=salt, n=_SCRYPT_N, r=_SCRYPT_R, p=_SCRYPT_P)
    return hmac.compare_digest(digest, expected)


async def _find_by_email(email: str) -> dict | None:
    return await db_client.get_first_record(
        collection=COLLECTION,
        filter_query=f'email = "{db_client.sanitize_param(email)}"',
    )


async def register_user(*, request: UserCreate) -> User:
    """Create an account.

    Raises:
        UserAlreadyExistsError: If the email is already registered
    """
    with span("user_service.register_user"):
        if await _find_by_email(request.email):
            logger.info("Registration rejected, email taken")
            raise UserAlreadyExistsError()

        record = await db_client.create_record(
            collection=COLLECTION,
            data={
                "email": request.email,
                "name": request.name,
                "password_hash": hash_password(request.password),
                "theme": Theme.LIGHT,
                "email_verified": False,
            },
        )
        user = User(**record)
        log_with_user_context(logger, "info", "Registered user", user_id=user.id)
        return user


async def authenticate(*, email: str, password: str) -> User:
    """Resolve an email/password pair to a user.

    Raises:
        InvalidCredentialsError: If no user has the email or the password is wrong
    """
    with span("user_service.authenticate"):
        record = await _find_by_email(email)
        if record is None or not verify_password(password, record["password_hash"]):
            logger.info("Failed login attempt")
            raise InvalidCredentialsError()

        user = User(**record)
        log_with_user_context(logger, "info", "User logged in", user_id=user.id)
        return user


async def get_user(*, user_id: str) -> User | None:
    """Fetch a user by id, or None if the account no longer exists."""
    if not db_client.is_record_id(user_id):
        return None
    try:
        record = await db_client.get_record(collection=COLLECTION, record_id=user_id)
    except db_client.RecordNotFoundError:
        return None
    return User(**record)


async def update_profile(*, user_id: str, request: ProfileUpdate) -> User:
    """Change name, email or theme. A new email address must be verified again.

    Raises:
        UserAlreadyExistsError: If the new email belongs to another account
    """
    with span("user_service.update_profile"):
        changes = request.model_dump(exclude_none=True)
        record = await db_client.get_record(collection=COLLECTION, record_id=user_id)

        if changes.get("email", record["email"]) == record["email"]:
            changes.pop("email", None)
        else:
            existing = await _find_by_email(changes["email"])
            if existing and existing["id"] != user_id:
                raise UserAlreadyExistsError("Email already in use")
            changes.update(email_verified=False, verification_token=None, verification_expires=None)

        if changes:
            record = await db_client.update_record(collection=COLLECTION, record_id=user_id, data=changes)

        log_with_user_context(logger, "info", "Updated profile", user_id=user_id, fields=sorted(changes))
        return User(**record)


async def change_password(*, user_id: str, request: PasswordChange) -> None:
    """Replace the password after re-checking the current one.

    Raises:
        InvalidCredentialsError: If the current password does not match
    """
    with span("user_service.change_password"):
        record = await db_client.get_record(collection=COLLECTION, record_id=user_id)
        if not verify_password(request.current_password, record["password_hash"]):
            raise InvalidCredentialsError("Current password is incorrect")

        await db_client.update_record(
            collection=COLLECTION,
            record_id=user_id,
            data={"password_hash": hash_password(request.new_password)},
        )
        log_with_user_context(logger, "info", "Changed password", user_id=user_id)


def build_verification_url(token: str) -> str:
    return f"{settings.backend_base_url.rstrip('/')}/users/verify-email/confirm?{urlencode({'token': token})}"


async def request_email_verification(*, user_id: str, now: datetime | None = None) -> None:
    """Issue a fresh one-hour verification token and email its link.

    Raises:
        EmailAlreadyVerifiedError: If the address is already verified
        ServerError: If the email could not be sent
    """
    with span("user_service.request_email_verification"):
        now = now or utc_now()
        record = await db_client.get_record(collection=COLLECTION, record_id=user_id)
        if record["email_verified"]:
            raise EmailAlreadyVerifiedError()

        token = secrets.token_urlsafe(_VERIFICATION_TOKEN_BYTES)
        await db_client.update_record(
            collection=COLLECTION,
            record_id=user_id,
            data={
                "verification_token": token,
                "verification_expires": now + timedelta(minutes=constants.EMAIL_VERIFICATION_TTL_MINUTES),
            },
        )

        result = await send_verification_email(
            to_email=record["email"], user_name=record["name"], verify_url=build_verification_url(token)
        )
        if not result.success:
            log_with_user_context(logger, "warning", "Verification email failed", user_id=user_id, error=result.error)
            raise ServerError("Failed to send verification email")

        log_with_user_context(logger, "info", "Sent verification email", user_id=user_id)


async def confirm_email_verification(*, token: str, now: datetime | None = None) -> User:
    """Mark the address behind ``token`` as verified and burn the token.

    Raises:
        InvalidVerificationTokenError: If the token is missing, unknown or expired
    """
    with span("user_service.confirm_email_verification"):
        if not token:
            raise InvalidVerificationTokenError("Token required")

        now = now or utc_now()
        record = await db_client.get_first_record(
            collection=COLLECTION,
            filter_query=f'verification_token = "{db_client.sanitize_param(token)}"',
        )
        if record is None or datetime.fromisoformat(record["verification_expires"]) < now:
            logger.info("Rejected verification token")
            raise InvalidVerificationTokenError()

        record = await db_client.update_record(
            collection=COLLECTION,
            record_id=record["id"],
            data={"email_verified": True, "verification_token": None, "verification_expires": None},
        )
        user = User(**record)
        log_with_user_context(logger, "info", "Verified email", user_id=user.id)
        return user

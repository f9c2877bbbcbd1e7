"""Signed-cookie sessions and the current-user dependency."""

import logging

from fastapi import Request, Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from src.core.config import settings
from src.core.errors import NotAuthenticatedError
from src.domain.user import User
from src.services import user_service


logger = logging.getLogger(__name__)

SESSION_COOKIE = "sid"

serializer = URLSafeTimedSerializer(str(settings.secret_key), salt="session")


def session_max_age_seconds() -> int:
    return settings.session_max_age_days * 24 * 60 * 60


def create_session_token(user_id: str) -> str:
    """Sign a session payload for ``user_id``."""
    return serializer.dumps({"user_id": user_id})


def read_session_token(token: str) -> str | None:
    """Return the user id in a valid token, or None if tampered or expired."""
    try:
        data = serializer.loads(token, max_age=session_max_age_seconds())
    except (BadSignature, SignatureExpired):
        logger.warning("session_tampered_or_expired")
        return None
    if not isinstance(data, dict):
        return None
    user_id = data.get("user_id")
    return user_id if isinstance(user_id, str) else None


def set_session_cookie(response: Response, user_id: str) -> None:
    """Attach a fresh session cookie to a response."""
    response.set_cookie(
        key=SESSION_COOKIE,
        value=create_session_token(user_id),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=session_max_age_seconds(),
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=SESSION_COOKIE, httponly=True, samesite="lax")


async def require_user(request: Request) -> User:
    """FastAPI dependency resolving the logged-in user.

    Raises:
        NotAuthenticatedError: If there is no valid session or the user is gone
    """
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        raise NotAuthenticatedError()

    user_id = read_session_token(token)
    if user_id is None:
        raise NotAuthenticatedError()

    user = await user_service.get_user(user_id=user_id)
    if user is None:
        logger.warning("session_user_missing", extra={"user_id": user_id})
        raise NotAuthenticatedError()
    return user

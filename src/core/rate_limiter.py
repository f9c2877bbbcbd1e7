"""Rate limiting using fixed windows counted in process memory."""

import logging
from datetime import UTC, datetime

from fastapi import Request

from src.core.config import constants
from src.core.errors import RateLimitExceededError


logger = logging.getLogger(__name__)


class RateLimiter:
    """Fixed-window request counter, keyed by scope, client and window.

    Counters live in this process only, so each worker enforces its own limit.
    """

    def __init__(self) -> None:
        self._counts: dict[str, int] = {}
        self._window_ends: dict[str, int] = {}

    def check_rate_limit(
        self,
        scope: str,
        identifier: str,
        limit: int,
        window_seconds: int,
        now: datetime | None = None,
    ) -> None:
        """Count one request and reject it once the window's limit is passed.

        Args:
            scope: Rate limit scope (e.g., 'global', 'auth')
            identifier: Unique identifier (e.g., client address)
            limit: Maximum requests allowed per window
            window_seconds: Window length in seconds

        Raises:
            RateLimitExceededError: If the limit is exceeded, with the seconds until the window resets
        """
        timestamp = int((now or datetime.now(UTC)).timestamp())
        window_start = timestamp // window_seconds
        key = f"ratelimit:{scope}:{identifier}:{window_start}"

        self._evict_expired(timestamp)
        count = self._counts.get(key, 0) + 1
        self._counts[key] = count
        self._window_ends[key] = (window_start + 1) * window_seconds

        if count > limit:
            retry_after = window_seconds - (timestamp % window_seconds)
            logger.warning(
                "rate_limit_exceeded",
                extra={
                    "scope": scope,
                    "identifier": identifier,
                    "count": count,
                    "limit": limit,
                    "retry_after": retry_after,
                },
            )
            raise RateLimitExceededError(retry_after=retry_after, limit=limit)

        logger.debug(
            "rate_limit_check_passed",
            extra={"scope": scope, "identifier": identifier, "count": count, "limit": limit},
        )

    def _evict_expired(self, timestamp: int) -> None:
        expired = [key for key, window_end in self._window_ends.items() if window_end <= timestamp]
        for key in expired:
            del self._counts[key]
            del self._window_ends[key]

    def reset(self) -> None:
        """Forget every counter."""
        self._counts.clear()
        self._window_ends.clear()

    def __len__(self) -> int:
        return len(self._counts)


# Global rate limiter instance (in-memory, per process)
rate_limiter = RateLimiter()


def client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def check_request_rate_limit(request: Request) -> None:
    """Per-client limit across every route."""
    rate_limiter.check_rate_limit(
        scope="global",
        identifier=client_address(request),
        limit=constants.MAX_REQUESTS_PER_WINDOW,
        window_seconds=constants.RATE_LIMIT_WINDOW_SECONDS,
    )


async def check_auth_rate_limit(request: Request) -> None:
    """Tighter per-client limit on login and registration attempts."""
    rate_limiter.check_rate_limit(
        scope="auth",
        identifier=client_address(request),
        limit=constants.MAX_AUTH_ATTEMPTS_PER_WINDOW,
        window_seconds=constants.RATE_LIMIT_WINDOW_SECONDS,
    )

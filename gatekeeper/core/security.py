"""
Security utilities for authentication and rate limiting.

Provides HTTP Basic auth for operators (the people allowed to open the
barrier by hand and to administer the registry) and API key authentication
for camera edge devices posting images for recognition.
"""

import secrets
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader, HTTPBasic, HTTPBasicCredentials
from passlib.context import CryptContext

from gatekeeper.core.config import get_settings
from gatekeeper.core.logging import get_logger

logger = get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

basic_auth = HTTPBasic()
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


@dataclass
class Operator:
    """Authenticated operator."""

    username: str
    is_active: bool = True


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against its bcrypt hash.

    Args:
        plain_password: The password to verify.
        hashed_password: The bcrypt hashed password.

    Returns:
        bool: True if password matches, False otherwise.
    """
    return pwd_context.verify(plain_password, hashed_password)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt (used to produce OPERATOR_PASSWORD_HASH)."""
    return pwd_context.hash(password)


async def verify_basic_auth(
    credentials: Annotated[HTTPBasicCredentials, Depends(basic_auth)],
) -> Operator:
    """
    Verify operator HTTP Basic credentials.

    The username is compared in constant time, the password against the
    configured bcrypt hash.

    Raises:
        HTTPException: 401 if credentials are invalid or operator login is
            not configured.
    """
    settings = get_settings()

    is_correct_username = secrets.compare_digest(
        credentials.username.encode("utf8"),
        settings.operator_username.encode("utf8"),
    )
    is_correct_password = bool(settings.operator_password_hash) and verify_password(
        credentials.password,
        settings.operator_password_hash,
    )

    if not (is_correct_username and is_correct_password):
        logger.warning(
            "auth_failed",
            username=credentials.username,
            reason="invalid_credentials",
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return Operator(username=credentials.username)


async def verify_api_key(
    api_key: Annotated[str | None, Depends(api_key_header)],
) -> None:
    """
    Verify the ``X-API-Key`` header for device callers.

    Raises:
        HTTPException: If API key is missing or invalid.
    """
    if api_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required",
        )

    settings = get_settings()
    if not secrets.compare_digest(api_key, settings.api_key):
        logger.warning("api_key_invalid", reason="key_mismatch")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )


@dataclass
class RateLimiter:
    """
    In-memory sliding window rate limiter.

    Attributes:
        requests_per_window: Maximum requests allowed per window.
        window_seconds: Size of the sliding window in seconds.
    """

    requests_per_window: int
    window_seconds: int
    _requests: dict[str, list[float]] = field(default_factory=lambda: defaultdict(list))

    def _prune(self, key: str, now: float) -> list[float]:
        window_start = now - self.window_seconds
        self._requests[key] = [t for t in self._requests[key] if t > window_start]
        return self._requests[key]

    def is_allowed(self, key: str) -> bool:
        """Record a request for ``key`` and report whether it is within the limit."""
        now = time.time()
        recent = self._prune(key, now)
        if len(recent) < self.requests_per_window:
            recent.append(now)
            return True
        return False

    def get_remaining(self, key: str) -> int:
        """Remaining requests for ``key`` in the current window."""
        recent = self._prune(key, time.time())
        return max(0, self.requests_per_window - len(recent))


_rate_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Get or create the process-wide rate limiter."""
    global _rate_limiter
    if _rate_limiter is None:
        settings = get_settings()
        _rate_limiter = RateLimiter(
            requests_per_window=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    return _rate_limiter


async def check_rate_limit(request: Request) -> None:
    """
    Rate limiting dependency for FastAPI routes.

    Raises:
        HTTPException: 429 if the client exceeded its window.
    """
    rate_limiter = get_rate_limiter()
    client_ip = request.client.host if request.client else "unknown"

    if not rate_limiter.is_allowed(client_ip):
        logger.warning("rate_limit_exceeded", client_ip=client_ip)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded. Please try again later.",
            headers={
                "Retry-After": str(rate_limiter.window_seconds),
                "X-RateLimit-Remaining": "0",
            },
        )

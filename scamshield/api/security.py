"""
API key check and per-client rate limiting.
"""

import logging
import secrets
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional, Tuple

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader

from scamshield.config import settings

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name=settings.api_token_header, auto_error=False)


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def verify_api_token(
    request: Request,
    api_key: Optional[str] = Depends(api_key_header),
) -> Optional[str]:
    """
    Require the configured API key.

    With no key configured every request passes (dev mode).
    """
    if not settings.api_token:
        if settings.is_production:
            logger.warning("API token not configured in production mode!")
        return None

    if not api_key:
        logger.warning(f"Missing API key from {_client_host(request)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing API key. Provide {settings.api_token_header} header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not secrets.compare_digest(api_key, settings.api_token):
        logger.warning(f"Invalid API key attempt from {_client_host(request)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return api_key


class RateLimiter:
    """Sliding-window request counter kept in process memory."""

    def __init__(self):
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)

    def _prune(self, key: str, window: int, now: float):
        timestamps = self._requests[key]
        while timestamps and now - timestamps[0] >= window:
            timestamps.popleft()

    def is_allowed(self, key: str, limit: int, window: int) -> Tuple[bool, int]:
        """
        Record a request if it fits in the window.

        Returns:
            (allowed, remaining)
        """
        now = time.time()
        self._prune(key, window, now)

        timestamps = self._requests[key]
        if len(timestamps) >= limit:
            return False, 0

        timestamps.append(now)
        return True, limit - len(timestamps)

    def get_retry_after(self, key: str, window: int) -> int:
        """Seconds until the oldest request in the window expires."""
        timestamps = self._requests[key]
        if not timestamps:
            return 0
        return max(0, int(window - (time.time() - timestamps[0])))

    def reset(self):
        self._requests.clear()


rate_limiter = RateLimiter()


async def check_rate_limit(request: Request):
    """Limit requests per client IP."""
    if not settings.rate_limit_requests:
        return

    client_ip = _client_host(request)
    allowed, remaining = rate_limiter.is_allowed(
        key=client_ip,
        limit=settings.rate_limit_requests,
        window=settings.rate_limit_window,
    )

    request.state.rate_limit_remaining = remaining
    request.state.rate_limit_limit = settings.rate_limit_requests

    if not allowed:
        retry_after = rate_limiter.get_retry_after(client_ip, settings.rate_limit_window)
        logger.warning(f"Rate limit exceeded for {client_ip}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Rate limit exceeded. Try again in {retry_after} seconds.",
            headers={
                "Retry-After": str(retry_after),
                "X-RateLimit-Limit": str(settings.rate_limit_requests),
                "X-RateLimit-Remaining": "0",
            },
        )

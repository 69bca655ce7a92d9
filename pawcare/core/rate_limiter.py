"""
Per-client-IP rate limiting for booking writes.

Counters live in process memory (``limits`` MemoryStorage) with fixed windows.
Use ``create_rate_limiter`` to build a FastAPI dependency.
"""

import logging
import math
import time

from fastapi import HTTPException, Request, status
from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter

logger = logging.getLogger(__name__)

storage = MemoryStorage()
_strategy = FixedWindowRateLimiter(storage)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimiter:
    """Dependency that allows `limit` requests per `window_seconds` per client IP."""

    def __init__(self, limit: int, window_seconds: int, key_prefix: str = "rate_limit") -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self.key_prefix = key_prefix
        self.item = RateLimitItemPerSecond(limit, window_seconds)

    async def __call__(self, request: Request) -> None:
        ip = client_ip(request)
        if _strategy.hit(self.item, self.key_prefix, ip):
            return
        reset_at, _ = _strategy.get_window_stats(self.item, self.key_prefix, ip)
        retry_after = max(1, math.ceil(reset_at - time.time()))
        logger.warning("Rate limit exceeded for %s:%s (%d/%ds)", self.key_prefix, ip, self.limit, self.window_seconds)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "message": f"Too many requests. Maximum {self.limit} requests per {self.window_seconds} seconds.",
                "retry_after": retry_after,
            },
            headers={"Retry-After": str(retry_after)},
        )


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit") -> RateLimiter:
    return RateLimiter(limit, window_seconds, key_prefix)

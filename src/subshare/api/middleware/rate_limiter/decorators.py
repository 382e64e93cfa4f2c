"""
Rate limiting decorators for individual endpoints.

Allows tighter limits on sensitive routes (login, purchases) than the global
middleware applies.
"""

import time
from typing import Optional, Callable
from functools import wraps

from fastapi import HTTPException, status, Request

from subshare.utils.config import get_config
from subshare.utils.logger import get_logger
from .redis_rate_limiter import RedisRateLimiter, client_key

logger = get_logger(__name__)


def rate_limit(
    limit: int,
    window_seconds: int = 60,
    key_func: Optional[Callable[[Request], str]] = None,
    limiter: Optional[RedisRateLimiter] = None,
):
    """
    Decorator for rate limiting specific endpoints.

    The endpoint must accept a `request: Request` parameter.

    Usage:
        @router.post("/login")
        @rate_limit(limit=10, window_seconds=60)
        async def login(request: Request, data: LoginRequest):
            ...

    Args:
        limit: Maximum requests allowed in window
        window_seconds: Time window in seconds
        key_func: Builds the rate limit key from the request (default: user id or client IP)
    """
    limiter = limiter or RedisRateLimiter()

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request = kwargs.get("request")
            if request is None:
                request = next((arg for arg in args if isinstance(arg, Request)), None)

            if request is None or not get_config().rate_limit_enabled:
                return await func(*args, **kwargs)

            key = f"endpoint:{func.__name__}:{(key_func or client_key)(request)}"
            allowed, remaining, reset_time = limiter.check_rate_limit(key, limit, window_seconds)

            if not allowed:
                logger.warning(f"Rate limit exceeded for {func.__name__}: key={key}")
                raise HTTPException(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    detail="Too many requests, please try again later",
                    headers={
                        "X-RateLimit-Limit": str(limit),
                        "X-RateLimit-Remaining": "0",
                        "X-RateLimit-Reset": str(reset_time),
                        "Retry-After": str(max(0, reset_time - int(time.time()))),
                    },
                )

            return await func(*args, **kwargs)

        return wrapper

    return decorator

"""
Redis-based rate limiter using a sliding window.

Counters live in Redis sorted sets so every API instance shares the same
window. When Redis is unreachable requests are allowed and the failure is
logged.
"""

import time
import uuid
from typing import Optional, Tuple

import redis
from redis import Redis
from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from subshare.cache.redis_cache import get_cache
from subshare.utils.config import get_config
from subshare.utils.logger import get_logger

logger = get_logger(__name__)

EXEMPT_PATHS = ("/metrics", "/api/v1/health", "/docs", "/redoc", "/openapi.json")


class RedisRateLimiter:
    """
    Sliding-window rate limiter.

    Each request is a member of a sorted set scored by its timestamp; members
    older than the window are trimmed before counting.
    """

    def __init__(self, redis_client: Optional[Redis] = None):
        """
        Initialize rate limiter.

        Args:
            redis_client: Redis client instance (defaults to the shared cache client)
        """
        self.redis_client = redis_client

    def _get_redis(self) -> Redis:
        if self.redis_client is None:
            self.redis_client = get_cache().client
        return self.redis_client

    def check_rate_limit(self, key: str, limit: int, window_seconds: int) -> Tuple[bool, int, int]:
        """
        Check if request is within rate limit and record it if so.

        Args:
            key: Unique identifier for the rate limit (e.g., "user:42")
            limit: Maximum number of requests allowed in window
            window_seconds: Time window in seconds

        Returns:
            Tuple of (allowed, remaining, reset_time)
        """
        now = time.time()
        window_start = now - window_seconds
        rate_limit_key = f"rate_limit:{key}"

        try:
            client = self._get_redis()
            pipe = client.pipeline()
            pipe.zremrangebyscore(rate_limit_key, 0, window_start)
            pipe.zcard(rate_limit_key)
            current_count = pipe.execute()[1]

            allowed = current_count < limit
            remaining = max(0, limit - current_count)

            if allowed:
                client.zadd(rate_limit_key, {f"{now}:{uuid.uuid4().hex}": now})
                client.expire(rate_limit_key, window_seconds + 1)
                remaining -= 1

            oldest = client.zrange(rate_limit_key, 0, 0, withscores=True)
            reset_time = int(oldest[0][1] + window_seconds) if oldest else int(now + window_seconds)

            return allowed, remaining, reset_time

        except redis.RedisError as e:
            logger.error(f"Rate limit check failed, allowing request: {e}")
            return True, limit, int(now + window_seconds)

    def reset_rate_limit(self, key: str) -> bool:
        try:
            self._get_redis().delete(f"rate_limit:{key}")
        except redis.RedisError as e:
            logger.error(f"Failed to reset rate limit: {e}")
            return False
        logger.info(f"Rate limit reset for key: {key}")
        return True


def client_key(request: Request) -> str:
    """Authenticated requests are limited per user, anonymous ones per IP."""
    user_id = getattr(request.state, "user_id", None)
    if user_id is not None:
        return f"user:{user_id}"
    host = request.client.host if request.client else "unknown"
    return f"ip:{host}"


def rate_limit_response(reset_time: int, message: str) -> Response:
    """429 Too Many Requests with the standard error body."""
    headers = {
        "X-RateLimit-Remaining": "0",
        "X-RateLimit-Reset": str(reset_time),
        "Retry-After": str(max(0, reset_time - int(time.time()))),
    }
    return Response(
        content=f'{{"error": "RATE_LIMITED", "message": "{message}", "details": {{"reset_at": {reset_time}}}}}',
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        headers=headers,
        media_type="application/json",
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-client request limit for the whole API.

    Adds X-RateLimit-* headers to responses and answers 429 when exceeded.
    """

    def __init__(
        self,
        app,
        limit: Optional[int] = None,
        window_seconds: Optional[int] = None,
        limiter: Optional[RedisRateLimiter] = None,
    ):
        super().__init__(app)
        config = get_config()
        self.enabled = config.rate_limit_enabled
        self.limit = limit or config.rate_limit_per_minute
        self.window_seconds = window_seconds or config.rate_limit_window_seconds
        self.limiter = limiter or RedisRateLimiter()

        logger.info(
            f"Rate limiter initialized: enabled={self.enabled}, "
            f"limit={self.limit}/{self.window_seconds}s"
        )

    async def dispatch(self, request: Request, call_next):
        if not self.enabled or request.url.path.startswith(EXEMPT_PATHS):
            return await call_next(request)

        key = client_key(request)
        allowed, remaining, reset_time = self.limiter.check_rate_limit(key, self.limit, self.window_seconds)

        if not allowed:
            logger.warning(f"Rate limit exceeded: {key} on {request.url.path}")
            return rate_limit_response(reset_time, "Too many requests, please try again later")

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(reset_time)
        return response

"""
Rate limiting middleware for API protection.
"""

from .redis_rate_limiter import RedisRateLimiter, RateLimitMiddleware
from .decorators import rate_limit

__all__ = [
    "RedisRateLimiter",
    "RateLimitMiddleware",
    "rate_limit",
]

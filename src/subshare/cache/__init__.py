"""
Caching layer for SubShare.
"""

from .redis_cache import RedisCache, get_cache

__all__ = ["RedisCache", "get_cache"]

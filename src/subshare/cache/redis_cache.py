"""
Redis caching for SubShare.

Caching is an optimisation only: every Redis failure is logged and treated as
a cache miss so requests keep working when Redis is down.
"""

import json
from typing import Optional, Any

import redis
from redis.connection import ConnectionPool

from subshare.utils.config import get_config
from subshare.utils.logger import get_logger

logger = get_logger(__name__)


class RedisCache:
    """
    Redis cache manager with connection pooling.

    Keys are namespaced as subshare:{namespace}:{key}; values are JSON.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        default_ttl: int = 300,
        max_connections: int = 50,
        client: Optional[redis.Redis] = None,
    ):
        """
        Initialize Redis cache.

        Args:
            redis_url: Redis connection URL (default from config REDIS_URL)
            default_ttl: Default TTL in seconds (5 minutes)
            max_connections: Maximum pool connections
            client: Pre-built client (tests pass a mock here)
        """
        self.redis_url = redis_url or get_config().redis_url
        self.default_ttl = default_ttl

        if client is not None:
            self.client = client
        else:
            self.pool = ConnectionPool.from_url(
                self.redis_url,
                max_connections=max_connections,
                decode_responses=True,
                socket_connect_timeout=1,
                socket_timeout=1,
            )
            self.client = redis.Redis(connection_pool=self.pool)

        logger.info(f"Redis cache initialized (ttl={default_ttl}s)")

    @staticmethod
    def _make_key(namespace: str, key: str) -> str:
        return f"subshare:{namespace}:{key}"

    def get(self, namespace: str, key: str) -> Optional[Any]:
        """Return the cached value, or None on miss or Redis error."""
        cache_key = self._make_key(namespace, key)

        try:
            value = self.client.get(cache_key)
        except redis.RedisError as e:
            logger.warning(f"Cache get error for {cache_key}: {e}")
            return None

        if value is None:
            logger.debug(f"Cache miss: {cache_key}")
            return None

        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.error(f"Cache JSON decode error for {cache_key}: {e}")
            return None

    def set(self, namespace: str, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Store a JSON-serialisable value with a TTL. Returns False on failure."""
        cache_key = self._make_key(namespace, key)
        ttl = ttl or self.default_ttl

        try:
            self.client.setex(cache_key, ttl, json.dumps(value, default=str))
        except (TypeError, ValueError) as e:
            logger.error(f"Cache serialization error for {cache_key}: {e}")
            return False
        except redis.RedisError as e:
            logger.warning(f"Cache set error for {cache_key}: {e}")
            return False

        logger.debug(f"Cache set: {cache_key} (ttl={ttl}s)")
        return True

    def delete(self, namespace: str, key: str) -> bool:
        cache_key = self._make_key(namespace, key)

        try:
            return self.client.delete(cache_key) > 0
        except redis.RedisError as e:
            logger.warning(f"Cache delete error for {cache_key}: {e}")
            return False

    def ping(self) -> bool:
        """Check Redis connectivity."""
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    def close(self):
        self.client.close()


_cache_instance: Optional[RedisCache] = None


def get_cache() -> RedisCache:
    """
    Get or create global Redis cache instance.

    Returns:
        RedisCache instance
    """
    global _cache_instance

    if _cache_instance is None:
        _cache_instance = RedisCache()

    return _cache_instance

"""
Unit tests for the Redis sliding-window rate limiter
"""
import asyncio
import pytest
from unittest.mock import MagicMock

import redis
from fastapi import HTTPException, Request

from subshare.api.middleware.rate_limiter import RedisRateLimiter, rate_limit
from subshare.api.middleware.rate_limiter.redis_rate_limiter import client_key
from subshare.utils.config import get_config


def limiter_with_count(count: int, oldest_score: float = 1_700_000_000.0):
    client = MagicMock()
    pipe = client.pipeline.return_value
    pipe.execute.return_value = [0, count]
    client.zrange.return_value = [("member", oldest_score)]
    return RedisRateLimiter(redis_client=client), client


class TestRedisRateLimiter:

    def test_allows_under_limit(self):
        limiter, client = limiter_with_count(3)

        allowed, remaining, reset_time = limiter.check_rate_limit("user:1", limit=10, window_seconds=60)

        assert allowed is True
        assert remaining == 6
        assert reset_time == 1_700_000_060
        client.zadd.assert_called_once()
        client.expire.assert_called_once_with("rate_limit:user:1", 61)

    def test_blocks_at_limit(self):
        limiter, client = limiter_with_count(10)

        allowed, remaining, _ = limiter.check_rate_limit("user:1", limit=10, window_seconds=60)

        assert allowed is False
        assert remaining == 0
        client.zadd.assert_not_called()

    def test_trims_old_entries_first(self):
        limiter, client = limiter_with_count(0)

        limiter.check_rate_limit("ip:10.0.0.1", limit=5, window_seconds=30)

        pipe = client.pipeline.return_value
        key, low, _ = pipe.zremrangebyscore.call_args.args
        assert key == "rate_limit:ip:10.0.0.1"
        assert low == 0
        pipe.zcard.assert_called_once_with("rate_limit:ip:10.0.0.1")

    def test_fails_open_when_redis_down(self):
        client = MagicMock()
        client.pipeline.side_effect = redis.ConnectionError("down")

        allowed, remaining, _ = RedisRateLimiter(redis_client=client).check_rate_limit("user:1", 10, 60)

        assert allowed is True
        assert remaining == 10

    def test_reset(self):
        limiter, client = limiter_with_count(0)

        assert limiter.reset_rate_limit("user:7") is True
        client.delete.assert_called_once_with("rate_limit:user:7")

    def test_reset_with_redis_down(self):
        client = MagicMock()
        client.delete.side_effect = redis.ConnectionError("down")

        assert RedisRateLimiter(redis_client=client).reset_rate_limit("user:7") is False

    def test_defaults_to_shared_cache_client(self, redis_client):
        assert RedisRateLimiter()._get_redis() is redis_client


class TestClientKey:

    def test_authenticated_user(self):
        request = MagicMock()
        request.state.user_id = 42

        assert client_key(request) == "user:42"

    def test_anonymous_by_ip(self):
        request = MagicMock()
        request.state.user_id = None
        request.client.host = "203.0.113.9"

        assert client_key(request) == "ip:203.0.113.9"

    def test_no_client(self):
        request = MagicMock()
        request.state.user_id = None
        request.client = None

        assert client_key(request) == "ip:unknown"


class TestRateLimitDecorator:

    @pytest.fixture
    def enabled(self, monkeypatch):
        monkeypatch.setattr(get_config(), "rate_limit_enabled", True)

    @staticmethod
    def request():
        request = Request({"type": "http", "client": ("198.51.100.4", 5000), "headers": [], "state": {}})
        request.state.user_id = None
        return request

    def test_blocked_call_raises_429(self, enabled):
        limiter = MagicMock()
        limiter.check_rate_limit.return_value = (False, 0, 1_700_000_060)

        @rate_limit(limit=2, limiter=limiter)
        async def login(request: Request):
            return "ok"

        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(login(request=self.request()))

        assert exc_info.value.status_code == 429
        key, limit, window = limiter.check_rate_limit.call_args.args
        assert key == "endpoint:login:ip:198.51.100.4"
        assert (limit, window) == (2, 60)

    def test_allowed_call_passes_through(self, enabled):
        limiter = MagicMock()
        limiter.check_rate_limit.return_value = (True, 1, 1_700_000_060)

        @rate_limit(limit=2, limiter=limiter)
        async def unlock(request: Request, hours: int):
            return hours

        assert asyncio.run(unlock(self.request(), hours=3)) == 3

    def test_disabled_by_config(self):
        limiter = MagicMock()

        @rate_limit(limit=1, limiter=limiter)
        async def login(request: Request):
            return "ok"

        assert asyncio.run(login(request=self.request())) == "ok"
        limiter.check_rate_limit.assert_not_called()

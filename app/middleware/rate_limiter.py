"""
Rate Limiter - Redis-based sliding window request limiting.

Used for the per-IP throttle on the public resume send-link endpoint
(30 requests per 10 minutes by default).

Design:
- Sliding window over a Redis sorted set, one atomic Lua script per check
- Fail-open by default: Redis down or unconfigured lets the request through
- Keys expire after two windows so idle clients leave nothing behind

Usage:
    from app.middleware.rate_limiter import rate_limiter

    allowed, info = await rate_limiter.check_rate_limit(
        key="send_link:ip:203.0.113.7",
        limit=30,
        window_seconds=600,
    )
"""

import time

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.services.redis_client import FastRedisClient, fast_redis

logger = get_logger(__name__)


class RateLimiter:
    """
    Sliding window limiter.

    Tracks exact request timestamps so a client that spent its budget at
    10:00:00 with a 600s window regains capacity at 10:10:00 rather than at
    an arbitrary bucket boundary.
    """

    # Returns: {allowed (0 or 1), current_count, oldest_timestamp or 0}
    SLIDING_WINDOW_LUA = """
    local key = KEYS[1]
    local limit = tonumber(ARGV[1])
    local window_seconds = tonumber(ARGV[2])
    local now = tonumber(ARGV[3])
    local member = ARGV[4]

    redis.call('ZREMRANGEBYSCORE', key, 0, now - window_seconds)
    local count = redis.call('ZCARD', key)

    if count >= limit then
        local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
        local oldest_ts = 0
        if #oldest > 0 then
            oldest_ts = tonumber(oldest[2])
        end
        return {0, count, oldest_ts}
    end

    redis.call('ZADD', key, now, member)
    redis.call('EXPIRE', key, window_seconds * 2)
    return {1, count + 1, 0}
    """

    def __init__(
        self,
        client: FastRedisClient = fast_redis,
        fail_open: bool = True,
    ):
        self._client = client
        self.fail_open = fail_open

    async def check_rate_limit(
        self,
        key: str,
        limit: int,
        window_seconds: int,
    ) -> tuple[bool, dict]:
        """
        Count this request against ``key`` and report whether it may proceed.

        Returns:
            Tuple of (allowed, info) where info carries limit, remaining and
            retry_after (seconds, only when rejected)
        """
        if not self._client.enabled:
            return True, self._create_info_dict(
                allowed=True, limit=limit, remaining=limit, error="redis_not_configured"
            )

        now = int(time.time())
        try:
            result = await self._client.eval(
                self.SLIDING_WINDOW_LUA,
                [f"ratelimit:{key}"],
                [limit, window_seconds, now, f"{now}:{time.time_ns()}"],
            )
        except Exception as e:
            logger.error(
                "Rate limiter Redis error",
                error=str(e),
                error_type=type(e).__name__,
                key=key,
                fail_open=self.fail_open,
            )
            return self.fail_open, self._create_info_dict(
                allowed=self.fail_open,
                limit=limit,
                remaining=limit if self.fail_open else 0,
                retry_after=None if self.fail_open else window_seconds,
                error="rate_limiter_error",
            )

        allowed = bool(result[0])
        count = int(result[1])
        oldest = int(result[2]) if result[2] else 0

        if not allowed:
            retry_after = max(1, oldest + window_seconds - now) if oldest else window_seconds
            return False, self._create_info_dict(
                allowed=False,
                limit=limit,
                remaining=0,
                retry_after=retry_after,
                window_seconds=window_seconds,
            )

        return True, self._create_info_dict(
            allowed=True,
            limit=limit,
            remaining=max(0, limit - count),
            window_seconds=window_seconds,
        )

    async def check_send_link_limit(self, ip_address: str) -> tuple[bool, dict]:
        return await self.check_rate_limit(
            key=f"send_link:ip:{ip_address}",
            limit=settings.SEND_LINK_IP_LIMIT,
            window_seconds=settings.SEND_LINK_IP_WINDOW_SECONDS,
        )

    @staticmethod
    def _create_info_dict(
        allowed: bool,
        limit: int,
        remaining: int,
        retry_after: int | None = None,
        window_seconds: int | None = None,
        error: str | None = None,
    ) -> dict:
        info = {
            "allowed": allowed,
            "limit": limit,
            "remaining": remaining,
            "retry_after": retry_after,
        }
        if window_seconds is not None:
            info["window_seconds"] = window_seconds
        if error:
            info["error"] = error
        return info


# Global singleton
rate_limiter = RateLimiter(fail_open=settings.RATE_LIMIT_FAIL_OPEN)

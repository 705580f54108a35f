"""
Minimum-interval limiter for magic-link requests.

Each key (a normalized email) may be accepted at most once per interval.
The check and the update happen atomically per key: under an asyncio lock for
the in-memory store, and as a single ``SET NX EX`` for the Redis store.

State is non-durable: a process restart or a Redis flush resets the windows.
"""

import asyncio
import math
import time
from collections.abc import Callable
from typing import Protocol

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.services.redis_client import FastRedisClient, fast_redis

logger = get_logger(__name__)

KEY_PREFIX = "magic_link_sent"
_PRUNE_THRESHOLD = 10_000


class LastAcceptedStore(Protocol):
    async def try_acquire(self, key: str, interval_seconds: int) -> tuple[bool, int]:
        """Return (allowed, retry_after_seconds)."""
        ...


class InMemoryLastAcceptedStore:
    """Process-local store for single-process deployments and tests."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._last_accepted: dict[str, float] = {}
        self._lock = asyncio.Lock()

    async def try_acquire(self, key: str, interval_seconds: int) -> tuple[bool, int]:
        async with self._lock:
            now = self._clock()
            last = self._last_accepted.get(key)
            if last is not None and now - last < interval_seconds:
                retry_after = max(1, math.ceil(interval_seconds - (now - last)))
                return False, retry_after

            self._last_accepted[key] = now
            if len(self._last_accepted) > _PRUNE_THRESHOLD:
                self._prune(now, interval_seconds)
            return True, 0

    def _prune(self, now: float, interval_seconds: int) -> None:
        stale = [k for k, ts in self._last_accepted.items() if now - ts >= interval_seconds]
        for k in stale:
            del self._last_accepted[k]


class RedisLastAcceptedStore:
    """Shared store for multi-process deployments."""

    def __init__(self, client: FastRedisClient = fast_redis, fail_open: bool | None = None):
        self._client = client
        self.fail_open = settings.RATE_LIMIT_FAIL_OPEN if fail_open is None else fail_open

    async def try_acquire(self, key: str, interval_seconds: int) -> tuple[bool, int]:
        if interval_seconds <= 0:
            return True, 0

        redis_key = f"{KEY_PREFIX}:{key}"
        try:
            if await self._client.set_if_absent(redis_key, str(int(time.time())), interval_seconds):
                return True, 0
            remaining = await self._client.ttl(redis_key)
            return False, remaining if remaining and remaining > 0 else interval_seconds

        except Exception as e:
            logger.error(
                "Resend limiter Redis error",
                error=str(e),
                error_type=type(e).__name__,
                fail_open=self.fail_open,
            )
            if self.fail_open:
                return True, 0
            return False, interval_seconds


def build_last_accepted_store() -> LastAcceptedStore:
    """Redis when configured, otherwise a process-local map."""
    if settings.REDIS_URL:
        return RedisLastAcceptedStore()
    logger.info("REDIS_URL not set; magic-link limiter is process-local")
    return InMemoryLastAcceptedStore()

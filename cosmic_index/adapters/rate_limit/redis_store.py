"""Redis-backed fixed-window counter store.

The reset-or-increment step runs as a single Lua script on the server, so it
is atomic across every API instance sharing the Redis database.
"""

from __future__ import annotations

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from cosmic_index.adapters.rate_limit.base import (
    AbstractCounterStore,
    CounterStoreUnavailableError,
    WindowCounter,
)

logger = logging.getLogger(__name__)


# KEYS[1] = counter hash; ARGV[1] = now_ms; ARGV[2] = window_ms
FIXED_WINDOW_SCRIPT = """
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local state = redis.call('HMGET', KEYS[1], 'count', 'start')
local count = tonumber(state[1])
local start = tonumber(state[2])
if (not start) or (not count) or now >= start + window then
  count = 0
  start = now
end
count = count + 1
redis.call('HSET', KEYS[1], 'count', count, 'start', start)
redis.call('PEXPIRE', KEYS[1], math.max(1, start + window - now))
return {count, start}
"""


class RedisFixedWindowCounterStore(AbstractCounterStore):
    """Shared counter store for multi-instance deployments."""

    def __init__(
        self,
        redis_url: str,
        *,
        key_prefix: str = "ratelimit",
        socket_timeout: float = 0.5,
        client: redis.Redis | None = None,
    ) -> None:
        self.redis_url = redis_url
        self._key_prefix = key_prefix
        self._socket_timeout = socket_timeout
        self._redis: redis.Redis | None = client
        self._script = None

    async def init(self) -> None:
        """Connect and verify the server answers.

        A failed ping is logged, not raised: the limiter's failure policy
        decides what happens while the store is down.
        """
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                decode_responses=True,
                socket_connect_timeout=self._socket_timeout,
                socket_timeout=self._socket_timeout,
                health_check_interval=30,
            )
        self._script = self._redis.register_script(FIXED_WINDOW_SCRIPT)

        try:
            await self._redis.ping()
            logger.info("rate_limit.store_connected", extra={"backend": "redis"})
        except (RedisError, OSError) as exc:
            logger.warning(
                "rate_limit.store_unavailable",
                extra={"backend": "redis", "phase": "init", "error_type": type(exc).__name__},
            )

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            self._script = None
            logger.info("rate_limit.store_closed", extra={"backend": "redis"})

    def _make_key(self, key: str) -> str:
        return f"{self._key_prefix}:{key}"

    async def hit(self, key: str, *, window_ms: int, now_ms: int) -> WindowCounter:
        if self._script is None:
            raise CounterStoreUnavailableError("redis store is not initialised")

        try:
            count, start = await self._script(
                keys=[self._make_key(key)],
                args=[now_ms, window_ms],
            )
        except (RedisError, OSError) as exc:
            raise CounterStoreUnavailableError(str(exc)) from exc

        return WindowCounter(count=int(count), window_start_ms=int(start))

    async def peek(self, key: str, *, window_ms: int, now_ms: int) -> WindowCounter | None:
        if self._redis is None:
            raise CounterStoreUnavailableError("redis store is not initialised")

        try:
            count, start = await self._redis.hmget(self._make_key(key), "count", "start")
        except (RedisError, OSError) as exc:
            raise CounterStoreUnavailableError(str(exc)) from exc

        if count is None or start is None or now_ms >= int(start) + window_ms:
            return None
        return WindowCounter(count=int(count), window_start_ms=int(start))

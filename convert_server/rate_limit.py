# convert_server/rate_limit.py
import time

from convert_server.errors import QuotaExceeded
from convert_server.redis_client import RedisConnector

WINDOW_SECONDS = 60


class ApiKeyThrottled(QuotaExceeded):
    def __init__(self, limit: int, retry_after: int):
        super().__init__(
            "Too many requests",
            f"Rate limit exceeded. Limit: {limit} requests/minute per API key.",
            headers={"Retry-After": str(retry_after)},
            retryAfter=retry_after,
        )


class ApiKeyThrottle:
    """Fixed-window requests-per-minute limit per API key.

    Skips throttling if Redis is not configured.
    """

    def __init__(self, connector: RedisConnector, limit_per_minute: int):
        self._connector = connector
        self._limit = limit_per_minute

    async def check(self, api_key_id: str) -> bool:
        """Count one request; raises ApiKeyThrottled when over the limit."""
        redis = await self._connector.get()

        if redis is None:
            return True

        now = int(time.time())
        window = now // WINDOW_SECONDS
        key = f"throttle:{api_key_id}:{window}"

        count = await redis.incr(key)

        # Set expiry on first request of the window
        if count == 1:
            await redis.expire(key, WINDOW_SECONDS)

        if count > self._limit:
            retry_after = WINDOW_SECONDS - (now % WINDOW_SECONDS)
            raise ApiKeyThrottled(limit=self._limit, retry_after=retry_after)

        return True

    async def current_count(self, api_key_id: str) -> int:
        redis = await self._connector.get()

        if redis is None:
            return 0

        window = int(time.time()) // WINDOW_SECONDS
        count = await redis.get(f"throttle:{api_key_id}:{window}")
        return int(count) if count else 0

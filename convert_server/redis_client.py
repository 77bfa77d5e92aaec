# convert_server/redis_client.py
import redis.asyncio as redis


class RedisConnector:
    """Lazily opened Redis connection, or None when no URL is configured."""

    def __init__(self, url: str):
        self._url = url
        self._client: redis.Redis | None = None
        self._available: bool | None = None

    async def get(self) -> redis.Redis | None:
        # If we know Redis is not available, return None
        if self._available is False:
            return None

        if not self._url or not self._url.startswith(("redis://", "rediss://", "unix://")):
            self._available = False
            return None

        if self._client is None:
            self._client = redis.from_url(self._url)
            self._available = True
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

"""Redis cache for hire listings.

Listings are cached per filter combination and dropped wholesale on any
hire write. Without Redis, or when Redis errors, every call is a miss.
"""

import hashlib
import json
import logging
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import redis.asyncio as redis
from pydantic import BaseModel

from onboarding_api.config import get_settings

logger = logging.getLogger(__name__)

HIRES_PREFIX = "hires"


def cache_database_url(redis_url: str) -> str:
    """Point ``redis_url`` at database 0 unless it names one already.

    Database 1 is the rate limiter's.
    """
    parts = urlsplit(redis_url)
    if parts.path in ("", "/"):
        parts = parts._replace(path="/0")
    return urlunsplit(parts)


def hires_key(filter_key: str) -> str:
    """Cache key for one listing filter combination."""
    digest = hashlib.sha256(filter_key.encode("utf-8")).hexdigest()[:32]
    return f"{HIRES_PREFIX}:{digest}"


class CacheService:
    """Hire listing cache on an optional Redis connection."""

    def __init__(self, client: redis.Redis | None = None, ttl: int = 60) -> None:
        self._client = client
        self.ttl = ttl

    @classmethod
    async def connect(cls) -> "CacheService":
        """Build the service from settings, disabled if Redis is absent or unreachable."""
        settings = get_settings()
        if not settings.redis_url:
            logger.warning("REDIS_URL not configured, hire listing cache disabled")
            return cls(ttl=settings.cache_ttl_hires)

        client = redis.from_url(
            cache_database_url(str(settings.redis_url)),
            encoding="utf-8",
            decode_responses=True,
        )
        try:
            await client.ping()
        except redis.RedisError as e:
            logger.warning("Redis unreachable, hire listing cache disabled: %s", e)
            await client.aclose()
            return cls(ttl=settings.cache_ttl_hires)

        logger.info("Hire listing cache connected")
        return cls(client, ttl=settings.cache_ttl_hires)

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get_hires(self, filter_key: str) -> dict[str, Any] | None:
        """Cached listing payload, or None on a miss."""
        if self._client is None:
            return None
        try:
            raw = await self._client.get(hires_key(filter_key))
        except redis.RedisError as e:
            logger.error("Hire cache read failed: %s", e)
            return None
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    async def set_hires(self, filter_key: str, data: BaseModel | dict[str, Any]) -> bool:
        """Store a listing for ``ttl`` seconds.

        Returns:
            True if the listing was stored
        """
        if self._client is None:
            return False
        payload = data.model_dump_json() if isinstance(data, BaseModel) else json.dumps(data)
        try:
            await self._client.setex(hires_key(filter_key), self.ttl, payload)
        except redis.RedisError as e:
            logger.error("Hire cache write failed: %s", e)
            return False
        return True

    async def invalidate_hires(self) -> int:
        """Drop every cached listing.

        Returns:
            Number of keys removed
        """
        if self._client is None:
            return 0
        try:
            keys = [key async for key in self._client.scan_iter(match=f"{HIRES_PREFIX}:*")]
            return await self._client.delete(*keys) if keys else 0
        except redis.RedisError as e:
            logger.error("Hire cache invalidation failed: %s", e)
            return 0


_cache_instance: CacheService | None = None


async def get_cache_service() -> CacheService:
    """Get the cache service singleton."""
    global _cache_instance
    if _cache_instance is None:
        _cache_instance = await CacheService.connect()
    return _cache_instance

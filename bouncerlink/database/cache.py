"""Redis cache layer for link records."""

import json
import logging
from typing import Optional

import redis.asyncio as redis

from .models import Link


class RedisCache:
    """Read-through cache for link records.

    Cached counters may lag behind the store. That is safe because the
    store's conditional increment is the authority on quota and expiry.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        ttl_seconds: int = 3600,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize Redis cache.

        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379/0)
            ttl_seconds: Default TTL for cached items
            logger: Optional logger instance
        """
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.logger = logger or logging.getLogger(__name__)
        self.enabled = redis_url is not None
        self.client: Optional[redis.Redis] = None

        if redis_url:
            self.logger.info(f"Redis cache enabled with TTL={ttl_seconds}s")

    async def connect(self) -> None:
        """Connect to Redis."""
        if not self.enabled:
            return

        try:
            self.client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            await self.client.ping()
            self.logger.info("Connected to Redis")
        except redis.RedisError as e:
            self.logger.error(f"Failed to connect to Redis: {e}")
            self.enabled = False

    async def get(self, key: str) -> Optional[str]:
        """Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None
        """
        if not self.enabled or not self.client:
            return None

        try:
            return await self.client.get(key)
        except redis.RedisError as e:
            self.logger.error(f"Cache get error: {e}")
            return None

    async def set(
        self,
        key: str,
        value: str,
        ttl: Optional[int] = None,
    ) -> bool:
        """Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Optional TTL override (seconds)

        Returns:
            True if successful
        """
        if not self.enabled or not self.client:
            return False

        try:
            ttl = ttl or self.ttl_seconds
            await self.client.setex(key, ttl, value)
            return True
        except redis.RedisError as e:
            self.logger.error(f"Cache set error: {e}")
            return False

    async def delete(self, key: str) -> bool:
        """Delete key from cache.

        Args:
            key: Cache key

        Returns:
            True if deleted
        """
        if not self.enabled or not self.client:
            return False

        try:
            result = await self.client.delete(key)
            return result > 0
        except redis.RedisError as e:
            self.logger.error(f"Cache delete error: {e}")
            return False

    async def get_link(self, short_code: str) -> Optional[Link]:
        """Get a cached link record."""
        raw = await self.get(self.get_cache_key(short_code))
        if raw is None:
            return None
        try:
            return Link.from_dict(json.loads(raw))
        except (ValueError, KeyError) as e:
            self.logger.warning(f"Discarding unreadable cache entry for {short_code}: {e}")
            await self.invalidate(short_code)
            return None

    async def set_link(self, link: Link) -> bool:
        """Cache a link record."""
        return await self.set(self.get_cache_key(link.short_code), json.dumps(link.to_dict()))

    async def invalidate(self, short_code: str) -> bool:
        """Drop the cached record for a short code."""
        return await self.delete(self.get_cache_key(short_code))

    async def ping(self) -> bool:
        """Check the Redis connection."""
        if not self.enabled or not self.client:
            return True
        try:
            await self.client.ping()
            return True
        except redis.RedisError:
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        if self.client:
            await self.client.aclose()
            self.logger.info("Redis connection closed")

    def get_cache_key(self, short_code: str) -> str:
        """Generate cache key for short code.

        Args:
            short_code: The short code

        Returns:
            Cache key
        """
        return f"bouncerlink:link:{short_code}"

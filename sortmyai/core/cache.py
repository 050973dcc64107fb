"""
Redis cache management.
Provides connection pooling and helper functions for caching operations.
"""
import json
import logging
from typing import Any, Optional
from redis import asyncio as aioredis
from sortmyai.config import settings
from sortmyai.utils.helpers import generate_cache_key

logger = logging.getLogger(__name__)


class RedisCache:
    """Redis cache manager with connection pooling."""

    def __init__(self):
        """Initialize Redis connection pool."""
        self.redis: Optional[aioredis.Redis] = None

    async def connect(self) -> None:
        """Establish connection to Redis."""
        if not settings.redis_url:
            logger.info("No Redis URL provided - running without Redis cache")
            self.redis = None
            return

        try:
            self.redis = aioredis.from_url(
                settings.redis_url,
                password=settings.redis_password if settings.redis_password else None,
                encoding="utf-8",
                decode_responses=True,
                max_connections=50,
            )
            # Test the connection
            await self.redis.ping()
            logger.info("Connected to Redis successfully")
        except Exception as e:
            logger.warning(f"Could not connect to Redis ({e}); running without cache")
            self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        if not self.redis:
            return None

        value = await self.redis.get(key)
        if value:
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return value
        return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None
    ) -> bool:
        """
        Set value in cache with optional TTL.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds

        Returns:
            True if successful
        """
        if not self.redis:
            return False

        if isinstance(value, (dict, list)):
            value = json.dumps(value, default=str)

        if ttl:
            return bool(await self.redis.setex(key, ttl, value))
        return bool(await self.redis.set(key, value))

    async def delete(self, key: str) -> bool:
        """
        Delete key from cache.

        Args:
            key: Cache key

        Returns:
            True if key was deleted
        """
        if not self.redis:
            return False

        return bool(await self.redis.delete(key))


# Global cache instance
cache = RedisCache()


# User profiles
async def cache_user_profile(user_id: str, profile: dict) -> bool:
    """Cache a public user profile."""
    return await cache.set(generate_cache_key("user", user_id), profile, ttl=settings.cache_user_ttl)


async def get_cached_user_profile(user_id: str) -> Optional[dict]:
    return await cache.get(generate_cache_key("user", user_id))


async def invalidate_user_profile(user_id: str) -> bool:
    """Drop a cached profile (counters changed)."""
    return await cache.delete(generate_cache_key("user", user_id))


# Notification summaries (short TTL, invalidated on every conversation change)
async def cache_notification_summary(user_id: str, summary: dict) -> bool:
    key = generate_cache_key("notifications", user_id)
    return await cache.set(key, summary, ttl=settings.cache_notification_ttl)


async def get_cached_notification_summary(user_id: str) -> Optional[dict]:
    return await cache.get(generate_cache_key("notifications", user_id))


async def invalidate_notification_summary(user_id: str) -> bool:
    """
    Invalidate a cached notification summary.

    Called for both participants whenever a conversation or its messages change.
    """
    return await cache.delete(generate_cache_key("notifications", user_id))

"""
Redis Cache Module

Secondary fast-access store shared with the domain services:
- Connection pooling
- Automatic JSON serialization
- TTL management
- Namespaced invalidation

The cache is an accelerator only. When Redis is unreachable, reads miss and
writes are skipped with a warning.
"""

import json
from datetime import timedelta
from typing import Any, Awaitable, Callable, Optional, Union

import structlog
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from mediatrack.config import get_settings

logger = structlog.get_logger(__name__)

# Global Redis connection
_redis_pool: Optional[ConnectionPool] = None
_redis_client: Optional[Redis] = None


async def init_redis(url: Optional[str] = None) -> Redis:
    """Initialize Redis connection pool"""
    global _redis_pool, _redis_client

    if _redis_client is not None:
        return _redis_client

    settings = get_settings()
    pool = ConnectionPool.from_url(
        url or settings.redis.get_url(),
        max_connections=settings.redis.max_connections,
        socket_timeout=settings.redis.socket_timeout,
        decode_responses=settings.redis.decode_responses,
    )
    client = Redis(connection_pool=pool)

    try:
        await client.ping()
    except RedisError as e:
        logger.error("Redis connection failed", error=str(e))
        await client.aclose()
        await pool.disconnect()
        raise

    _redis_pool, _redis_client = pool, client
    logger.info("Redis connection established")
    return _redis_client


async def close_redis() -> None:
    """Close Redis connection pool"""
    global _redis_pool, _redis_client

    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None

    if _redis_pool:
        await _redis_pool.disconnect()
        _redis_pool = None

    logger.info("Redis connection closed")


def get_redis() -> Optional[Redis]:
    """Get the Redis client, or None when it was never initialized"""
    return _redis_client


async def cache_get(client: Redis, key: str) -> Optional[Any]:
    """
    Get value from cache.

    Args:
        client: Redis client
        key: Cache key

    Returns:
        Cached value or None if not found
    """
    value = await client.get(key)

    if value is None:
        return None

    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


async def cache_set(
    client: Redis,
    key: str,
    value: Any,
    ttl: Optional[Union[int, timedelta]] = None,
) -> bool:
    """
    Set value in cache.

    Args:
        client: Redis client
        key: Cache key
        value: Value to cache (will be JSON serialized)
        ttl: Time-to-live in seconds or timedelta

    Returns:
        True if successful
    """
    try:
        serialized = json.dumps(value, default=str)
    except (TypeError, ValueError) as e:
        logger.warning("Failed to serialize value for cache", key=key, error=str(e))
        return False

    if ttl:
        if isinstance(ttl, timedelta):
            ttl = int(ttl.total_seconds())
        await client.setex(key, ttl, serialized)
    else:
        await client.set(key, serialized)

    return True


class CacheManager:
    """
    Cache manager with namespace support and automatic key generation.

    Example:
        cache = CacheManager("book", redis_client)
        await cache.set("123", details, ttl=3600)
        details = await cache.get("123")
    """

    def __init__(self, namespace: str, client: Optional[Redis], default_ttl: int = 3600):
        self.namespace = namespace
        self.client = client
        self.default_ttl = default_ttl

    def _key(self, key: str) -> str:
        """Generate namespaced key"""
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        if self.client is None:
            return None
        try:
            return await cache_get(self.client, self._key(key))
        except RedisError as e:
            logger.warning("Cache read failed", namespace=self.namespace, key=key, error=str(e))
            return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
    ) -> bool:
        """Set value in cache"""
        if self.client is None:
            return False
        try:
            return await cache_set(self.client, self._key(key), value, ttl or self.default_ttl)
        except RedisError as e:
            logger.warning("Cache write failed", namespace=self.namespace, key=key, error=str(e))
            return False

    async def delete(self, key: str) -> bool:
        """Delete key from cache"""
        if self.client is None:
            return False
        try:
            return await self.client.delete(self._key(key)) > 0
        except RedisError as e:
            logger.warning("Cache delete failed", namespace=self.namespace, key=key, error=str(e))
            return False

    async def invalidate_all(self) -> int:
        """Invalidate all keys in namespace"""
        if self.client is None:
            return 0
        keys = await self.client.keys(f"{self.namespace}:*")
        if not keys:
            return 0
        return await self.client.delete(*keys)

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl: Optional[int] = None,
    ) -> Any:
        """
        Get from cache or compute and cache.

        Args:
            key: Cache key
            factory: Async function to compute value if not cached
            ttl: Time-to-live

        Returns:
            Cached or computed value
        """
        value = await self.get(key)

        if value is not None:
            return value

        value = await factory()
        if value is not None:
            await self.set(key, value, ttl)

        return value

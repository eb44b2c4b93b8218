from typing import Optional, Any
import json
import logging
import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.core.exceptions import CacheError

logger = logging.getLogger(__name__)


class RedisManager:
    """Redis connection manager and utilities"""

    def __init__(self):
        self._redis_client: Optional[Redis] = None
        self._is_connected = False

    async def connect(self, redis_url: str) -> None:
        """Establish Redis connection"""
        try:
            self._redis_client = redis.from_url(
                redis_url,
                encoding="utf-8",
                decode_responses=False,
                max_connections=20,
                retry_on_timeout=True,
                socket_timeout=5,
                socket_connect_timeout=5,
                health_check_interval=30
            )

            # Test connection
            await self._redis_client.ping()
            self._is_connected = True
            logger.info("Redis connection established")

        except RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            self._is_connected = False
            raise

    async def disconnect(self) -> None:
        """Close Redis connection"""
        if self._redis_client:
            await self._redis_client.aclose()
            self._is_connected = False
            logger.info("Redis connection closed")

    @property
    def client(self) -> Redis:
        """Get Redis client"""
        if not self._is_connected or not self._redis_client:
            raise RuntimeError("Redis is not connected")
        return self._redis_client

    async def is_healthy(self) -> bool:
        """Check Redis health"""
        try:
            if self._redis_client:
                await self._redis_client.ping()
                return True
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
        return False


# Global Redis manager instance
redis_manager = RedisManager()


class CacheService:
    """JSON key/value storage on Redis.

    Unlike a best-effort cache, failures raise ``CacheError``: callers keep
    state here that must not be silently dropped.
    """

    DEFAULT_TTL = 3600  # 1 hour

    def __init__(self, redis_client: Redis):
        self.redis = redis_client

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        try:
            value = await self.redis.get(key)
        except RedisError as e:
            logger.error(f"Cache get error for key {key}: {e}")
            raise CacheError(details={"key": key, "original_error": str(e)})

        if value is None:
            return None
        return json.loads(value.decode('utf-8'))

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Set value in cache"""
        if ttl is None:
            ttl = self.DEFAULT_TTL

        serialized_value = json.dumps(value, default=str).encode('utf-8')
        try:
            await self.redis.setex(key, ttl, serialized_value)
        except RedisError as e:
            logger.error(f"Cache set error for key {key}: {e}")
            raise CacheError(details={"key": key, "original_error": str(e)})

    async def delete(self, key: str) -> bool:
        """Delete key from cache"""
        try:
            result = await self.redis.delete(key)
        except RedisError as e:
            logger.error(f"Cache delete error for key {key}: {e}")
            raise CacheError(details={"key": key, "original_error": str(e)})
        return result > 0


async def init_redis_services(redis_url: str) -> None:
    """Initialize Redis connection"""
    await redis_manager.connect(redis_url)
    logger.info("Redis services initialized")


async def close_redis_services() -> None:
    """Close Redis connection"""
    await redis_manager.disconnect()
    logger.info("Redis services closed")

import redis.asyncio as redis
from redis.exceptions import RedisError
from typing import Optional, Any
import json
import logging
from datetime import datetime

from wickedfiles.core.config import settings

logger = logging.getLogger(__name__)


class JSONEncoder(json.JSONEncoder):
    """JSON encoder that handles datetimes from S3 listings"""
    def default(self, obj):
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


class RedisClient:
    def __init__(self):
        self.redis: Optional[redis.Redis] = None

    async def connect(self):
        """Connect to Redis"""
        self.redis = await redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True
        )

    async def disconnect(self):
        """Disconnect from Redis"""
        if self.redis:
            await self.redis.close()
            self.redis = None

    async def get(self, key: str) -> Optional[str]:
        """Get value from Redis"""
        if not self.redis:
            return None
        try:
            return await self.redis.get(key)
        except RedisError as e:
            logger.warning(f"Redis get {key} failed: {e}")
            return None

    async def set(self, key: str, value: str, expire: int = 3600) -> bool:
        """Set value in Redis with expiration"""
        if not self.redis:
            return False
        try:
            return bool(await self.redis.set(key, value, ex=expire))
        except RedisError as e:
            logger.warning(f"Redis set {key} failed: {e}")
            return False

    async def delete(self, key: str) -> bool:
        """Delete key from Redis"""
        if not self.redis:
            return False
        try:
            return await self.redis.delete(key) > 0
        except RedisError as e:
            logger.warning(f"Redis delete {key} failed: {e}")
            return False

    async def incr(self, key: str, expire: int) -> int:
        """Increment a counter, starting its expiry window on first hit.

        Returns 0 when Redis is unreachable so callers treat the counter as unset.
        """
        if not self.redis:
            return 0
        try:
            value = await self.redis.incr(key)
            if value == 1:
                await self.redis.expire(key, expire)
        except RedisError as e:
            logger.warning(f"Redis incr {key} failed: {e}")
            return 0
        return value

    async def get_json(self, key: str) -> Optional[Any]:
        """Get JSON value from Redis"""
        value = await self.get(key)
        if value:
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                logger.warning(f"Discarding undecodable cache entry {key}")
                return None
        return None

    async def set_json(self, key: str, value: Any, expire: int = 3600) -> bool:
        """Set JSON value in Redis"""
        try:
            json_str = json.dumps(value, cls=JSONEncoder)
        except TypeError as e:
            logger.warning(f"Could not cache {key}: {e}")
            return False
        return await self.set(key, json_str, expire)


# Global Redis client instance
redis_client = RedisClient()


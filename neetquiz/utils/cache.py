"""
Redis cache utility for assembled result views
"""
import redis
import json
import logging
from typing import Optional, Any
from uuid import UUID
from neetquiz.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    """
    Redis-based cache. Attempts are immutable, so a result view cached by
    attempt id never goes stale; the TTL only bounds memory.
    """

    def __init__(self):
        try:
            self.redis_client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5
            )
            # Test connection
            self.redis_client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning(f"Redis connection failed: {str(e)}. Caching disabled.")
            self.redis_client = None

    @staticmethod
    def result_key(attempt_id: UUID) -> str:
        return f"results:attempt:{attempt_id}"

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache

        Returns:
            Cached value or None
        """
        if not self.redis_client:
            return None

        try:
            value = self.redis_client.get(key)
            if value:
                logger.info(f"Cache hit: {key}")
                return json.loads(value)
            logger.info(f"Cache miss: {key}")
            return None
        except Exception as e:
            logger.error(f"Cache get error: {str(e)}")
            return None

    def set(self, key: str, value: Any, ttl: int = None) -> bool:
        """
        Set value in cache

        Args:
            key: Cache key
            value: Value to cache (must be JSON serializable)
            ttl: Time to live in seconds (default from settings)
        """
        if not self.redis_client:
            return False

        try:
            ttl = ttl or settings.RESULT_CACHE_TTL
            self.redis_client.setex(key, ttl, json.dumps(value))
            logger.info(f"Cache set: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"Cache set error: {str(e)}")
            return False


# Global instance
cache_service = CacheService()

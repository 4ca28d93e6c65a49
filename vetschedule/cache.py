"""
Redis caching for read-mostly scheduling data.

Only active time templates are cached. Booking decisions never read from the
cache; they always go to the database.
"""

import json
import logging
from typing import Any, Optional

from .config import CACHE_ENABLED, TEMPLATE_CACHE_TTL
from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)


class Cache:
    """Redis cache wrapper with JSON serialization that fails open"""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.redis_client = None

    def _get_client(self):
        """Lazy load Redis client"""
        if not self.enabled:
            return None
        if self.redis_client is None:
            try:
                self.redis_client = get_redis_client()
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value))
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern (e.g., 'time_templates:abc:*')"""
        client = self._get_client()
        if not client:
            return 0

        try:
            keys = list(client.scan_iter(match=pattern))
            if keys:
                return client.delete(*keys)
            return 0
        except Exception as e:
            logger.error(f"❌ Cache delete pattern error for {pattern}: {e}")
            return 0


cache = Cache(enabled=CACHE_ENABLED)


def _templates_key(hospital_id: str, day_of_week: int) -> str:
    return f"time_templates:{hospital_id}:{day_of_week}"


def get_templates_cached(hospital_id: str, day_of_week: int) -> Optional[list[dict]]:
    return cache.get(_templates_key(hospital_id, day_of_week))


def set_templates_cached(hospital_id: str, day_of_week: int, templates: list[dict]) -> bool:
    return cache.set(_templates_key(hospital_id, day_of_week), templates, TEMPLATE_CACHE_TTL)


def invalidate_templates_cache(hospital_id: str) -> int:
    """Drop every cached weekday for a hospital after a template edit"""
    return cache.delete_pattern(f"time_templates:{hospital_id}:*")

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis

from market_proxy.config import CACHE_BACKEND, CACHE_TTL_SECONDS, REDIS_URL
from market_proxy.repositories.ttl_cache import TTLCache

logger = logging.getLogger(__name__)


class PriceCacheRepository:
    """Response cache kept in process memory"""

    def __init__(self, store: Optional[TTLCache] = None):
        self.store = store if store is not None else TTLCache(CACHE_TTL_SECONDS)

    async def get(self, key: str) -> Optional[Any]:
        return self.store.get(key)

    async def set(self, key: str, value: Any) -> None:
        self.store.set(key, value)

    def purge_expired(self) -> int:
        return self.store.purge_expired()


class RedisPriceCacheRepository:
    """Response cache shared through Redis; expiry is left to SETEX"""

    def __init__(self, client=None, ttl: int = CACHE_TTL_SECONDS):
        self.redis = client if client is not None else redis.Redis.from_url(
            REDIS_URL,
            decode_responses=True
        )
        self.ttl = ttl

    async def get(self, key: str) -> Optional[Any]:
        try:
            data = await self.redis.get(key)
        except redis.RedisError as e:
            logger.error(f"Redis error reading {key}: {e}")
            return None
        if data is None:
            return None
        try:
            return json.loads(data)
        except ValueError as e:
            logger.error(f"Corrupt cache value for {key}: {e}")
            return None

    async def set(self, key: str, value: Any) -> None:
        try:
            await self.redis.setex(key, self.ttl, json.dumps(value))
        except redis.RedisError as e:
            logger.error(f"Failed to cache {key}: {e}")

    def purge_expired(self) -> int:
        return 0


def build_price_cache(backend: str = CACHE_BACKEND):
    if backend == "redis":
        logger.info("Using Redis response cache")
        return RedisPriceCacheRepository()
    if backend != "memory":
        raise ValueError(f"Unsupported cache backend: {backend}")
    return PriceCacheRepository()

# shopcompare/storage/redis_store.py

"""Redis-backed cache store."""

import logging

import redis

logger = logging.getLogger("shopcompare.cache")


class RedisCacheStore:
    """Thin adapter exposing a Redis client as a cache store."""

    def __init__(self, client: redis.Redis) -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheStore":
        """Connect with ``decode_responses`` so reads come back as str."""
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> str | None:
        value = self.client.get(key)
        if value is None:
            return None
        return str(value)

    def set(self, key: str, value: str, ttl: int) -> None:
        self.client.setex(key, ttl, value)

    def delete(self, key: str) -> None:
        self.client.delete(key)


def build_cache_store(url: str | None) -> RedisCacheStore | None:
    """Return a connected store for *url*, or ``None`` when unavailable.

    An empty URL means caching is not configured.  A URL that cannot be
    reached is logged and also yields ``None`` so searches still run.
    """
    if not url:
        logger.warning("REDIS_URL not configured, caching disabled")
        return None
    try:
        store = RedisCacheStore.from_url(url)
        store.client.ping()
    except redis.RedisError as exc:
        logger.warning(
            "Redis connection failed: %s. Caching disabled.", exc
        )
        return None
    logger.info("Connected to Redis cache store")
    return store

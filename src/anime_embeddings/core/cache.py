"""Key/value caches with per-entry TTL used for the IDF snapshot."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

import redis.asyncio as redis

logger = logging.getLogger("anime_embeddings.cache")


class InMemoryCache:
    """
    Process-local cache.

    Values are stored as given; callers are expected to store JSON-like
    data so the same code runs against ``RedisCache``.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._clock = clock

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        expires_at = self._clock() + ttl if ttl else None
        self._entries[key] = (value, expires_at)
        return True

    async def delete(self, key: str) -> bool:
        self._entries.pop(key, None)
        return True


class RedisCache:
    """Async Redis cache storing JSON-encoded values."""

    def __init__(self, url: str) -> None:
        self._url = url
        self._redis: redis.Redis | None = None

    async def _get_redis(self) -> redis.Redis:
        """Get or create Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self._url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._redis

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def get(self, key: str) -> Any | None:
        try:
            client = await self._get_redis()
            value = await client.get(key)
            if value:
                return json.loads(value)
            return None
        except Exception as e:
            logger.warning("Cache get error for %s: %s", key, e)
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        try:
            client = await self._get_redis()
            serialized = json.dumps(value)
            if ttl:
                await client.setex(key, ttl, serialized)
            else:
                await client.set(key, serialized)
            return True
        except Exception as e:
            logger.warning("Cache set error for %s: %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        try:
            client = await self._get_redis()
            await client.delete(key)
            return True
        except Exception as e:
            logger.warning("Cache delete error for %s: %s", key, e)
            return False

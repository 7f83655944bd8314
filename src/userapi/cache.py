"""Key-value caches for the user read path.

``MemoryCache`` keeps entries in process with a per-key expiry and is the
default (and test) backend. ``RedisCache`` stores JSON strings in Redis so
several API processes share one cache.
"""

from __future__ import annotations

import json
import time
from typing import TYPE_CHECKING, Any, Protocol

import redis

from userapi.logging import get_logger

if TYPE_CHECKING:
    from userapi.config import CacheConfig

log = get_logger("cache")


class CacheError(Exception):
    """A cache operation failed."""


class Cache(Protocol):
    """Minimal JSON cache interface used by the user service."""

    def get_json(self, key: str) -> Any | None: ...

    def set_json(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryCache:
    """In-process cache with per-key expiry."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[float, str]] = {}

    def get_json(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, payload = entry
        if expires_at <= time.monotonic():
            del self._entries[key]
            return None
        return json.loads(payload)

    def set_json(self, key: str, value: Any, ttl_seconds: int) -> None:
        payload = json.dumps(value, default=str)
        self._entries[key] = (time.monotonic() + ttl_seconds, payload)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


class NullCache:
    """Cache that stores nothing; every read misses."""

    def get_json(self, key: str) -> Any | None:
        return None

    def set_json(self, key: str, value: Any, ttl_seconds: int) -> None:
        return None

    def delete(self, key: str) -> None:
        return None


class RedisCache:
    """Redis-backed cache storing values as JSON strings.

    Attributes:
        client: redis-py client.
    """

    def __init__(self, client: redis.Redis) -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCache":
        """Create a cache from a ``redis://`` URL."""
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get_json(self, key: str) -> Any | None:
        try:
            payload = self.client.get(key)
        except redis.RedisError as e:
            raise CacheError(f"cache get failed: {e}") from e
        if payload is None:
            return None
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise CacheError(f"invalid JSON for key {key}: {e}") from e

    def set_json(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            self.client.set(key, json.dumps(value, default=str), ex=ttl_seconds)
        except redis.RedisError as e:
            raise CacheError(f"cache set failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            raise CacheError(f"cache delete failed: {e}") from e

    def close(self) -> None:
        self.client.close()


def create_cache(config: "CacheConfig") -> Cache:
    """Build the cache backend named in config."""
    if config.backend == "redis":
        log.info("cache_backend_selected", backend="redis", url=config.redis_url)
        return RedisCache.from_url(config.redis_url)
    if config.backend == "none":
        return NullCache()
    return MemoryCache()

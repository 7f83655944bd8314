"""Tests for the cache backends."""

from unittest.mock import MagicMock

import pytest
import redis

from userapi.cache import CacheError, MemoryCache, NullCache, RedisCache, create_cache
from userapi.config import CacheConfig


class TestMemoryCache:
    """Tests for the in-process cache."""

    def test_round_trip(self) -> None:
        """Stored values come back as decoded JSON."""
        cache = MemoryCache()
        cache.set_json("user:1", {"id": 1, "name": "Ada"}, ttl_seconds=60)

        assert cache.get_json("user:1") == {"id": 1, "name": "Ada"}

    def test_miss(self) -> None:
        """Unknown keys return None."""
        assert MemoryCache().get_json("user:404") is None

    def test_expired_entry_is_dropped(self, monkeypatch) -> None:
        """Entries past their TTL miss and are evicted."""
        clock = [1000.0]
        monkeypatch.setattr("userapi.cache.time.monotonic", lambda: clock[0])
        cache = MemoryCache()
        cache.set_json("user:1", {"id": 1}, ttl_seconds=10)

        clock[0] += 11

        assert cache.get_json("user:1") is None
        assert len(cache) == 0

    def test_delete(self) -> None:
        """Deleted keys miss; deleting a missing key is fine."""
        cache = MemoryCache()
        cache.set_json("user:1", {"id": 1}, ttl_seconds=60)

        cache.delete("user:1")
        cache.delete("user:1")

        assert cache.get_json("user:1") is None


def test_null_cache_never_hits() -> None:
    """NullCache stores nothing."""
    cache = NullCache()
    cache.set_json("user:1", {"id": 1}, ttl_seconds=60)
    assert cache.get_json("user:1") is None


class TestRedisCache:
    """Tests for the Redis backend against a mocked client."""

    def test_set_uses_ttl(self) -> None:
        """Values are stored as JSON with an expiry."""
        client = MagicMock()
        RedisCache(client).set_json("user:1", {"id": 1}, ttl_seconds=30)

        client.set.assert_called_once_with("user:1", '{"id": 1}', ex=30)

    def test_get_decodes_json(self) -> None:
        """Stored JSON strings are decoded."""
        client = MagicMock()
        client.get.return_value = '{"id": 1}'

        assert RedisCache(client).get_json("user:1") == {"id": 1}

    def test_get_miss(self) -> None:
        """A missing key returns None."""
        client = MagicMock()
        client.get.return_value = None

        assert RedisCache(client).get_json("user:1") is None

    def test_connection_errors_wrapped(self) -> None:
        """Redis failures surface as CacheError."""
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("refused")
        client.delete.side_effect = redis.ConnectionError("refused")
        cache = RedisCache(client)

        with pytest.raises(CacheError, match="cache get failed"):
            cache.get_json("user:1")
        with pytest.raises(CacheError, match="cache delete failed"):
            cache.delete("user:1")

    def test_invalid_json_wrapped(self) -> None:
        """Corrupt payloads surface as CacheError."""
        client = MagicMock()
        client.get.return_value = "not json"

        with pytest.raises(CacheError, match="invalid JSON"):
            RedisCache(client).get_json("user:1")


@pytest.mark.parametrize(
    ("backend", "expected"),
    [("memory", MemoryCache), ("none", NullCache), ("redis", RedisCache)],
)
def test_create_cache(backend: str, expected: type) -> None:
    """The configured backend is built without connecting."""
    cache = create_cache(CacheConfig(backend=backend))
    assert isinstance(cache, expected)

"""
Tests for services/cache.py - Redis cache service
"""

import pytest
import json
from unittest.mock import MagicMock, patch

from services.cache import (
    CATALOG_KEY,
    CACHE_PREFIX,
    CATALOG_TTL,
    RedisCache,
)


class TestRedisCacheConnection:
    """Tests for Redis connection handling"""

    def test_connect_returns_false_when_connection_fails(self):
        """Should return False and set _connected=False when connection fails"""
        mock_redis = MagicMock()
        mock_redis.ping.side_effect = Exception("Connection refused")

        with patch('services.cache.redis.Redis', return_value=mock_redis):
            cache = RedisCache()
            result = cache.connect()

        assert result is False
        assert cache._connected is False
        assert cache._client is None

    def test_connect_returns_true_when_successful(self):
        mock_redis = MagicMock()
        mock_redis.ping.return_value = True

        with patch('services.cache.redis.Redis', return_value=mock_redis):
            cache = RedisCache()
            result = cache.connect()

        assert result is True
        assert cache._client is mock_redis

    def test_is_connected_returns_false_when_ping_fails(self):
        cache = RedisCache()
        mock_client = MagicMock()
        mock_client.ping.side_effect = Exception("Connection lost")
        cache._client = mock_client
        cache._connected = True

        assert cache.is_connected is False
        assert cache._connected is False

    def test_client_is_none_when_unreachable(self):
        cache = RedisCache()
        with patch.object(cache, 'connect', return_value=False):
            assert cache.client is None


class TestRedisCacheOperations:
    """Tests for get/set and catalog operations"""

    @pytest.fixture
    def connected_cache(self):
        """Create a cache with mocked but connected Redis client"""
        cache = RedisCache()
        mock_client = MagicMock()
        mock_client.ping.return_value = True
        cache._client = mock_client
        cache._connected = True
        return cache, mock_client

    def test_get_deserializes_json(self, connected_cache):
        cache, mock_client = connected_cache
        mock_client.get.return_value = json.dumps({"id": "CSE401_CESM_Y2425_S1"})

        assert cache.get("key") == {"id": "CSE401_CESM_Y2425_S1"}

    def test_get_returns_none_on_invalid_json(self, connected_cache):
        cache, mock_client = connected_cache
        mock_client.get.return_value = "not json {"

        assert cache.get("key") is None

    def test_set_returns_false_on_error(self, connected_cache):
        cache, mock_client = connected_cache
        mock_client.setex.side_effect = Exception("Redis error")

        assert cache.set("key", {"a": 1}) is False

    def test_set_uses_catalog_ttl_by_default(self, connected_cache):
        cache, mock_client = connected_cache

        cache.set("key", {"a": 1})

        assert mock_client.setex.call_args[0][1] == CATALOG_TTL

    def test_set_catalog_uses_catalog_ttl(self, connected_cache):
        cache, mock_client = connected_cache

        cache.set_catalog([{"id": "A"}])

        key, ttl, value = mock_client.setex.call_args[0]
        assert key == CATALOG_KEY
        assert ttl == CATALOG_TTL
        assert json.loads(value) == [{"id": "A"}]

    def test_invalidate_catalog(self, connected_cache):
        cache, mock_client = connected_cache
        mock_client.keys.return_value = [CATALOG_KEY]
        mock_client.delete.return_value = 1

        assert cache.invalidate_catalog() == 1
        mock_client.keys.assert_called_with(CATALOG_KEY)
        mock_client.delete.assert_called_with(CATALOG_KEY)

    def test_invalidate_catalog_when_nothing_cached(self, connected_cache):
        cache, mock_client = connected_cache
        mock_client.keys.return_value = []

        assert cache.invalidate_catalog() == 0
        mock_client.delete.assert_not_called()


class TestRedisCacheStats:
    """Tests for cache statistics"""

    def test_get_stats_returns_disconnected_when_not_connected(self):
        cache = RedisCache()
        with patch.object(cache, 'connect', return_value=False):
            assert cache.get_stats() == {"connected": False}

    def test_get_stats_includes_hit_miss_info(self):
        cache = RedisCache()
        mock_client = MagicMock()
        mock_client.info.return_value = {
            "keyspace_hits": 150,
            "keyspace_misses": 25,
            "used_memory_human": "2.5M"
        }
        mock_client.keys.return_value = []
        mock_client.exists.return_value = 0
        cache._client = mock_client
        cache._connected = True

        result = cache.get_stats()

        assert result["hits"] == 150
        assert result["misses"] == 25
        assert result["memory_used"] == "2.5M"
        assert result["total_keys"] == 0
        assert result["catalog_cached"] is False
        mock_client.keys.assert_called_with(f"{CACHE_PREFIX}*")


class TestCacheHelperFunctions:
    """Tests for module-level helper functions"""

    def test_get_cache_returns_singleton(self):
        import services.cache as cache_module

        cache_module._cache_instance = None
        with patch.object(cache_module.RedisCache, 'connect', return_value=False):
            assert cache_module.get_cache() is cache_module.get_cache()
        cache_module._cache_instance = None

    def test_is_cache_available_returns_connection_status(self):
        import services.cache as cache_module

        mock_cache = MagicMock()
        mock_cache.is_connected = False
        with patch.object(cache_module, 'get_cache', return_value=mock_cache):
            assert cache_module.is_cache_available() is False

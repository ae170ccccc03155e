"""
Redis Cache Service

Caching layer for the course catalog, plus the plain key-value access the
Redis registration store builds on.

Features:
- JSON serialization of catalog data
- TTL on every cached entry
- Graceful fallback if Redis unavailable
- Cache invalidation after catalog updates
"""

import os
import json
from typing import Optional, List, Dict, Any
from pathlib import Path

import redis
from dotenv import load_dotenv

# Load environment variables
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)


REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_DB = int(os.getenv("REDIS_DB", "0"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)

# Cache key prefixes
CACHE_PREFIX = "course_registration:"
CATALOG_KEY = f"{CACHE_PREFIX}catalog"

# TTL in seconds
CATALOG_TTL = 600  # 10 minutes for the full catalog


class RedisCache:
    """Redis caching service for catalog data"""

    def __init__(self):
        self._client: Optional[redis.Redis] = None
        self._connected = False

    def connect(self) -> bool:
        """
        Connect to Redis server.

        Returns:
            True if connected successfully, False otherwise
        """
        try:
            # Try URL first, then host/port
            if REDIS_URL and REDIS_URL != "redis://localhost:6379/0":
                self._client = redis.from_url(
                    REDIS_URL,
                    decode_responses=True,
                    socket_timeout=5,
                    socket_connect_timeout=5
                )
            else:
                self._client = redis.Redis(
                    host=REDIS_HOST,
                    port=REDIS_PORT,
                    db=REDIS_DB,
                    password=REDIS_PASSWORD,
                    decode_responses=True,
                    socket_timeout=5,
                    socket_connect_timeout=5
                )

            # Test connection
            self._client.ping()
            self._connected = True
            print(f"[CACHE] Connected to Redis at {REDIS_HOST}:{REDIS_PORT}")
            return True

        except Exception as e:
            print(f"[CACHE] Failed to connect to Redis: {e}")
            self._client = None
            self._connected = False
            return False

    @property
    def is_connected(self) -> bool:
        """Check if Redis is connected"""
        if not self._connected or not self._client:
            return False
        try:
            self._client.ping()
            return True
        except Exception:
            self._connected = False
            return False

    @property
    def client(self) -> Optional[redis.Redis]:
        """Underlying client, connecting on first use"""
        if not self._ensure_connected():
            return None
        return self._client

    def _ensure_connected(self) -> bool:
        """Ensure Redis is connected, attempt reconnect if not"""
        if self.is_connected:
            return True
        return self.connect()

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        if not self._ensure_connected():
            return None

        try:
            data = self._client.get(key)
            if data:
                return json.loads(data)
            return None
        except Exception as e:
            print(f"[CACHE] Get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = CATALOG_TTL) -> bool:
        """Set value in cache with TTL"""
        if not self._ensure_connected():
            return False

        try:
            self._client.setex(key, ttl, json.dumps(value))
            return True
        except Exception as e:
            print(f"[CACHE] Set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        """Delete a key from cache"""
        if not self._ensure_connected():
            return False

        try:
            self._client.delete(key)
            return True
        except Exception as e:
            print(f"[CACHE] Delete error for {key}: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern"""
        if not self._ensure_connected():
            return 0

        try:
            keys = self._client.keys(pattern)
            if keys:
                return self._client.delete(*keys)
            return 0
        except Exception as e:
            print(f"[CACHE] Delete pattern error for {pattern}: {e}")
            return 0

    def get_catalog(self) -> Optional[List[Dict[str, Any]]]:
        """Get the full course catalog from cache"""
        return self.get(CATALOG_KEY)

    def set_catalog(self, courses: List[Dict[str, Any]]) -> bool:
        """Cache the full course catalog"""
        return self.set(CATALOG_KEY, courses, CATALOG_TTL)

    def invalidate_catalog(self) -> int:
        """Invalidate the cached catalog (after bulk update)"""
        count = self.delete_pattern(CATALOG_KEY)
        print(f"[CACHE] Invalidated {count} catalog cache entries")
        return count

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        if not self._ensure_connected():
            return {"connected": False}

        try:
            info = self._client.info("stats")
            memory = self._client.info("memory")

            total_keys = len(self._client.keys(f"{CACHE_PREFIX}*"))

            return {
                "connected": True,
                "hits": info.get("keyspace_hits", 0),
                "misses": info.get("keyspace_misses", 0),
                "memory_used": memory.get("used_memory_human", "unknown"),
                "catalog_cached": bool(self._client.exists(CATALOG_KEY)),
                "total_keys": total_keys
            }
        except Exception as e:
            return {"connected": True, "error": str(e)}


_cache_instance: Optional[RedisCache] = None


def get_cache() -> RedisCache:
    """Get the singleton cache instance"""
    global _cache_instance
    if _cache_instance is None:
        _cache_instance = RedisCache()
        _cache_instance.connect()
    return _cache_instance


def is_cache_available() -> bool:
    """Check if cache is available and connected"""
    cache = get_cache()
    return cache.is_connected

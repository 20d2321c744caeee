"""
Redis cache for search responses.

Shared result cache for deployments running several search processes:
- Configurable TTL (default 5 minutes)
- Prefix-scoped invalidation (index mutations drop every cached response)
- JSON serialization of response payloads

All operations are best-effort: failures are logged and reported as a miss.
"""

import hashlib
import json
import logging
from typing import Any

from redis.asyncio import ConnectionPool, Redis

logger = logging.getLogger(__name__)


def generate_cache_key(operation: str, params: dict[str, Any]) -> str:
    """
    Generate a consistent cache key from operation and parameters.

    Args:
        operation: The search type (e.g., 'semantic', 'pattern', 'hybrid')
        params: Query and option fields that affect the response

    Returns:
        Cache key string in format: operation:param1=value1:param2=value2:...
        (hashed when longer than 200 characters)
    """
    sorted_params = sorted(params.items())

    param_strs = []
    for key, value in sorted_params:
        if isinstance(value, (dict, list)):
            value_str = json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)
        else:
            value_str = str(value)
        param_strs.append(f"{key}={value_str}")

    key_base = f"{operation}:" + ":".join(param_strs)

    # Embeddings make keys long; hash them to keep Redis keys reasonable
    if len(key_base) > 200:
        key_hash = hashlib.sha256(key_base.encode()).hexdigest()[:16]
        return f"{operation}:{key_hash}"

    return key_base


class RedisCache:
    """
    Redis-based cache for search responses.

    Provides get/set operations with TTL and prefix-scoped invalidation.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379",
        ttl_seconds: int = 300,
        key_prefix: str = "mcp:search:",
        max_connections: int = 10,
    ):
        """
        Initialize Redis cache.

        Args:
            url: Redis connection URL
            ttl_seconds: TTL for cache entries (default 300 = 5 minutes)
            key_prefix: Prefix for all cache keys
            max_connections: Maximum Redis connections in pool
        """
        self.url = url
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix
        self.max_connections = max_connections
        self.hits = 0
        self.misses = 0

        self._pool: ConnectionPool | None = None
        self._redis: Redis | None = None
        self._initialized = False

    async def initialize(self) -> None:
        """Open the connection pool and verify connectivity."""
        if self._initialized:
            return

        self._pool = ConnectionPool.from_url(
            self.url,
            max_connections=self.max_connections,
            decode_responses=True,
        )
        self._redis = Redis(connection_pool=self._pool)

        try:
            await self._redis.ping()
            self._initialized = True
            logger.info(f"RedisCache initialized: {self.url} (TTL={self.ttl_seconds}s)")
        except Exception as e:
            logger.error(f"RedisCache initialization failed: {e}")
            if self._redis:
                await self._redis.aclose()
            if self._pool:
                await self._pool.aclose()
            self._redis = None
            self._pool = None
            raise

    async def close(self) -> None:
        """Close Redis connection pool."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

        if self._pool:
            await self._pool.aclose()
            self._pool = None

        self._initialized = False

    def _make_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> dict[str, Any] | None:
        """Return the cached payload, or None on miss, error or uninitialized cache."""
        if not self._initialized or not self._redis:
            return None

        try:
            value = await self._redis.get(self._make_key(key))
            if value is None:
                self.misses += 1
                return None
            self.hits += 1
            return json.loads(value)
        except Exception as e:
            logger.warning(f"Cache get failed for key {key}: {e}")
            return None

    async def set(self, key: str, value: dict[str, Any]) -> bool:
        """Store a JSON-serializable payload with the configured TTL."""
        if not self._initialized or not self._redis:
            return False

        try:
            await self._redis.setex(self._make_key(key), self.ttl_seconds, json.dumps(value))
            return True
        except Exception as e:
            logger.warning(f"Cache set failed for key {key}: {e}")
            return False

    async def fetch(self, key: str, compute) -> tuple[dict[str, Any], bool]:
        """Serve *key* from Redis, or run *compute* and store its payload."""
        cached = await self.get(key)
        if cached is not None:
            return cached, True
        payload = await compute()
        await self.set(key, payload)
        return payload, False

    async def invalidate_pattern(self, pattern: str) -> int:
        """
        Invalidate all keys matching a pattern.

        Args:
            pattern: Redis glob relative to the prefix (e.g., "semantic:*")

        Returns:
            Number of keys deleted
        """
        if not self._initialized or not self._redis:
            return 0

        try:
            keys = [key async for key in self._redis.scan_iter(match=self._make_key(pattern))]
            if not keys:
                return 0

            deleted = await self._redis.delete(*keys)
            logger.debug(f"Cache invalidated {deleted} keys matching pattern: {pattern}")
            return deleted
        except Exception as e:
            logger.warning(f"Cache invalidation failed for pattern {pattern}: {e}")
            return 0

    async def invalidate_all(self) -> int:
        """Invalidate every key under our prefix."""
        return await self.invalidate_pattern("*")

    def stats(self) -> dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            "backend": "redis",
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / lookups if lookups else 0.0,
            "ttl_seconds": self.ttl_seconds,
        }

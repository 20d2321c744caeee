"""
Search response caches.

The search manager caches serialized responses through either backend:
:class:`CachekitResultCache` (default; CacheKit L1 in-process plus L2 Redis
when REDIS_URL is set) or :class:`~mcp_memory_search.cache.redis_cache.RedisCache`
when ``MCP_SEARCH_REDIS_URL`` names a dedicated Redis.
"""

import uuid
from typing import Any, Protocol, runtime_checkable

from .cachekit_cache import Compute, cached_response


@runtime_checkable
class ResultCache(Protocol):
    """Async cache of serialized search responses."""

    async def fetch(self, key: str, compute: Compute) -> tuple[dict[str, Any], bool]: ...

    async def invalidate_all(self) -> int: ...

    def stats(self) -> dict[str, Any]: ...


class CachekitResultCache:
    """
    Response cache for one search manager.

    Keys are scoped by a per-instance owner id and a generation counter;
    :meth:`invalidate_all` bumps the generation so earlier responses are
    never served again and expire through the TTL.
    """

    def __init__(self) -> None:
        self.owner = uuid.uuid4().hex
        self.generation = 0
        self.hits = 0
        self.misses = 0
        self._stored = 0

    async def fetch(self, key: str, compute: Compute) -> tuple[dict[str, Any], bool]:
        """Return ``(payload, hit)``, running *compute* and caching its payload on a miss."""
        payload, hit = await cached_response(self.owner, self.generation, key, compute)
        if hit:
            self.hits += 1
        else:
            self.misses += 1
            self._stored += 1
        return payload, hit

    async def invalidate_all(self) -> int:
        """Retire the current generation; returns how many responses it held."""
        dropped = self._stored
        self.generation += 1
        self._stored = 0
        return dropped

    def stats(self) -> dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            "backend": "cachekit",
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / lookups if lookups else 0.0,
            "size": self._stored,
            "generation": self.generation,
        }

"""Caches for embeddings and search responses (CacheKit, or a dedicated Redis)."""

from .redis_cache import RedisCache, generate_cache_key
from .result_cache import CachekitResultCache, ResultCache

__all__ = ["CachekitResultCache", "RedisCache", "ResultCache", "generate_cache_key"]

"""
CacheKit-backed caches (L1 in-process + L2 Redis when REDIS_URL is set).

Cached functions are declared at module level and take only plain key
arguments. The computation for the lookup in flight is handed over in a
context variable and runs only on a miss, so callers can tell hits from
misses and cache failures never hide engine errors.
"""

import logging
import os
from collections.abc import Awaitable, Callable
from contextvars import ContextVar
from typing import Any

from cachekit import cache as _cachekit_cache

from ..config import EmbeddingSettings, SearchSettings

logger = logging.getLogger(__name__)

Compute = Callable[[], Awaitable[Any]]


def cachekit_options() -> dict[str, Any]:
    """Decorator options: Redis if REDIS_URL is set, otherwise L1-only."""
    options: dict[str, Any] = {"serializer": "auto"}
    if not os.environ.get("REDIS_URL") and not os.environ.get("CACHEKIT_REDIS_URL"):
        options["backend"] = None
    return options


class PendingCall:
    """Computation for one cached lookup."""

    def __init__(self, compute: Compute):
        self.compute = compute
        self.ran = False
        self.result: Any = None
        self.error: Exception | None = None

    async def run(self) -> Any:
        self.ran = True
        try:
            self.result = await self.compute()
        except Exception as e:
            self.error = e
            raise
        return self.result


_pending: ContextVar[PendingCall | None] = ContextVar("mcp_memory_search_pending_call", default=None)


async def run_pending() -> Any:
    """Body of a cached function: run the computation registered by :func:`cached_call`."""
    call = _pending.get()
    if call is None:
        raise RuntimeError("Cached function called outside cached_call()")
    return await call.run()


async def cached_call(cached_fn: Callable[..., Awaitable[Any]], args: tuple, compute: Compute) -> tuple[Any, bool]:
    """
    Look *args* up through *cached_fn*, running *compute* on a miss.

    Args:
        cached_fn: CacheKit-decorated function whose body is :func:`run_pending`
        args: Key arguments for *cached_fn*
        compute: Coroutine factory producing the value to cache

    Returns:
        ``(value, hit)``

    Raises:
        Whatever *compute* raises. Cache backend failures are logged and the
        value is computed directly.
    """
    call = PendingCall(compute)
    token = _pending.set(call)
    try:
        value = await cached_fn(*args)
    except Exception as e:
        if call.result is not None:
            logger.warning(f"Cache store failed (non-fatal): {e}")
            return call.result, False
        if call.error is not None:
            raise call.error
        logger.warning(f"Cache lookup failed (non-fatal): {e}")
        return await compute(), False
    finally:
        _pending.reset(token)
    return value, not call.ran


# ---------------------------------------------------------------------------
# Cached functions
# ---------------------------------------------------------------------------

_ck_kwargs = cachekit_options()


@_cachekit_cache(ttl=EmbeddingSettings().cache_ttl_seconds, namespace="mcp_memory_search_embeddings", **_ck_kwargs)
async def _cached_embedding(scope: str, text: str) -> list[float]:
    """Embedding of preprocessed *text* for the provider identified by *scope*."""
    return await run_pending()


@_cachekit_cache(ttl=SearchSettings().cache_ttl_seconds, namespace="mcp_memory_search_results", **_ck_kwargs)
async def _cached_response(owner: str, generation: int, key: str) -> dict[str, Any]:
    """Serialized search response for *key* within one manager's cache generation."""
    return await run_pending()


async def cached_embedding(scope: str, text: str, compute: Compute) -> tuple[list[float], bool]:
    return await cached_call(_cached_embedding, (scope, text), compute)


async def cached_response(owner: str, generation: int, key: str, compute: Compute) -> tuple[dict[str, Any], bool]:
    return await cached_call(_cached_response, (owner, generation, key), compute)

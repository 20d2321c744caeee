"""
OpenAI-compatible HTTP embedding provider.

Calls ``POST {base_url}/embeddings`` with httpx. Timeouts, transport errors
and 5xx responses are retried with exponential backoff (tenacity); 4xx
responses are permanent. Every failure surfaces as
:class:`EmbeddingUnavailableError`.
"""

import logging
import uuid
from typing import Any

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

from ..config import EmbeddingSettings
from ..errors import EmbeddingUnavailableError
from ..cache.cachekit_cache import cached_embedding
from .base import preprocess_text

logger = logging.getLogger(__name__)


def is_retryable_error(exception: BaseException) -> bool:
    """True for timeouts, transport failures and 5xx responses."""
    if isinstance(exception, httpx.HTTPStatusError):
        return 500 <= exception.response.status_code < 600
    return isinstance(exception, (httpx.TimeoutException, httpx.TransportError))


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(f"Embedding request failed (attempt {retry_state.attempt_number}), retrying: {exc!r}")


class OpenAIEmbeddingProvider:
    """Embedding provider backed by an OpenAI-compatible ``/embeddings`` endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-ada-002",
        dimension: int = 1536,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 10.0,
        max_retries: int = 3,
        enable_cache: bool = True,
        retry_wait_seconds: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Args:
            api_key: Bearer token for the endpoint
            model: Embedding model name sent with each request
            dimension: Expected vector length; other lengths are rejected
            base_url: API root (without the ``/embeddings`` suffix)
            timeout: Per-request timeout in seconds
            max_retries: Total attempts for retryable failures
            enable_cache: Serve repeated inputs from the CacheKit embedding cache
            retry_wait_seconds: Backoff multiplier between attempts
            client: Shared client; when omitted a client is created per request
        """
        if not api_key:
            raise ValueError("OpenAIEmbeddingProvider requires an API key")
        self._api_key = api_key
        self.model = model
        self._dimension = dimension
        self._url = f"{base_url.rstrip('/')}/embeddings"
        self._timeout = timeout
        self._max_retries = max_retries
        self._retry_wait = retry_wait_seconds
        self._client = client
        self.enable_cache = enable_cache
        # Cache entries are scoped to this provider instance
        self.cache_scope = f"{model}:{dimension}:{uuid.uuid4().hex}"
        self.cache_hits = 0
        self.cache_misses = 0
        self.total_requests = 0
        self.errors = 0

    @classmethod
    def from_settings(cls, settings: EmbeddingSettings, client: httpx.AsyncClient | None = None) -> "OpenAIEmbeddingProvider":
        api_key = settings.api_key.get_secret_value() if settings.api_key else ""
        return cls(
            api_key=api_key,
            model=settings.model,
            dimension=settings.dimensions,
            base_url=settings.base_url,
            timeout=settings.timeout,
            max_retries=settings.max_retries,
            enable_cache=settings.enable_cache,
            client=client,
        )

    @property
    def dimension(self) -> int:
        return self._dimension

    async def embed(self, text: str) -> list[float]:
        """
        Embed *text*, serving repeated inputs from the cache.

        Raises:
            EmbeddingUnavailableError: Empty input, request failure after retries,
                malformed response or wrong vector dimension.
        """
        processed = preprocess_text(text or "")
        if not processed:
            raise EmbeddingUnavailableError("Cannot embed empty text")

        if not self.enable_cache:
            return await self._embed_uncached(processed)

        embedding, hit = await cached_embedding(self.cache_scope, processed, lambda: self._embed_uncached(processed))
        if hit:
            self.cache_hits += 1
        else:
            self.cache_misses += 1
        return embedding

    async def _embed_uncached(self, text: str) -> list[float]:
        try:
            payload = await self._request_with_retry(text)
        except httpx.HTTPStatusError as e:
            self.errors += 1
            raise EmbeddingUnavailableError(f"Embedding API error: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            self.errors += 1
            raise EmbeddingUnavailableError(f"Embedding request failed: {type(e).__name__}") from e

        return self._extract_embedding(payload)

    async def _request_with_retry(self, text: str) -> dict[str, Any]:
        retrying = AsyncRetrying(
            retry=retry_if_exception(is_retryable_error),
            stop=stop_after_attempt(self._max_retries),
            wait=wait_exponential(multiplier=self._retry_wait, min=0, max=5),
            before_sleep=_log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._request(text)
        raise EmbeddingUnavailableError("Embedding request was not attempted")

    async def _request(self, text: str) -> dict[str, Any]:
        self.total_requests += 1
        headers = {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"}
        body = {"input": text, "model": self.model}

        if self._client is not None:
            response = await self._client.post(self._url, json=body, headers=headers, timeout=self._timeout)
            response.raise_for_status()
            return response.json()

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(self._url, json=body, headers=headers)
            response.raise_for_status()
            return response.json()

    def _extract_embedding(self, payload: dict[str, Any]) -> list[float]:
        try:
            embedding = [float(v) for v in payload["data"][0]["embedding"]]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            self.errors += 1
            raise EmbeddingUnavailableError(f"Malformed embedding response: {e}") from e

        if len(embedding) != self._dimension:
            self.errors += 1
            raise EmbeddingUnavailableError(
                f"Invalid embedding dimensions: expected {self._dimension}, got {len(embedding)}"
            )
        return embedding

    def get_statistics(self) -> dict[str, Any]:
        lookups = self.cache_hits + self.cache_misses
        return {
            "provider": "openai",
            "model": self.model,
            "dimension": self._dimension,
            "total_requests": self.total_requests,
            "errors": self.errors,
            "cache_enabled": self.enable_cache,
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "cache_hit_rate": self.cache_hits / lookups if lookups else 0.0,
        }

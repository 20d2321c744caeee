"""
Unified search entry point.

The search manager resolves loose input into a typed query once, normalises
options, serves repeated queries from the result cache, dispatches to the
semantic, pattern, full-text or hybrid path, post-processes the results
(field filters, sorting, offset pagination) and records search analytics.
Index mutations go through the manager so that the result cache is
invalidated with them.
"""

import logging
import time
from collections import Counter
from typing import Any

from ..cache.redis_cache import RedisCache, generate_cache_key
from ..cache.result_cache import CachekitResultCache, ResultCache
from ..config import Settings
from ..embeddings.base import EmbeddingProvider
from ..errors import NoEmbeddingAvailableError, SearchError
from ..models.document import Document
from ..models.query import FullTextQuery, HybridQuery, PatternQuery, Query, SemanticQuery, WeightedQuery, parse_query
from ..models.results import ScoredResult, SearchOptions, SearchResponse
from ..patterns.engine import PatternEngine
from ..storage.base import DocumentCorpusReader, FullTextSearcher
from ..utils.filters import passes_filters
from ..utils.stats import SearchStatistics
from ..vector.index import VectorIndex
from .coordinator import HybridCoordinator, search_full_text
from .semantic import SemanticEngine

logger = logging.getLogger(__name__)

# Response fields excluded from cached payloads
_CACHE_EXCLUDE = {"results": {"__all__": {"document": {"embedding"}}}}


def query_text(query: Query) -> str | None:
    """Human-readable text of a query, used for popular-query analytics."""
    if isinstance(query, SemanticQuery):
        return query.text
    if isinstance(query, PatternQuery):
        return query.source
    if isinstance(query, FullTextQuery):
        return query.text
    return None


def sort_results(results: list[ScoredResult], sort: str) -> list[ScoredResult]:
    """Order results by ``"<field>:<asc|desc>"`` (default desc); ``"relevance"`` keeps the ranking.

    ``score`` sorts by the fused score; other fields are read from the document.
    Results without a value for the field go last.
    """
    if not sort or sort == "relevance":
        return results

    field, _, direction = sort.partition(":")
    descending = (direction or "desc").lower() != "asc"

    def value_of(result: ScoredResult) -> Any:
        if field == "score":
            return result.score
        if result.document is None:
            return None
        return result.document.field_value(field)

    present = [r for r in results if value_of(r) is not None]
    missing = [r for r in results if value_of(r) is None]
    present.sort(key=lambda r: r.document_id)
    try:
        present.sort(key=value_of, reverse=descending)
    except TypeError:
        logger.warning(f"Cannot sort results by '{field}': values are not comparable")
        return results
    return present + missing


class SearchManager:
    """Front door for all search types, with result caching and analytics."""

    def __init__(
        self,
        pattern_engine: PatternEngine,
        semantic_engine: SemanticEngine,
        coordinator: HybridCoordinator | None = None,
        full_text: FullTextSearcher | None = None,
        corpus: DocumentCorpusReader | None = None,
        cache: ResultCache | None = None,
        settings: Settings | None = None,
    ):
        self._settings = settings or Settings()
        self._pattern = pattern_engine
        self._semantic = semantic_engine
        self._full_text = full_text
        self._corpus = corpus
        self._coordinator = coordinator or HybridCoordinator(
            pattern_engine=pattern_engine,
            semantic_engine=semantic_engine,
            full_text=full_text,
            corpus=corpus,
            settings=self._settings.hybrid,
        )

        search_settings = self._settings.search
        if cache is None and search_settings.enable_cache:
            cache = CachekitResultCache()
        self._cache = cache if search_settings.enable_cache else None

        self._analytics = SearchStatistics()
        self._popular_queries: Counter = Counter()

    @property
    def pattern_engine(self) -> PatternEngine:
        return self._pattern

    @property
    def semantic_engine(self) -> SemanticEngine:
        return self._semantic

    @property
    def coordinator(self) -> HybridCoordinator:
        return self._coordinator

    @property
    def cache(self) -> ResultCache | None:
        return self._cache

    # ── Options ────────────────────────────────────────────────────────

    def normalize_options(self, options: SearchOptions | dict[str, Any] | None) -> SearchOptions:
        """Default and cap ``limit`` (``max_result_limit``); accept dicts with camelCase keys."""
        search_settings = self._settings.search
        if isinstance(options, SearchOptions):
            raw = options.model_dump()
        else:
            raw = dict(options or {})

        limit = raw.get("limit") or search_settings.default_result_limit
        raw["limit"] = max(1, min(int(limit), search_settings.max_result_limit))
        return SearchOptions.model_validate(raw)

    def cache_key(self, query: Query, options: SearchOptions) -> str:
        return generate_cache_key(
            query.type,
            {
                "query": query.model_dump(mode="json"),
                "options": options.model_dump(mode="json"),
            },
        )

    # ── Search ─────────────────────────────────────────────────────────

    async def search(
        self,
        query: Query | dict[str, Any] | str,
        options: SearchOptions | dict[str, Any] | None = None,
    ) -> SearchResponse:
        """
        Run any query type.

        Args:
            query: Typed query, loose dict payload, or plain text (full-text search)
            options: Search options (dict or :class:`SearchOptions`)

        Returns:
            Response with ``metadata["cached"]`` set when served from the cache

        Raises:
            SearchError: Engine errors for single-engine queries (hybrid
                subquery errors are reported in ``breakdown`` instead)
        """
        start = time.perf_counter()
        parsed = parse_query(query)
        opts = self.normalize_options(options)

        if self._cache is None:
            return await self._run(parsed, opts, start)

        fresh: list[SearchResponse] = []

        async def compute() -> dict[str, Any]:
            response = await self._run(parsed, opts, start)
            fresh.append(response)
            return response.model_dump(mode="json", exclude=_CACHE_EXCLUDE)

        payload, hit = await self._cache.fetch(self.cache_key(parsed, opts), compute)
        if not hit:
            return fresh[0] if fresh else SearchResponse.model_validate(payload)

        response = SearchResponse.model_validate(payload)
        response.metadata["cached"] = True
        self._analytics.record_cache_hit()
        self._record("cache", parsed, start)
        logger.debug(f"Result cache hit for {parsed.type} query")
        return response

    async def _run(self, query: Query, options: SearchOptions, start: float) -> SearchResponse:
        try:
            response = await self._dispatch(query, options)
        except Exception:
            self._analytics.record_error()
            self._record("error", query, start)
            raise

        response = self.post_process(response, options)
        response.metadata["cached"] = False
        self._record(query.type, query, start)
        return response

    async def _dispatch(self, query: Query, options: SearchOptions) -> SearchResponse:
        # Fetch enough to fill the requested page after the offset is applied
        engine_options = options.model_copy(update={"limit": options.limit + options.offset})

        if isinstance(query, SemanticQuery):
            semantic = await self._semantic.search(query, engine_options)
            return SearchResponse(
                results=semantic.results,
                total=semantic.total,
                search_type="semantic",
                metadata=semantic.metadata,
            )

        if isinstance(query, PatternQuery):
            pattern = await self._pattern.search(query, engine_options)
            return SearchResponse(
                results=pattern.results,
                total=pattern.total,
                search_type="pattern",
                metadata={**pattern.metadata, "pattern_type": pattern.pattern_type},
            )

        if isinstance(query, FullTextQuery):
            return await self._full_text_search(query, engine_options)

        if isinstance(query, HybridQuery):
            hybrid = await self._coordinator.search(query, engine_options)
            return SearchResponse(
                results=hybrid.results,
                total=hybrid.total,
                search_type="hybrid",
                breakdown=hybrid.breakdown,
                partial=hybrid.partial,
                metadata=hybrid.metadata,
            )

        raise SearchError(f"Unsupported query type: {type(query).__name__}")

    async def _full_text_search(self, query: FullTextQuery, options: SearchOptions) -> SearchResponse:
        if self._full_text is None:
            # Without a full-text index, plain text runs as a literal pattern search
            pattern = await self._pattern.search(PatternQuery(kind="text", text=query.text), options)
            return SearchResponse(
                results=pattern.results,
                total=pattern.total,
                search_type="fulltext",
                metadata={**pattern.metadata, "engine": "pattern"},
            )

        start = time.perf_counter()
        results = await search_full_text(self._full_text, self._corpus, query.text, options)
        return SearchResponse(
            results=results,
            total=len(results),
            search_type="fulltext",
            metadata={"search_time_ms": (time.perf_counter() - start) * 1000, "engine": "fulltext"},
        )

    def post_process(self, response: SearchResponse, options: SearchOptions) -> SearchResponse:
        """Apply field filters, sorting and offset pagination to an engine response."""
        results = response.results
        if options.filters:
            results = [r for r in results if r.document is None or passes_filters(r.document, options.filters)]
        results = sort_results(results, options.sort)
        results = results[options.offset : options.offset + options.limit]
        return response.model_copy(update={"results": results, "total": len(results)})

    # ── Convenience wrappers ───────────────────────────────────────────

    async def semantic_search(
        self,
        text: str | None = None,
        embedding: list[float] | None = None,
        options: SearchOptions | dict[str, Any] | None = None,
    ) -> SearchResponse:
        return await self.search(SemanticQuery(text=text, embedding=embedding), options)

    async def pattern_search(
        self,
        pattern: PatternQuery | dict[str, Any],
        options: SearchOptions | dict[str, Any] | None = None,
    ) -> SearchResponse:
        if isinstance(pattern, dict):
            pattern = parse_query({**pattern, "type": "pattern"})
        return await self.search(pattern, options)

    async def full_text_search(self, text: str, options: SearchOptions | dict[str, Any] | None = None) -> SearchResponse:
        return await self.search(FullTextQuery(text=text), options)

    async def hybrid_search(
        self,
        subqueries: list[tuple[Query | dict[str, Any] | str, float]],
        options: SearchOptions | dict[str, Any] | None = None,
    ) -> SearchResponse:
        """Run weighted ``(query, weight)`` pairs as one hybrid query."""
        hybrid = HybridQuery(
            subqueries=[WeightedQuery(query=parse_query(sub), weight=weight) for sub, weight in subqueries]
        )
        return await self.search(hybrid, options)

    # ── Index mutations ────────────────────────────────────────────────

    async def index_document(self, document: Document) -> None:
        """Add a document to the vector index, embedding its text when it carries no vector.

        Raises:
            NoEmbeddingAvailableError, EmbeddingUnavailableError, DimensionMismatchError
        """
        if document.embedding is None:
            text = document.searchable_text()
            if not text:
                raise NoEmbeddingAvailableError(f"Document {document.id} has no embedding and no text to embed")
            embedding = await self._semantic.resolve_vector(SemanticQuery(text=text))
            document = document.model_copy(update={"embedding": embedding})
        self._semantic.index.index_document(document)
        await self.invalidate_cache()

    async def update_document(self, document_id: str, partial: dict[str, Any]) -> Document:
        document = self._semantic.index.update(document_id, partial)
        await self.invalidate_cache()
        return document

    async def remove_document(self, document_id: str) -> bool:
        removed = self._semantic.index.remove(document_id)
        if removed:
            await self.invalidate_cache()
        return removed

    async def invalidate_cache(self) -> int:
        if self._cache is None:
            return 0
        try:
            count = await self._cache.invalidate_all()
        except Exception as e:
            logger.warning(f"Result cache invalidation failed (non-fatal): {e}")
            return 0
        logger.debug(f"Result cache invalidated ({count} entries)")
        return count

    # ── Analytics ──────────────────────────────────────────────────────

    def _record(self, search_type: str, query: Query, start: float) -> None:
        if not self._settings.search.enable_analytics:
            return
        elapsed_ms = (time.perf_counter() - start) * 1000
        self._analytics.record(search_type, elapsed_ms)
        text = query_text(query)
        if text:
            self._popular_queries[text.lower()] += 1

    def get_statistics(self) -> dict[str, Any]:
        analytics = self._analytics.snapshot()
        analytics["search_types"] = analytics.pop("counters")
        analytics["top_queries"] = self._popular_queries.most_common(self._settings.search.popular_query_limit)
        return {
            "analytics": analytics,
            "cache": self._cache.stats() if self._cache is not None else None,
            "components": {
                "semantic": self._semantic.get_statistics(),
                "pattern": self._pattern.get_statistics(),
                "hybrid": self._coordinator.get_statistics(),
            },
        }

    async def clear_cache(self) -> None:
        """Drop cached responses and compiled patterns."""
        await self.invalidate_cache()
        self._pattern.clear_cache()

    def reset_analytics(self) -> None:
        self._analytics.reset()
        self._popular_queries.clear()


async def create_search_manager(
    corpus: DocumentCorpusReader,
    embedding_provider: EmbeddingProvider | None = None,
    full_text: FullTextSearcher | None = None,
    settings: Settings | None = None,
    rebuild_index: bool = True,
) -> SearchManager:
    """
    Wire engines, index and result cache from settings.

    Args:
        corpus: Document source for pattern search and the index rebuild
        embedding_provider: Provider for text-only semantic queries
        full_text: Optional full-text source
        settings: Settings (defaults to the global settings object)
        rebuild_index: Replay every embedded corpus document into the index

    Returns:
        Ready-to-use SearchManager
    """
    if settings is None:
        from ..config import settings as global_settings

        settings = global_settings

    index = VectorIndex(dimension=settings.semantic.embedding_dimensions)
    if rebuild_index:
        await index.rebuild_from_corpus(corpus)

    cache: ResultCache | None = None
    if settings.search.enable_cache and settings.search.redis_url:
        redis_cache = RedisCache(url=settings.search.redis_url, ttl_seconds=settings.search.cache_ttl_seconds)
        try:
            await redis_cache.initialize()
            cache = redis_cache
        except Exception as e:
            logger.warning(f"Redis result cache unavailable, using CacheKit cache: {e}")

    pattern_engine = PatternEngine(corpus, settings=settings.pattern)
    semantic_engine = SemanticEngine(index, embedding_provider=embedding_provider, settings=settings.semantic)
    logger.info(f"Search manager ready ({len(index)} documents indexed)")
    return SearchManager(
        pattern_engine=pattern_engine,
        semantic_engine=semantic_engine,
        full_text=full_text,
        corpus=corpus,
        cache=cache,
        settings=settings,
    )

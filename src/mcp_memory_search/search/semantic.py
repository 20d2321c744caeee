"""
Semantic (vector similarity) search.

Pipeline per query:
    1. Resolve the query vector: supplied embedding verbatim, else the
       embedding provider for the query text, else fail.
    2. Scan the vector index with the similarity threshold and filters.
    3. Sort by similarity (ties by document id) and truncate to the limit.
    4. Rerank with the selected model and clamp scores to [0, 1].
    5. Attach highlights when requested.
"""

import logging
import time
from typing import Any

from ..config import SemanticSettings
from ..embeddings.base import EmbeddingProvider
from ..errors import EmbeddingUnavailableError, NoEmbeddingAvailableError
from ..models.query import SemanticQuery
from ..models.results import ScoredResult, SearchOptions, SemanticSearchResponse
from ..models.validators import clamp_unit
from ..utils.filters import build_filter
from ..utils.stats import SearchStatistics
from ..utils.text_scoring import generate_highlight
from ..vector.index import VectorIndex
from .rerankers import get_reranker

logger = logging.getLogger(__name__)

# Number of query-vector dimensions echoed in response metadata
EMBEDDING_PREVIEW_DIMS = 5


def _rank_key(result: ScoredResult) -> tuple[float, str]:
    return (-result.score, result.document_id)


class SemanticEngine:
    """Vector similarity search over a :class:`VectorIndex` with pluggable reranking."""

    def __init__(
        self,
        index: VectorIndex,
        embedding_provider: EmbeddingProvider | None = None,
        settings: SemanticSettings | None = None,
    ):
        self._index = index
        self._provider = embedding_provider
        self._settings = settings or SemanticSettings()
        self._stats = SearchStatistics()

    @property
    def index(self) -> VectorIndex:
        return self._index

    @property
    def settings(self) -> SemanticSettings:
        return self._settings

    @property
    def embedding_provider(self) -> EmbeddingProvider | None:
        return self._provider

    async def resolve_vector(self, query: SemanticQuery) -> list[float]:
        """
        Return the vector to search with.

        Raises:
            NoEmbeddingAvailableError: No embedding and no text/provider to produce one.
            EmbeddingUnavailableError: The provider failed.
        """
        if query.embedding is not None:
            return query.embedding

        if query.text and self._provider is not None:
            try:
                return await self._provider.embed(query.text)
            except EmbeddingUnavailableError:
                raise
            except Exception as e:
                raise EmbeddingUnavailableError(f"Embedding provider failed: {e}") from e

        raise NoEmbeddingAvailableError("No embedding available for query")

    def select_rerank_model(self, query: SemanticQuery, options: SearchOptions) -> str:
        """Per-query model, then per-call option, then the configured default (``none`` when disabled)."""
        if query.rerank_model is not None:
            return query.rerank_model
        if options.rerank_model is not None:
            return options.rerank_model
        return self._settings.rerank_model if self._settings.enable_reranking else "none"

    async def search(self, query: SemanticQuery, options: SearchOptions | None = None) -> SemanticSearchResponse:
        """
        Run a semantic query.

        Raises:
            NoEmbeddingAvailableError, EmbeddingUnavailableError, DimensionMismatchError
        """
        start = time.perf_counter()
        options = options or SearchOptions()
        rerank_model = self.select_rerank_model(query, options)

        try:
            vector = await self.resolve_vector(query)
            candidates = self.find_similar(vector, options)
            results = self.rerank(candidates, query.text, rerank_model)
        except Exception:
            self._stats.record_error()
            raise

        if options.include_highlight and query.text:
            results = [self._with_highlight(result, query.text) for result in results]

        elapsed_ms = (time.perf_counter() - start) * 1000
        self._stats.record(rerank_model, elapsed_ms)

        similarities = [r.similarity for r in results if r.similarity is not None]
        return SemanticSearchResponse(
            results=results,
            total=len(results),
            metadata={
                "search_time_ms": elapsed_ms,
                "average_similarity": sum(similarities) / len(similarities) if similarities else 0.0,
                "rerank_model": rerank_model,
                "reranking_applied": rerank_model != "none",
                "query_embedding_preview": list(vector[:EMBEDDING_PREVIEW_DIMS]),
            },
        )

    def find_similar(self, vector: list[float], options: SearchOptions) -> list[ScoredResult]:
        """Threshold-filtered candidates sorted by similarity (ties by id), truncated to the limit."""
        threshold = options.threshold if options.threshold is not None else self._settings.similarity_threshold
        predicate = build_filter(options.user_id, options.filters or None)

        hits = self._index.scan(vector, predicate=predicate, threshold=threshold)
        hits.sort(key=lambda hit: (-hit[1], hit[0]))
        limit = min(options.limit, self._settings.max_results)

        return [
            ScoredResult(
                document_id=document_id,
                score=similarity,
                similarity=similarity,
                source_scores={"semantic": clamp_unit(similarity)},
                document=self._index.get(document_id),
            )
            for document_id, similarity in hits[:limit]
        ]

    def rerank(self, results: list[ScoredResult], query_text: str | None, model: str) -> list[ScoredResult]:
        reranker = get_reranker(
            model,
            hybrid_weight=self._settings.hybrid_weight,
            half_life_days=self._settings.recency_half_life_days,
        )
        if reranker is None or not results:
            return results

        reranked = [r.model_copy(update={"score": clamp_unit(r.score)}) for r in reranker.rerank(results, query_text)]
        reranked.sort(key=_rank_key)
        return reranked

    def _with_highlight(self, result: ScoredResult, query_text: str) -> ScoredResult:
        doc = result.document
        if doc is None:
            return result
        highlight = generate_highlight(
            doc.title,
            doc.content,
            query_text,
            tag=self._settings.highlight_tag,
            max_sentences=self._settings.highlight_max_sentences,
        )
        return result.model_copy(update={"highlight": highlight})

    def get_statistics(self) -> dict[str, Any]:
        stats = self._stats.snapshot()
        stats["rerank_models"] = stats.pop("counters")
        stats["total_similarity_calculations"] = self._index.similarity_calculations
        stats["documents_indexed"] = len(self._index)
        stats["embedding_provider"] = type(self._provider).__name__ if self._provider else None
        return stats

    def reset_stats(self) -> None:
        self._stats.reset()
        self._index.similarity_calculations = 0

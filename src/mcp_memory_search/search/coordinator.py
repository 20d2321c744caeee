"""
Hybrid query coordinator.

Fans each weighted subquery out to its engine as a separate asyncio task,
isolates failures per subquery, and fuses the completed result sets into one
ranked list. An optional deadline abandons subqueries still running; the
completed ones are fused and the response is flagged ``partial``.
"""

import asyncio
import logging
import time
from collections import Counter
from typing import Any

from ..config import HybridSettings
from ..models.query import FullTextQuery, HybridQuery, PatternQuery, Query, SemanticQuery
from ..models.results import HybridSearchResponse, ScoredResult, SearchOptions, SubqueryBreakdown
from ..models.validators import clamp_unit
from ..patterns.engine import PatternEngine
from ..storage.base import DocumentCorpusReader, FullTextSearcher
from ..utils.stats import SearchStatistics
from .fusion import SourceResults, fuse_results
from .semantic import SemanticEngine

logger = logging.getLogger(__name__)


def subquery_labels(subqueries: list[Any]) -> list[str]:
    """Label each subquery by its type, suffixed with its position when a type repeats."""
    types = [wq.query.type for wq in subqueries]
    counts = Counter(types)
    return [t if counts[t] == 1 else f"{t}_{i}" for i, t in enumerate(types)]


async def search_full_text(
    full_text: FullTextSearcher,
    corpus: DocumentCorpusReader | None,
    text: str,
    options: SearchOptions,
) -> list[ScoredResult]:
    """Run a full-text search and hydrate the top ``options.limit`` hits from the corpus."""
    filters = dict(options.filters)
    if options.user_id is not None:
        filters["user_id"] = options.user_id

    hits = await full_text.search(text, filters or None)
    results = []
    for document_id, score in hits[: options.limit]:
        document = await corpus.get_document(document_id) if corpus is not None else None
        results.append(
            ScoredResult(
                document_id=document_id,
                score=score,
                source_scores={"fulltext": clamp_unit(score)},
                document=document,
            )
        )
    return results


class HybridCoordinator:
    """Runs hybrid queries across the pattern, semantic and full-text sources."""

    def __init__(
        self,
        pattern_engine: PatternEngine | None = None,
        semantic_engine: SemanticEngine | None = None,
        full_text: FullTextSearcher | None = None,
        corpus: DocumentCorpusReader | None = None,
        settings: HybridSettings | None = None,
    ):
        """
        Args:
            pattern_engine: Engine for pattern subqueries (None skips them)
            semantic_engine: Engine for semantic subqueries (None skips them)
            full_text: Optional full-text source; fulltext subqueries are skipped without it
            corpus: Used to attach documents to full-text hits
            settings: Fusion strategy, candidate multiplier and default deadline
        """
        self._pattern = pattern_engine
        self._semantic = semantic_engine
        self._full_text = full_text
        self._corpus = corpus
        self._settings = settings or HybridSettings()
        self._stats = SearchStatistics()

    @property
    def settings(self) -> HybridSettings:
        return self._settings

    def _skip_reason(self, query: Query) -> str | None:
        if isinstance(query, FullTextQuery) and self._full_text is None:
            return "no full-text searcher configured"
        if isinstance(query, PatternQuery) and self._pattern is None:
            return "no pattern engine configured"
        if isinstance(query, SemanticQuery) and self._semantic is None:
            return "no semantic engine configured"
        return None

    async def search(
        self,
        query: HybridQuery,
        options: SearchOptions | None = None,
        timeout: float | None = None,
    ) -> HybridSearchResponse:
        """
        Execute every subquery concurrently and fuse the results.

        Args:
            query: Hybrid query with weighted subqueries
            options: Limit, threshold and filters applied to every subquery
            timeout: Deadline in seconds (defaults to ``settings.timeout_seconds``)

        Returns:
            Fused results plus a per-subquery breakdown. Subquery failures never
            raise; they are reported in the breakdown.
        """
        start = time.perf_counter()
        options = options or SearchOptions()
        timeout = timeout if timeout is not None else self._settings.timeout_seconds
        pool_size = options.limit * self._settings.candidate_multiplier
        sub_options = options.model_copy(update={"limit": pool_size, "offset": 0})

        labels = subquery_labels(query.subqueries)
        breakdown: list[SubqueryBreakdown] = []
        tasks: dict[asyncio.Task, int] = {}

        for i, weighted in enumerate(query.subqueries):
            entry = SubqueryBreakdown(
                index=i,
                source=labels[i],
                query_type=weighted.query.type,
                weight=weighted.weight,
                status="ok",
            )
            reason = self._skip_reason(weighted.query)
            if reason is not None:
                entry.status = "skipped"
                entry.error = reason
            else:
                tasks[asyncio.create_task(self._run_subquery(weighted.query, sub_options))] = i
            breakdown.append(entry)

        pending: set[asyncio.Task] = set()
        try:
            if tasks:
                _, pending = await asyncio.wait(tasks.keys(), timeout=timeout)
        finally:
            # Past the deadline or when the caller cancels, no subquery outlives this call
            for task in tasks:
                if not task.done():
                    task.cancel()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)

        sources: list[SourceResults] = []
        partial = False
        for task, i in tasks.items():
            entry = breakdown[i]
            if task in pending:
                entry.status = "timeout"
                entry.error = f"Subquery did not finish within {timeout}s"
                partial = True
                logger.warning(f"Hybrid subquery {i} ({entry.source}) timed out after {timeout}s")
                continue

            exc = task.exception()
            if exc is not None:
                entry.status = "error"
                entry.error = str(exc)
                logger.warning(f"Hybrid subquery {i} ({entry.source}) failed: {type(exc).__name__}: {exc}")
                continue

            results = task.result()
            entry.count = len(results)
            sources.append(SourceResults(label=entry.source, weight=entry.weight, results=results))

        outcome = fuse_results(sources, strategy=self._settings.fusion, limit=options.limit)
        for entry in breakdown:
            entry.contribution = outcome.contributions.get(entry.source, 0.0)

        elapsed_ms = (time.perf_counter() - start) * 1000
        self._stats.record(self._settings.fusion, elapsed_ms)
        if any(entry.status == "error" for entry in breakdown):
            self._stats.record_error()

        return HybridSearchResponse(
            results=outcome.results,
            total=len(outcome.results),
            breakdown=breakdown,
            partial=partial,
            metadata={
                "search_time_ms": elapsed_ms,
                "fusion": self._settings.fusion,
                "candidate_pool": pool_size,
                "timeout_seconds": timeout,
            },
        )

    async def _run_subquery(self, query: Query, options: SearchOptions) -> list[ScoredResult]:
        if isinstance(query, SemanticQuery):
            return (await self._semantic.search(query, options)).results
        if isinstance(query, PatternQuery):
            return (await self._pattern.search(query, options)).results
        if isinstance(query, FullTextQuery):
            return await self._full_text_search(query, options)
        if isinstance(query, HybridQuery):
            return (await self.search(query, options)).results
        raise TypeError(f"Unsupported subquery type: {type(query).__name__}")

    async def _full_text_search(self, query: FullTextQuery, options: SearchOptions) -> list[ScoredResult]:
        return await search_full_text(self._full_text, self._corpus, query.text, options)

    def get_statistics(self) -> dict[str, Any]:
        stats = self._stats.snapshot()
        stats["fusion_strategies"] = stats.pop("counters")
        return stats

    def reset_stats(self) -> None:
        self._stats.reset()

"""
Score fusion for hybrid queries.

Strategies (``w`` = subquery weight, ``s`` = subquery score in [0, 1]):
    - weighted_sum: ``sum(w * s)`` over the subqueries that returned the
      document; a missing subquery contributes 0 and weights are not normalised
    - convex:       as weighted_sum with weights rescaled to sum to 1
    - max:          ``max(w * s)``

Fused scores are clamped to [0, 1] and ordered by score desc, then id asc.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..config import FusionStrategy
from ..models.results import PatternMatch, ScoredResult
from ..models.validators import clamp_unit

logger = logging.getLogger(__name__)


@dataclass
class SourceResults:
    """Results of one subquery, labelled for ``source_scores`` and weighted for fusion."""

    label: str
    weight: float
    results: list[ScoredResult] = field(default_factory=list)


@dataclass
class FusionOutcome:
    results: list[ScoredResult]
    # label → sum of weighted scores credited to the returned results
    contributions: dict[str, float]


@dataclass
class _Accumulator:
    base: ScoredResult
    weighted: dict[str, float] = field(default_factory=dict)
    raw: dict[str, float] = field(default_factory=dict)
    matches: list[PatternMatch] = field(default_factory=list)
    matched_fields: list[str] = field(default_factory=list)
    similarity: float | None = None
    highlight: dict[str, Any] | None = None
    ranking_features: list[float] | None = None


def effective_weights(weights: Sequence[float], strategy: FusionStrategy) -> list[float]:
    if strategy != "convex":
        return list(weights)
    total = sum(weights)
    if total <= 0:
        return [0.0 for _ in weights]
    return [w / total for w in weights]


def fuse_results(
    sources: Sequence[SourceResults],
    strategy: FusionStrategy = "weighted_sum",
    limit: int | None = None,
) -> FusionOutcome:
    """Merge per-subquery result lists into one ranked, de-duplicated list."""
    weights = effective_weights([s.weight for s in sources], strategy)
    accumulators: dict[str, _Accumulator] = {}

    for source, weight in zip(sources, weights):
        # Best score per document within a single subquery
        best: dict[str, ScoredResult] = {}
        for result in source.results:
            current = best.get(result.document_id)
            if current is None or result.score > current.score:
                best[result.document_id] = result

        for document_id, result in best.items():
            acc = accumulators.get(document_id)
            if acc is None:
                acc = accumulators[document_id] = _Accumulator(base=result)
            elif acc.base.document is None and result.document is not None:
                acc.base = result
            acc.weighted[source.label] = weight * result.score
            acc.raw[source.label] = result.score
            if acc.similarity is None and result.similarity is not None:
                acc.similarity = result.similarity
            if acc.highlight is None and result.highlight is not None:
                acc.highlight = result.highlight
            if acc.ranking_features is None and result.ranking_features is not None:
                acc.ranking_features = result.ranking_features
            acc.matches.extend(result.matches)
            for name in result.matched_fields:
                if name not in acc.matched_fields:
                    acc.matched_fields.append(name)

    fused: list[tuple[ScoredResult, dict[str, float]]] = []
    for document_id, acc in accumulators.items():
        if strategy == "max":
            winner = max(acc.weighted, key=lambda label: acc.weighted[label])
            credited = {winner: acc.weighted[winner]}
            score = acc.weighted[winner]
        else:
            credited = dict(acc.weighted)
            score = sum(acc.weighted.values())

        result = ScoredResult(
            document_id=document_id,
            score=clamp_unit(score),
            similarity=acc.similarity,
            source_scores=dict(acc.raw),
            matches=acc.matches,
            match_count=len(acc.matches) or acc.base.match_count,
            matched_fields=acc.matched_fields,
            highlight=acc.highlight,
            ranking_features=acc.ranking_features,
            document=acc.base.document,
        )
        fused.append((result, credited))

    fused.sort(key=lambda item: (-item[0].score, item[0].document_id))
    if limit is not None:
        fused = fused[:limit]

    contributions = {source.label: 0.0 for source in sources}
    for _, credited in fused:
        for label, value in credited.items():
            contributions[label] += value

    logger.debug(f"Fused {len(sources)} result sets into {len(fused)} results ({strategy})")
    return FusionOutcome(results=[result for result, _ in fused], contributions=contributions)

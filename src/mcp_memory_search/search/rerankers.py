"""
Reranking strategies for semantic search candidates.

Each reranker re-scores an already similarity-filtered candidate list using
signals beyond raw cosine similarity. Scores are clamped to [0, 1] by the
caller; ordering is applied by the caller too.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol, runtime_checkable

from ..models.document import Document
from ..models.results import ScoredResult
from ..utils.text_scoring import recency_boost, text_match_ratio

logger = logging.getLogger(__name__)

# One-hot encoded categories for the learning-to-rank feature vector
LTR_CATEGORIES = ("work", "personal", "learning", "ideas")

# similarity, title match, content match, priority, recency, content length,
# tag count, then one weight per category
LTR_WEIGHTS = (0.6, 0.2, 0.1, 0.05, 0.03, 0.01, 0.01, 0.02, 0.02, 0.02, 0.02)


def _document_timestamp(document: Document | None) -> datetime | None:
    if document is None:
        return None
    return document.updated_at or document.created_at


@runtime_checkable
class Reranker(Protocol):
    """Protocol for pluggable semantic rerankers."""

    name: str

    def rerank(self, results: list[ScoredResult], query_text: str | None) -> list[ScoredResult]:
        """Return re-scored copies of *results* (order is not significant)."""


class _ScoringReranker:
    name = "base"

    def score(self, result: ScoredResult, query_text: str | None) -> float:
        raise NotImplementedError

    def rerank(self, results: list[ScoredResult], query_text: str | None) -> list[ScoredResult]:
        reranked = []
        for result in results:
            score = self.score(result, query_text)
            reranked.append(
                result.model_copy(update={"score": score, "source_scores": {**result.source_scores, self.name: score}})
            )
        return reranked


class CosineReranker(_ScoringReranker):
    """Similarity plus title overlap, recency and priority boosts, capped at 1.0."""

    name = "cosine"

    def __init__(self, title_boost: float = 0.2, recency_weight: float = 0.1, priority_boost: float = 0.1,
                 half_life_days: float = 30.0):
        self.title_boost = title_boost
        self.recency_weight = recency_weight
        self.priority_boost = priority_boost
        self.half_life_days = half_life_days

    def score(self, result: ScoredResult, query_text: str | None) -> float:
        score = result.similarity if result.similarity is not None else result.score
        doc = result.document
        if doc is None:
            return min(score, 1.0)

        if query_text and doc.title:
            score += text_match_ratio(query_text, doc.title) * self.title_boost

        timestamp = _document_timestamp(doc)
        if timestamp is not None:
            score += recency_boost(timestamp, half_life_days=self.half_life_days) * self.recency_weight

        if doc.priority > 3:
            score += self.priority_boost

        return min(score, 1.0)


class HybridTextReranker(_ScoringReranker):
    """``weight * similarity + (1 - weight) * text overlap`` over title and content."""

    name = "hybrid"

    def __init__(self, weight: float = 0.7):
        if not 0.0 <= weight <= 1.0:
            raise ValueError(f"hybrid weight must be in [0, 1], got {weight}")
        self.weight = weight

    def score(self, result: ScoredResult, query_text: str | None) -> float:
        similarity = result.similarity if result.similarity is not None else result.score
        text_score = 0.0
        if query_text and result.document is not None:
            text_score = text_match_ratio(query_text, f"{result.document.title} {result.document.content}")
        return self.weight * similarity + (1 - self.weight) * text_score


class LearningToRankReranker(_ScoringReranker):
    """Fixed-weight linear model over an 11-feature vector.

    Weights are design-time constants, not learned at runtime. Text features are
    0.0 when the query carries no text, so the vector length is always fixed.
    """

    name = "learning_to_rank"

    def __init__(self, weights: tuple[float, ...] = LTR_WEIGHTS, half_life_days: float = 30.0):
        if len(weights) != len(LTR_WEIGHTS):
            raise ValueError(f"expected {len(LTR_WEIGHTS)} weights, got {len(weights)}")
        self.weights = weights
        self.half_life_days = half_life_days

    def extract_features(self, result: ScoredResult, query_text: str | None) -> list[float]:
        doc = result.document or Document(id=result.document_id)
        similarity = result.similarity if result.similarity is not None else result.score
        features = [
            float(similarity),
            text_match_ratio(query_text, doc.title) if query_text else 0.0,
            text_match_ratio(query_text, doc.content) if query_text else 0.0,
            float(doc.priority),
            recency_boost(_document_timestamp(doc), half_life_days=self.half_life_days),
            len(doc.content) / 1000,
            float(len(doc.tags)),
        ]
        features.extend(1.0 if doc.category == category else 0.0 for category in LTR_CATEGORIES)
        return features

    def _combine(self, features: list[float]) -> float:
        return max(0.0, min(1.0, sum(f * w for f, w in zip(features, self.weights))))

    def score(self, result: ScoredResult, query_text: str | None) -> float:
        return self._combine(self.extract_features(result, query_text))

    def rerank(self, results: list[ScoredResult], query_text: str | None) -> list[ScoredResult]:
        reranked = []
        for result in results:
            features = self.extract_features(result, query_text)
            score = self._combine(features)
            reranked.append(
                result.model_copy(
                    update={
                        "score": score,
                        "ranking_features": features,
                        "source_scores": {**result.source_scores, self.name: score},
                    }
                )
            )
        return reranked


def get_reranker(name: str | None, hybrid_weight: float = 0.7, half_life_days: float = 30.0) -> Reranker | None:
    """Build the reranker for *name*; ``None`` or ``"none"`` disables reranking.

    Unknown names fall back to no reranking with a warning.
    """
    if name is None or name == "none":
        return None
    if name == "cosine":
        return CosineReranker(half_life_days=half_life_days)
    if name == "hybrid":
        return HybridTextReranker(weight=hybrid_weight)
    if name == "learning_to_rank":
        return LearningToRankReranker(half_life_days=half_life_days)
    logger.warning(f"Unknown rerank model '{name}', skipping reranking")
    return None

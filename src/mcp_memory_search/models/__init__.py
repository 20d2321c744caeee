"""Data models for documents, queries and search results."""

from .document import Document
from .query import FullTextQuery, HybridQuery, PatternQuery, Query, SemanticQuery, WeightedQuery, parse_query
from .results import (
    HybridSearchResponse,
    PatternMatch,
    PatternSearchResponse,
    ScoredResult,
    SearchOptions,
    SearchResponse,
    SemanticSearchResponse,
    SubqueryBreakdown,
)

__all__ = [
    "Document",
    "FullTextQuery",
    "HybridQuery",
    "HybridSearchResponse",
    "PatternMatch",
    "PatternQuery",
    "PatternSearchResponse",
    "Query",
    "ScoredResult",
    "SearchOptions",
    "SearchResponse",
    "SemanticQuery",
    "SemanticSearchResponse",
    "SubqueryBreakdown",
    "WeightedQuery",
    "parse_query",
]

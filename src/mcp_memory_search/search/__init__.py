"""Semantic search, reranking, hybrid fusion and the unified search manager."""

from .coordinator import HybridCoordinator
from .fusion import FusionOutcome, SourceResults, fuse_results
from .manager import SearchManager, create_search_manager
from .rerankers import CosineReranker, HybridTextReranker, LearningToRankReranker, Reranker, get_reranker
from .semantic import SemanticEngine

__all__ = [
    "CosineReranker",
    "FusionOutcome",
    "HybridCoordinator",
    "HybridTextReranker",
    "LearningToRankReranker",
    "Reranker",
    "SearchManager",
    "SemanticEngine",
    "SourceResults",
    "create_search_manager",
    "fuse_results",
    "get_reranker",
]

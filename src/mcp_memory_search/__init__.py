"""
MCP Memory Search - search subsystem for agent memory documents.

Semantic (vector) search with reranking, pattern matching (regex, wildcard,
fuzzy, structural, literal) and weighted hybrid fusion over both.
"""

__version__ = "0.1.0"

from .errors import SearchError
from .models import Document, SearchOptions, parse_query
from .search import SearchManager, create_search_manager

__all__ = ["Document", "SearchError", "SearchManager", "SearchOptions", "create_search_manager", "parse_query"]

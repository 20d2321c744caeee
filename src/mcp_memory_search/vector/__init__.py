"""Vector index for semantic search."""

from .index import IndexEntry, VectorIndex, cosine_similarity

__all__ = ["IndexEntry", "VectorIndex", "cosine_similarity"]

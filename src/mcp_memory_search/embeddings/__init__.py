"""Embedding providers used to turn query text into vectors."""

from .base import EmbeddingProvider, preprocess_text
from .factory import create_embedding_provider
from .hashing import HashEmbeddingProvider
from .openai_provider import OpenAIEmbeddingProvider

__all__ = [
    "EmbeddingProvider",
    "HashEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "create_embedding_provider",
    "preprocess_text",
]

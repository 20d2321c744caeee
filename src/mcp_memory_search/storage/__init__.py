"""Collaborator interfaces and the in-process corpus adapter."""

from .base import DocumentCorpusReader, FullTextSearcher
from .memory_corpus import InMemoryCorpus

__all__ = ["DocumentCorpusReader", "FullTextSearcher", "InMemoryCorpus"]

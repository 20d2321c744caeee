"""
In-memory vector index.

Maps document id → (embedding, document). Similarity search is a brute-force
cosine scan over a numpy matrix, O(N·D) per query, which is appropriate for
the expected corpus size. ``scan`` is the single seam to replace with an
approximate index (e.g. HNSW) for larger corpora.

Concurrency:
    Mutations are serialised by a lock and invalidate the cached matrix
    snapshot. Scans work on the last committed immutable snapshot, so a scan
    racing a mutation sees a consistent (possibly stale) view.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray

from ..config import DEFAULT_EMBEDDING_DIMENSIONS
from ..errors import DimensionMismatchError, NotFoundError
from ..models.document import Document
from ..storage.base import DocumentCorpusReader

logger = logging.getLogger(__name__)

Vector = Sequence[float] | NDArray[np.floating]


def cosine_similarity(a: Vector, b: Vector) -> float:
    """Cosine similarity in [-1, 1]; 0.0 when either vector has zero magnitude."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise DimensionMismatchError(va.size, vb.size)
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(va, vb) / (norm_a * norm_b))


@dataclass(frozen=True, slots=True)
class IndexEntry:
    document: Document
    vector: NDArray[np.float64]
    norm: float


@dataclass(frozen=True, slots=True)
class _Snapshot:
    entries: tuple[IndexEntry, ...]
    matrix: NDArray[np.float64]
    norms: NDArray[np.float64]


_FIELD_ALIASES = {info.alias: name for name, info in Document.model_fields.items() if info.alias}


class VectorIndex:
    """Thread-safe id → embedding index with brute-force cosine scan."""

    def __init__(self, dimension: int = DEFAULT_EMBEDDING_DIMENSIONS):
        if dimension < 1:
            raise ValueError("dimension must be >= 1")
        self._dimension = dimension
        self._entries: dict[str, IndexEntry] = {}
        self._lock = threading.Lock()
        self._snapshot: _Snapshot | None = None
        self.similarity_calculations = 0

    @property
    def dimension(self) -> int:
        return self._dimension

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._entries

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    # ── Mutations ──────────────────────────────────────────────────────

    def validate_vector(self, embedding: Vector, document_id: str | None = None) -> NDArray[np.float64]:
        """Return *embedding* as a float64 array, rejecting the wrong dimension (never truncates or pads)."""
        vector = np.asarray(embedding, dtype=np.float64)
        if vector.ndim != 1 or vector.shape[0] != self._dimension:
            raise DimensionMismatchError(self._dimension, int(vector.size), document_id)
        return vector

    def insert(self, document_id: str, embedding: Vector, document: Document | dict[str, Any] | None = None) -> None:
        """Insert or replace a document's embedding and metadata.

        Raises:
            DimensionMismatchError: If ``len(embedding)`` differs from the index dimension.
        """
        vector = self.validate_vector(embedding, document_id)
        if document is None:
            document = Document(id=document_id)
        elif isinstance(document, dict):
            document = Document.model_validate({**document, "id": document_id})
        document = document.model_copy(update={"id": document_id, "embedding": vector.tolist()})

        entry = IndexEntry(document=document, vector=vector, norm=float(np.linalg.norm(vector)))
        with self._lock:
            self._entries[document_id] = entry
            self._snapshot = None

    def index_document(self, document: Document) -> None:
        """Insert a document using its own embedding."""
        if document.embedding is None:
            raise ValueError(f"Document {document.id} has no embedding")
        self.insert(document.id, document.embedding, document)

    def update(self, document_id: str, partial: dict[str, Any]) -> Document:
        """Merge *partial* into an indexed document; an ``embedding`` key replaces the vector.

        Raises:
            NotFoundError: If *document_id* is not indexed.
            DimensionMismatchError: If a new embedding has the wrong dimension.
        """
        changes = {_FIELD_ALIASES.get(key, key): value for key, value in partial.items() if key != "id"}
        new_vector = None
        if changes.get("embedding") is not None:
            new_vector = self.validate_vector(changes["embedding"], document_id)
            changes["embedding"] = new_vector.tolist()
        else:
            changes.pop("embedding", None)

        with self._lock:
            entry = self._entries.get(document_id)
            if entry is None:
                raise NotFoundError(document_id)
            document = Document.model_validate({**entry.document.model_dump(), **changes})
            vector = new_vector if new_vector is not None else entry.vector
            norm = float(np.linalg.norm(vector)) if new_vector is not None else entry.norm
            self._entries[document_id] = IndexEntry(document=document, vector=vector, norm=norm)
            self._snapshot = None
        return document

    def remove(self, document_id: str) -> bool:
        with self._lock:
            removed = self._entries.pop(document_id, None) is not None
            if removed:
                self._snapshot = None
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._snapshot = None

    def get(self, document_id: str) -> Document | None:
        entry = self._entries.get(document_id)
        return entry.document if entry is not None else None

    # ── Search ─────────────────────────────────────────────────────────

    def _current_snapshot(self) -> _Snapshot:
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot
        with self._lock:
            if self._snapshot is None:
                entries = tuple(self._entries.values())
                if entries:
                    matrix = np.vstack([entry.vector for entry in entries])
                else:
                    matrix = np.empty((0, self._dimension))
                norms = np.array([entry.norm for entry in entries], dtype=np.float64)
                self._snapshot = _Snapshot(entries=entries, matrix=matrix, norms=norms)
            return self._snapshot

    def scan(
        self,
        query_vector: Vector,
        predicate: Callable[[Document], bool] | None = None,
        threshold: float | None = None,
    ) -> list[tuple[str, float]]:
        """Cosine similarity of *query_vector* against every indexed document passing *predicate*.

        Returns ``(document_id, similarity)`` pairs in index order, keeping only
        similarities ``>= threshold`` when a threshold is given.

        Raises:
            DimensionMismatchError: If the query vector has the wrong dimension.
        """
        query = self.validate_vector(query_vector)
        snapshot = self._current_snapshot()
        if not snapshot.entries:
            return []

        if predicate is None:
            candidates = np.arange(len(snapshot.entries))
        else:
            mask = np.fromiter((predicate(e.document) for e in snapshot.entries), dtype=bool, count=len(snapshot.entries))
            candidates = np.nonzero(mask)[0]
        if candidates.size == 0:
            return []

        query_norm = float(np.linalg.norm(query))
        if query_norm == 0.0:
            similarities = np.zeros(candidates.size)
        else:
            dots = snapshot.matrix[candidates] @ query
            denominators = snapshot.norms[candidates] * query_norm
            similarities = np.divide(dots, denominators, out=np.zeros_like(dots), where=denominators > 0)

        self.similarity_calculations += int(candidates.size)

        return [
            (snapshot.entries[i].document.id, float(similarity))
            for i, similarity in zip(candidates, similarities)
            if threshold is None or similarity >= threshold
        ]

    # ── Rebuild ────────────────────────────────────────────────────────

    async def rebuild_from_corpus(self, corpus: DocumentCorpusReader) -> int:
        """Replace the index contents with every embedded document from *corpus*.

        Documents without an embedding, or with one of the wrong dimension,
        are skipped with a warning.

        Returns:
            Number of documents indexed
        """
        documents = await corpus.list_documents()
        self.clear()

        indexed = 0
        for document in documents:
            if document.embedding is None:
                continue
            try:
                self.index_document(document)
                indexed += 1
            except DimensionMismatchError as e:
                logger.warning(f"Skipping document during index rebuild: {e}")

        logger.info(f"Vector index rebuilt: {indexed}/{len(documents)} documents indexed")
        return indexed

    def stats(self) -> dict[str, Any]:
        return {
            "documents_indexed": len(self._entries),
            "dimension": self._dimension,
            "similarity_calculations": self.similarity_calculations,
        }

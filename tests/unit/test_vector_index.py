"""
Tests for the in-memory vector index.

Covers:
- cosine similarity edge cases
- insert / update / remove / get and dimension validation
- scan ordering, predicates and thresholds
- rebuild from a corpus
"""

import threading

import numpy as np
import pytest

from mcp_memory_search.errors import DimensionMismatchError, NotFoundError
from mcp_memory_search.models.document import Document
from mcp_memory_search.storage.memory_corpus import InMemoryCorpus
from mcp_memory_search.vector.index import VectorIndex, cosine_similarity


class TestCosineSimilarity:
    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_zero_magnitude_is_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_shape_mismatch(self):
        with pytest.raises(DimensionMismatchError):
            cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])

    def test_accepts_numpy_arrays(self):
        assert cosine_similarity(np.array([3.0, 4.0]), np.array([3.0, 4.0])) == pytest.approx(1.0)


class TestMutations:
    def test_insert_and_get(self):
        index = VectorIndex(dimension=3)
        index.insert("a", [1.0, 0.0, 0.0], {"title": "Alpha", "userId": "u1"})

        doc = index.get("a")
        assert doc.title == "Alpha"
        assert doc.user_id == "u1"
        assert doc.embedding == [1.0, 0.0, 0.0]
        assert "a" in index
        assert len(index) == 1

    def test_insert_rejects_wrong_dimension(self):
        index = VectorIndex(dimension=3)
        with pytest.raises(DimensionMismatchError) as exc_info:
            index.insert("a", [1.0, 0.0])
        assert exc_info.value.expected == 3
        assert exc_info.value.actual == 2
        assert exc_info.value.document_id == "a"
        assert len(index) == 0

    def test_insert_replaces_existing(self):
        index = VectorIndex(dimension=2)
        index.insert("a", [1.0, 0.0], Document(id="a", title="old"))
        index.insert("a", [0.0, 1.0], Document(id="a", title="new"))
        assert len(index) == 1
        assert index.get("a").title == "new"

    def test_index_document_requires_embedding(self):
        index = VectorIndex(dimension=2)
        with pytest.raises(ValueError):
            index.index_document(Document(id="a"))

    def test_update_merges_fields(self, vector_index):
        updated = vector_index.update("d2", {"title": "Renamed", "userId": "u9"})
        assert updated.title == "Renamed"
        assert updated.user_id == "u9"
        assert updated.content.startswith("Promises")
        assert vector_index.get("d2").embedding == [0.0, 1.0, 0.0]

    def test_update_replaces_embedding(self, vector_index):
        vector_index.update("d2", {"embedding": [1.0, 0.0, 0.0]})
        hits = dict(vector_index.scan([1.0, 0.0, 0.0]))
        assert hits["d2"] == pytest.approx(1.0)

    def test_update_missing_document(self, vector_index):
        with pytest.raises(NotFoundError):
            vector_index.update("nope", {"title": "x"})

    def test_update_rejects_wrong_dimension(self, vector_index):
        with pytest.raises(DimensionMismatchError):
            vector_index.update("d1", {"embedding": [1.0]})

    def test_remove_reports_presence(self, vector_index):
        assert vector_index.remove("d1") is True
        assert vector_index.remove("d1") is False
        assert vector_index.get("d1") is None
        assert [doc_id for doc_id, _ in vector_index.scan([1.0, 0.0, 0.0])] == ["d2", "d3"]

    def test_clear(self, vector_index):
        vector_index.clear()
        assert len(vector_index) == 0
        assert vector_index.scan([1.0, 0.0, 0.0]) == []


class TestScan:
    def test_scan_returns_index_order_with_similarities(self, vector_index):
        hits = vector_index.scan([1.0, 0.0, 0.0])
        assert [doc_id for doc_id, _ in hits] == ["d1", "d2", "d3"]
        sims = dict(hits)
        assert sims["d1"] == pytest.approx(1.0)
        assert sims["d2"] == pytest.approx(0.0)
        assert sims["d3"] == pytest.approx(0.9 / np.sqrt(0.82))

    def test_threshold_filters(self, vector_index):
        hits = vector_index.scan([1.0, 0.0, 0.0], threshold=0.7)
        assert [doc_id for doc_id, _ in hits] == ["d1", "d3"]

    def test_predicate_filters_before_scoring(self, vector_index):
        hits = vector_index.scan([1.0, 0.0, 0.0], predicate=lambda doc: doc.user_id == "u2")
        assert [doc_id for doc_id, _ in hits] == ["d2"]
        assert vector_index.similarity_calculations == 1

    def test_zero_query_scores_zero(self, vector_index):
        hits = vector_index.scan([0.0, 0.0, 0.0])
        assert all(sim == 0.0 for _, sim in hits)

    def test_query_dimension_checked(self, vector_index):
        with pytest.raises(DimensionMismatchError):
            vector_index.scan([1.0, 0.0])

    def test_counts_similarity_calculations(self, vector_index):
        vector_index.scan([1.0, 0.0, 0.0])
        vector_index.scan([0.0, 1.0, 0.0])
        assert vector_index.stats() == {
            "documents_indexed": 3,
            "dimension": 3,
            "similarity_calculations": 6,
        }

    def test_scan_during_mutation_sees_consistent_view(self):
        index = VectorIndex(dimension=2)
        for i in range(50):
            index.insert(f"doc{i:02d}", [1.0, float(i)])

        def mutate():
            for i in range(50, 100):
                index.insert(f"doc{i:02d}", [1.0, float(i)])

        writer = threading.Thread(target=mutate)
        writer.start()
        for _ in range(20):
            hits = index.scan([1.0, 0.0])
            assert len(hits) >= 50
            assert len({doc_id for doc_id, _ in hits}) == len(hits)
        writer.join()
        assert len(index.scan([1.0, 0.0])) == 100


class TestRebuild:
    @pytest.mark.asyncio
    async def test_rebuild_skips_unembedded_and_wrong_dimension(self, caplog):
        corpus = InMemoryCorpus(
            [
                Document(id="ok", embedding=[1.0, 0.0, 0.0]),
                Document(id="none"),
                Document(id="short", embedding=[1.0, 0.0]),
            ]
        )
        index = VectorIndex(dimension=3)
        index.insert("stale", [0.0, 0.0, 1.0])

        indexed = await index.rebuild_from_corpus(corpus)

        assert indexed == 1
        assert index.ids() == ["ok"]
        assert "short" in caplog.text

    def test_rejects_non_positive_dimension(self):
        with pytest.raises(ValueError):
            VectorIndex(dimension=0)

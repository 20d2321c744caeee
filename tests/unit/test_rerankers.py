"""Tests for the semantic rerankers."""

from datetime import datetime, timezone

import pytest

from mcp_memory_search.models.document import Document
from mcp_memory_search.models.results import ScoredResult
from mcp_memory_search.search.rerankers import (
    LTR_WEIGHTS,
    CosineReranker,
    HybridTextReranker,
    LearningToRankReranker,
    Reranker,
    get_reranker,
)


def _result(similarity: float, **doc_fields) -> ScoredResult:
    document = Document(id="r1", **doc_fields)
    return ScoredResult(
        document_id="r1",
        score=similarity,
        similarity=similarity,
        source_scores={"semantic": similarity},
        document=document,
    )


class TestCosineReranker:
    def test_title_and_priority_boosts(self):
        result = _result(0.5, title="Machine Learning", priority=4)
        [reranked] = CosineReranker().rerank([result], "machine")

        # 0.5 + 1.0 * 0.2 title + 0.1 priority, no timestamp
        assert reranked.score == pytest.approx(0.8)
        assert reranked.source_scores == {"semantic": 0.5, "cosine": pytest.approx(0.8)}
        assert result.score == 0.5

    def test_recent_document_gets_recency_boost(self):
        result = _result(0.5, created_at=datetime.now(timezone.utc))
        [reranked] = CosineReranker().rerank([result], None)
        assert reranked.score == pytest.approx(0.6, abs=1e-3)

    def test_updated_at_preferred_over_created_at(self):
        result = _result(
            0.5,
            created_at=datetime(2000, 1, 1, tzinfo=timezone.utc),
            updated_at=datetime.now(timezone.utc),
        )
        [reranked] = CosineReranker().rerank([result], None)
        assert reranked.score == pytest.approx(0.6, abs=1e-3)

    def test_future_timestamp_counts_as_now(self):
        result = _result(0.5, created_at=datetime(2999, 1, 1, tzinfo=timezone.utc))
        [reranked] = CosineReranker().rerank([result], None)
        assert reranked.score == pytest.approx(0.6)

    def test_capped_at_one(self):
        result = _result(0.95, title="machine", priority=5)
        [reranked] = CosineReranker().rerank([result], "machine")
        assert reranked.score == 1.0

    def test_priority_three_gets_no_boost(self):
        result = _result(0.5, priority=3)
        [reranked] = CosineReranker().rerank([result], None)
        assert reranked.score == pytest.approx(0.5)


class TestHybridTextReranker:
    def test_blends_similarity_and_text_overlap(self):
        result = _result(0.5, title="Machine notes", content="about learning")
        [reranked] = HybridTextReranker(weight=0.7).rerank([result], "machine cooking")
        # 0.7 * 0.5 + 0.3 * 0.5
        assert reranked.score == pytest.approx(0.5)

    def test_without_query_text_only_similarity_counts(self):
        [reranked] = HybridTextReranker(weight=0.7).rerank([_result(0.5, title="x")], None)
        assert reranked.score == pytest.approx(0.35)

    def test_weight_must_be_unit_interval(self):
        with pytest.raises(ValueError):
            HybridTextReranker(weight=1.5)


class TestLearningToRankReranker:
    def test_feature_vector_is_fixed_length(self):
        result = _result(0.5, title="ML", content="x" * 500, priority=2, tags=["a", "b"], category="learning")
        features = LearningToRankReranker().extract_features(result, None)

        assert features == [0.5, 0.0, 0.0, 2.0, 0.0, 0.5, 2.0, 0.0, 0.0, 1.0, 0.0]
        assert len(features) == len(LTR_WEIGHTS)

    def test_linear_score_and_features_recorded(self):
        result = _result(0.5, title="ML", content="x" * 500, priority=2, tags=["a", "b"], category="learning")
        [reranked] = LearningToRankReranker().rerank([result], None)

        # 0.5*0.6 + 2*0.05 + 0.5*0.01 + 2*0.01 + 0.02 (learning)
        assert reranked.score == pytest.approx(0.445)
        assert reranked.ranking_features is not None
        assert reranked.source_scores["learning_to_rank"] == pytest.approx(0.445)

    def test_text_features_use_query(self):
        result = _result(0.5, title="Machine Learning", content="machine")
        features = LearningToRankReranker().extract_features(result, "machine learning")
        assert features[1] == 1.0
        assert features[2] == 0.5

    def test_score_clamped(self):
        result = _result(1.0, priority=100)
        [reranked] = LearningToRankReranker().rerank([result], None)
        assert reranked.score == 1.0

    def test_rejects_wrong_weight_count(self):
        with pytest.raises(ValueError):
            LearningToRankReranker(weights=(1.0, 2.0))


class TestGetReranker:
    @pytest.mark.parametrize(
        "name, expected",
        [("cosine", CosineReranker), ("hybrid", HybridTextReranker), ("learning_to_rank", LearningToRankReranker)],
    )
    def test_known_names(self, name, expected):
        reranker = get_reranker(name)
        assert isinstance(reranker, expected)
        assert isinstance(reranker, Reranker)
        assert reranker.name == name

    @pytest.mark.parametrize("name", [None, "none"])
    def test_disabled(self, name):
        assert get_reranker(name) is None

    def test_unknown_name_warns(self, caplog):
        assert get_reranker("bm25") is None
        assert "bm25" in caplog.text

    def test_hybrid_weight_forwarded(self):
        assert get_reranker("hybrid", hybrid_weight=0.4).weight == 0.4

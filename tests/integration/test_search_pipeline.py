"""
End-to-end tests for the search pipeline.

Builds a search manager over an in-process corpus with the offline hashing
embedding provider, then drives every query type through the public entry
point: semantic with and without reranking, each pattern kind, full-text,
hybrid fusion with failures and deadlines, caching and index mutations.
"""

import asyncio
from datetime import datetime, timezone

import pytest
import pytest_asyncio

from mcp_memory_search import Document, SearchOptions, create_search_manager
from mcp_memory_search.config import HybridSettings, PatternSettings, SearchSettings, SemanticSettings, Settings
from mcp_memory_search.embeddings import HashEmbeddingProvider
from mcp_memory_search.errors import DimensionMismatchError, UnknownPredefinedPatternError
from mcp_memory_search.models.query import parse_query
from mcp_memory_search.storage import InMemoryCorpus

DIM = 512

PASSAGES = [
    ("ml-intro", "Introduction to Machine Learning", "Machine learning teaches computers to learn from data.", "learning"),
    ("ml-nn", "Neural Networks", "Neural networks are layered machine learning models trained on data.", "learning"),
    ("js-async", "JavaScript Async Programming", "Promises and async/await simplify asynchronous JavaScript.", "work"),
    ("js-dom", "DOM Events", "JavaScript event listeners react to clicks. Contact dev@example.org.", "work"),
    ("grocery", "Grocery list", "Buy milk, eggs and bread on 2024-05-02.", "personal"),
    ("trip", "Weekend trip ideas", "Visit https://example.org/parks for hiking trails.", "ideas"),
]


def get_result_ids(response) -> list[str]:
    return [r.document_id for r in response.results]


def assert_ranks_above(response, higher_id: str, lower_id: str) -> None:
    ids = get_result_ids(response)
    assert higher_id in ids, f"{higher_id} not found in results"
    assert lower_id in ids, f"{lower_id} not found in results"
    assert ids.index(higher_id) < ids.index(lower_id), f"{higher_id} should rank above {lower_id}: {ids}"


@pytest.fixture
def provider() -> HashEmbeddingProvider:
    return HashEmbeddingProvider(dimension=DIM)


@pytest.fixture
def pipeline_settings() -> Settings:
    return Settings(
        pattern=PatternSettings(),
        semantic=SemanticSettings(embedding_dimensions=DIM, similarity_threshold=0.1, rerank_model="cosine"),
        hybrid=HybridSettings(),
        search=SearchSettings(),
    )


@pytest.fixture
def pipeline_corpus(provider) -> InMemoryCorpus:
    documents = []
    for i, (doc_id, title, content, category) in enumerate(PASSAGES):
        documents.append(
            Document(
                id=doc_id,
                title=title,
                content=content,
                category=category,
                user_id="alice" if category != "work" else "bob",
                priority=i,
                created_at=datetime(2024, 1, 1 + i, tzinfo=timezone.utc),
                embedding=provider.embed_sync(f"{title} {content}"),
            )
        )
    return InMemoryCorpus(documents)


@pytest_asyncio.fixture
async def manager(pipeline_corpus, provider, pipeline_settings):
    return await create_search_manager(
        pipeline_corpus,
        embedding_provider=provider,
        full_text=pipeline_corpus,
        settings=pipeline_settings,
    )


class TestSemanticPipeline:
    @pytest.mark.asyncio
    async def test_two_document_scenario(self):
        corpus = InMemoryCorpus(
            [
                Document(id="d1", title="Introduction to Machine Learning", embedding=[1.0, 0.0, 0.0, 0.0]),
                Document(id="d2", title="JavaScript Async Programming", embedding=[0.0, 1.0, 0.0, 0.0]),
            ]
        )
        settings = Settings(semantic=SemanticSettings(embedding_dimensions=4, rerank_model="none"))
        manager = await create_search_manager(corpus, settings=settings)

        response = await manager.semantic_search(embedding=[0.98, 0.05, 0.0, 0.0], options={"threshold": 0.7})

        assert get_result_ids(response) == ["d1"]

    @pytest.mark.asyncio
    async def test_text_query_finds_related_passages(self, manager):
        response = await manager.semantic_search(text="machine learning data")

        assert get_result_ids(response)[0] in {"ml-intro", "ml-nn"}
        assert response.metadata["rerank_model"] == "cosine"
        assert all(0.0 <= r.score <= 1.0 for r in response.results)

    @pytest.mark.asyncio
    async def test_highlights_and_user_scope(self, manager):
        response = await manager.semantic_search(
            text="javascript promises", options={"userId": "bob", "includeHighlight": True}
        )

        assert set(get_result_ids(response)) <= {"js-async", "js-dom"}
        top = response.results[0]
        assert "<em>" in top.highlight["title"]

    @pytest.mark.asyncio
    async def test_wrong_dimension_rejected(self, manager):
        with pytest.raises(DimensionMismatchError):
            await manager.semantic_search(embedding=[1.0, 0.0])


class TestPatternPipeline:
    @pytest.mark.asyncio
    async def test_regex_prefers_title_matches(self, manager):
        response = await manager.pattern_search({"regex": "javascript"})
        assert_ranks_above(response, "js-async", "js-dom")

    @pytest.mark.asyncio
    async def test_predefined_patterns(self, manager):
        emails = await manager.pattern_search({"pattern": "email"})
        urls = await manager.pattern_search({"pattern": "url"})
        dates = await manager.pattern_search({"pattern": "date"})

        assert get_result_ids(emails) == ["js-dom"]
        assert get_result_ids(urls) == ["trip"]
        assert get_result_ids(dates) == ["grocery"]

    @pytest.mark.asyncio
    async def test_unknown_predefined_pattern(self, manager):
        with pytest.raises(UnknownPredefinedPatternError):
            await manager.pattern_search({"type": "pattern", "kind": "predefined", "pattern": "ssn"})

    @pytest.mark.asyncio
    async def test_wildcard_and_fuzzy(self, manager):
        wildcard = await manager.pattern_search({"pattern": "neur*netw?rks"})
        fuzzy = await manager.pattern_search({"fuzzy": True, "text": "grocrey", "threshold": 0.85})

        assert get_result_ids(wildcard) == ["ml-nn"]
        assert get_result_ids(fuzzy) == ["grocery"]

    @pytest.mark.asyncio
    async def test_structural(self, manager):
        response = await manager.pattern_search({"structure": {"category": "learning", "user_id": "alice"}})
        assert get_result_ids(response) == ["ml-intro", "ml-nn"]


class TestHybridPipeline:
    @pytest.mark.asyncio
    async def test_semantic_pattern_and_full_text(self, manager, provider):
        response = await manager.hybrid_search(
            [
                ({"embedding": provider.embed_sync("machine learning")}, 0.4),
                ({"regex": "neural"}, 0.3),
                ("models", 0.3),
            ],
            options={"limit": 3},
        )

        assert get_result_ids(response)[0] == "ml-nn"
        assert [entry.status for entry in response.breakdown] == ["ok", "ok", "ok"]
        assert set(response.results[0].source_scores) == {"semantic", "pattern", "fulltext"}
        assert response.total <= 3

    @pytest.mark.asyncio
    async def test_failed_subquery_does_not_abort(self, manager):
        response = await manager.hybrid_search([({"regex": "(broken"}, 0.5), ("javascript", 0.5)])

        assert response.breakdown[0].status == "error"
        assert response.breakdown[1].status == "ok"
        assert set(get_result_ids(response)) == {"js-async", "js-dom"}

    @pytest.mark.asyncio
    async def test_deadline_returns_partial_results(self, manager):
        original = manager.semantic_engine.search

        async def slow_search(query, options=None):
            await asyncio.sleep(5)
            return await original(query, options)

        manager.semantic_engine.search = slow_search
        response = await manager.coordinator.search(
            parse_query(
                {
                    "type": "hybrid",
                    "subqueries": [({"type": "semantic", "text": "machine"}, 0.5), ({"regex": "machine"}, 0.5)],
                }
            ),
            SearchOptions(),
            timeout=0.05,
        )

        assert response.partial is True
        assert response.breakdown[0].status == "timeout"
        assert set(get_result_ids(response)) == {"ml-intro", "ml-nn"}


class TestCacheAndMutations:
    @pytest.mark.asyncio
    async def test_cache_hit_then_invalidation(self, manager, provider):
        query = {"embedding": provider.embed_sync("weekend hiking")}

        first = await manager.search(query)
        second = await manager.search(query)
        assert (first.metadata["cached"], second.metadata["cached"]) == (False, True)

        await manager.index_document(Document(id="hike", title="Weekend hiking", content="Trails near home"))
        third = await manager.search(query)

        assert third.metadata["cached"] is False
        assert get_result_ids(third)[0] == "hike"

    @pytest.mark.asyncio
    async def test_statistics_after_mixed_traffic(self, manager):
        await manager.search("javascript")
        await manager.pattern_search({"pattern": "email"})
        await manager.semantic_search(text="bread")

        stats = manager.get_statistics()
        assert stats["analytics"]["total_queries"] == 3
        assert stats["analytics"]["search_types"] == {"fulltext": 1, "pattern": 1, "semantic": 1}
        assert stats["components"]["semantic"]["documents_indexed"] == len(PASSAGES)

import os
import sys
from datetime import datetime, timezone

import pytest

# Add src directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), "src"))

from mcp_memory_search.config import HybridSettings, PatternSettings, SearchSettings, SemanticSettings, Settings
from mcp_memory_search.models.document import Document
from mcp_memory_search.patterns.engine import PatternEngine
from mcp_memory_search.search.semantic import SemanticEngine
from mcp_memory_search.storage.memory_corpus import InMemoryCorpus
from mcp_memory_search.vector.index import VectorIndex

# Small vectors keep the fixtures readable; engines are configured to match
DIM = 3


def make_document(doc_id: str, embedding: list[float] | None = None, **fields) -> Document:
    return Document(id=doc_id, embedding=embedding, **fields)


@pytest.fixture
def sample_documents() -> list[Document]:
    return [
        make_document(
            "d1",
            [1.0, 0.0, 0.0],
            title="Introduction to Machine Learning",
            content="Machine learning is a subset of AI. Contact alice@example.com for the slides.",
            tags=["ai", "ml"],
            category="learning",
            user_id="u1",
            priority=4,
            created_at=datetime(2024, 1, 10, tzinfo=timezone.utc),
        ),
        make_document(
            "d2",
            [0.0, 1.0, 0.0],
            title="JavaScript Async Programming",
            content="Promises and async/await make asynchronous code readable. Review on 2024-01-15.",
            tags=["js"],
            category="work",
            user_id="u2",
            priority=2,
            created_at=datetime(2024, 2, 1, tzinfo=timezone.utc),
        ),
        make_document(
            "d3",
            [0.9, 0.1, 0.0],
            title="Grocery list",
            content="Buy milk, eggs and bread.",
            tags=["personal"],
            category="personal",
            user_id="u1",
            priority=1,
            created_at=datetime(2024, 3, 5, tzinfo=timezone.utc),
        ),
    ]


@pytest.fixture
def corpus(sample_documents) -> InMemoryCorpus:
    return InMemoryCorpus(sample_documents)


@pytest.fixture
def vector_index(sample_documents) -> VectorIndex:
    index = VectorIndex(dimension=DIM)
    for doc in sample_documents:
        index.index_document(doc)
    return index


@pytest.fixture
def semantic_settings() -> SemanticSettings:
    return SemanticSettings(embedding_dimensions=DIM, rerank_model="none")


@pytest.fixture
def pattern_engine(corpus) -> PatternEngine:
    return PatternEngine(corpus, settings=PatternSettings())


@pytest.fixture
def semantic_engine(vector_index, semantic_settings) -> SemanticEngine:
    return SemanticEngine(vector_index, settings=semantic_settings)


@pytest.fixture
def test_settings(semantic_settings) -> Settings:
    return Settings(
        pattern=PatternSettings(),
        semantic=semantic_settings,
        hybrid=HybridSettings(),
        search=SearchSettings(),
    )

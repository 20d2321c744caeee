# Copyright 2024 Heinrich Krupp
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
In-process document corpus.

Implements both collaborator interfaces: :class:`DocumentCorpusReader` for the
pattern engine and index rebuilds, and a term-overlap :class:`FullTextSearcher`
for hybrid queries. Intended for tests, local development and small embedded
deployments.
"""

import logging
import threading
from collections.abc import Iterable
from typing import Any

from ..models.document import Document
from ..utils.filters import build_filter
from ..utils.text_scoring import text_match_ratio
from .base import DocumentCorpusReader

logger = logging.getLogger(__name__)


class InMemoryCorpus(DocumentCorpusReader):
    """Dict-backed corpus keyed by document id (insertion order preserved)."""

    def __init__(self, documents: Iterable[Document] | None = None):
        self._documents: dict[str, Document] = {}
        self._lock = threading.Lock()
        if documents:
            self.add_many(documents)

    def __len__(self) -> int:
        return len(self._documents)

    def add(self, document: Document) -> None:
        with self._lock:
            self._documents[document.id] = document

    def add_many(self, documents: Iterable[Document]) -> int:
        count = 0
        with self._lock:
            for document in documents:
                self._documents[document.id] = document
                count += 1
        return count

    def remove(self, document_id: str) -> bool:
        with self._lock:
            return self._documents.pop(document_id, None) is not None

    async def list_documents(
        self,
        user_id: str | None = None,
        filters: dict[str, Any] | None = None,
    ) -> list[Document]:
        with self._lock:
            documents = list(self._documents.values())
        predicate = build_filter(user_id, filters)
        if predicate is None:
            return documents
        return [doc for doc in documents if predicate(doc)]

    async def get_document(self, document_id: str) -> Document | None:
        return self._documents.get(document_id)

    async def search(self, text: str, filters: dict[str, Any] | None = None) -> list[tuple[str, float]]:
        """Score documents by the fraction of query words found in their searchable text."""
        filters = dict(filters or {})
        user_id = filters.pop("user_id", None)
        hits = []
        for doc in await self.list_documents(user_id=user_id, filters=filters or None):
            score = text_match_ratio(text, doc.searchable_text())
            if score > 0:
                hits.append((doc.id, score))
        hits.sort(key=lambda hit: (-hit[1], hit[0]))
        logger.debug(f"Full-text search '{text}' matched {len(hits)} documents")
        return hits

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
Collaborator interfaces for the search engines.

The document store and the full-text index live outside this package; the
engines reach them only through these narrow read interfaces.
"""

from abc import ABC, abstractmethod
from typing import Any, Protocol, runtime_checkable

from ..models.document import Document


class DocumentCorpusReader(ABC):
    """Read access to the document corpus."""

    @abstractmethod
    async def list_documents(
        self,
        user_id: str | None = None,
        filters: dict[str, Any] | None = None,
    ) -> list[Document]:
        """
        Return the documents to scan.

        Args:
            user_id: Only documents owned by this user (None = all users)
            filters: Field filters (see ``utils.filters`` for value semantics)

        Returns:
            Matching documents in a stable order
        """

    @abstractmethod
    async def get_document(self, document_id: str) -> Document | None:
        """Return a single document, or None if it does not exist."""


@runtime_checkable
class FullTextSearcher(Protocol):
    """Optional full-text source for hybrid queries."""

    async def search(self, text: str, filters: dict[str, Any] | None = None) -> list[tuple[str, float]]:
        """Return ``(document_id, score)`` pairs, best first."""

"""Document model shared by the vector index, the pattern engine and corpus adapters."""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .validators import DocumentId, Tags, UtcDatetime

logger = logging.getLogger(__name__)

# Fields matched by the pattern engine, in searchable-text order
SEARCHABLE_FIELDS = ("title", "content", "summary", "tags")


class Document(BaseModel):
    """A note, knowledge entry or experience record produced by an agent.

    camelCase aliases (``userId``, ``createdAt``, ``updatedAt``) are accepted so
    records coming straight from the document store validate unchanged.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: DocumentId
    title: str = ""
    content: str = ""
    summary: str | None = None
    tags: Tags = []
    category: str | None = None
    user_id: str | None = Field(default=None, alias="userId")
    priority: int = 0
    embedding: list[float] | None = None
    created_at: UtcDatetime = Field(default=None, alias="createdAt")
    updated_at: UtcDatetime = Field(default=None, alias="updatedAt")
    metadata: dict[str, Any] = Field(default_factory=dict)

    def searchable_text(self) -> str:
        """Title, content, summary and tags joined by single spaces, skipping empty parts."""
        parts = [self.title, self.content, self.summary or ""]
        if self.tags:
            parts.append(" ".join(self.tags))
        return " ".join(part for part in parts if part)

    def field_value(self, name: str) -> Any:
        """Resolve a filter/structure key against model fields, then metadata."""
        if name in type(self).model_fields:
            return getattr(self, name)
        for field_name, info in type(self).model_fields.items():
            if info.alias == name:
                return getattr(self, field_name)
        return self.metadata.get(name)

    def has_field(self, name: str) -> bool:
        fields = type(self).model_fields
        return name in fields or any(info.alias == name for info in fields.values()) or name in self.metadata

    def to_dict(self, include_embedding: bool = False) -> dict[str, Any]:
        """Serialise for responses; embeddings are dropped unless requested."""
        exclude = None if include_embedding else {"embedding"}
        return self.model_dump(mode="json", exclude=exclude)

"""Search options, scored results and engine response envelopes."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import RerankModel
from .document import Document
from .validators import NonNegativeInt, PatternKind, SubqueryStatus, clamp_unit


class SearchOptions(BaseModel):
    """Per-call search options shared by all engines."""

    model_config = ConfigDict(populate_by_name=True)

    limit: int = Field(default=10, ge=1)
    offset: NonNegativeInt = 0
    # None means "engine default" (0.7 for semantic search)
    threshold: float | None = Field(default=None, ge=-1.0, le=1.0)
    user_id: str | None = Field(default=None, alias="userId")
    filters: dict[str, Any] = Field(default_factory=dict)
    include_highlight: bool = Field(default=False, alias="includeHighlight")
    rerank_model: RerankModel | None = None
    # "relevance" or "<field>:<asc|desc>"
    sort: str = "relevance"


class PatternMatch(BaseModel):
    """A single regex, literal or fuzzy hit inside a document's searchable text."""

    text: str
    index: int | None = None
    field: str | None = None
    groups: dict[str, str | None] = Field(default_factory=dict)
    similarity: float | None = None
    edit_distance: int | None = None
    word_index: int | None = None


class ScoredResult(BaseModel):
    """One ranked document. ``score`` is always clamped to [0, 1]."""

    document_id: str
    score: float
    # Raw cosine similarity (may be negative), kept for diagnostics
    similarity: float | None = None
    source_scores: dict[str, float] = Field(default_factory=dict)
    matches: list[PatternMatch] = Field(default_factory=list)
    match_count: int = 0
    matched_fields: list[str] = Field(default_factory=list)
    highlight: dict[str, Any] | None = None
    ranking_features: list[float] | None = None
    document: Document | None = None

    @field_validator("score")
    @classmethod
    def clamp_score(cls, v: float) -> float:
        return clamp_unit(v)

    def to_dict(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", exclude={"document"})
        data["document"] = self.document.to_dict() if self.document else None
        return data


class PatternSearchResponse(BaseModel):
    results: list[ScoredResult]
    total: int
    pattern_type: PatternKind
    metadata: dict[str, Any] = Field(default_factory=dict)


class SemanticSearchResponse(BaseModel):
    results: list[ScoredResult]
    total: int
    metadata: dict[str, Any] = Field(default_factory=dict)


class SubqueryBreakdown(BaseModel):
    """How one hybrid subquery fared and what it contributed to the fused list."""

    index: int
    source: str
    query_type: str
    weight: float
    status: SubqueryStatus
    count: int = 0
    contribution: float = 0.0
    error: str | None = None


class HybridSearchResponse(BaseModel):
    results: list[ScoredResult]
    total: int
    breakdown: list[SubqueryBreakdown]
    partial: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


class SearchResponse(BaseModel):
    """Envelope returned by the search manager for any query type."""

    results: list[ScoredResult]
    total: int
    search_type: str
    breakdown: list[SubqueryBreakdown] | None = None
    partial: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)

"""Query variants.

A query is an explicit tagged union discriminated on ``type``. Loose input
(plain strings or dicts shaped like the document store's API payloads) is
resolved exactly once by :func:`parse_query`; engines only ever see the
typed variants.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal, Self, get_args

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..config import RerankModel
from ..errors import UnknownPatternKindError
from ..utils.predefined_patterns import is_predefined
from .validators import NonNegativeFloat, PatternKind, UnitFloat

logger = logging.getLogger(__name__)


class SemanticQuery(BaseModel):
    """Vector query: an embedding, or text the embedding provider turns into one."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["semantic"] = "semantic"
    text: str | None = None
    embedding: list[float] | None = None
    rerank_model: RerankModel | None = None

    @model_validator(mode="after")
    def require_text_or_embedding(self) -> Self:
        if self.text is not None:
            self.text = self.text.strip() or None
        if self.text is None and not self.embedding:
            raise ValueError("semantic query needs text or an embedding")
        return self


class PatternQuery(BaseModel):
    """Pattern query. Which payload fields are required depends on ``kind``."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["pattern"] = "pattern"
    kind: PatternKind
    regex: str | None = None
    flags: str | None = None
    pattern: str | None = None
    text: str | None = None
    threshold: UnitFloat | None = None
    structure: dict[str, Any] | None = None

    @model_validator(mode="after")
    def check_payload(self) -> Self:
        kind = self.kind
        if kind == "regex" and not self.regex:
            raise ValueError("regex pattern query needs 'regex'")
        if kind in ("predefined", "wildcard") and not self.pattern:
            raise ValueError(f"{kind} pattern query needs 'pattern'")
        if kind in ("literal", "text", "fuzzy") and not self.search_text:
            raise ValueError(f"{kind} pattern query needs 'pattern' or 'text'")
        if kind == "structural" and not self.structure:
            raise ValueError("structural pattern query needs a non-empty 'structure'")
        return self

    @property
    def search_text(self) -> str:
        """Text payload for literal/fuzzy matching (``pattern`` wins over ``text``)."""
        return self.pattern or self.text or ""

    @property
    def source(self) -> str | None:
        """Human-readable pattern reported in response metadata."""
        return self.regex or self.pattern or self.text


class FullTextQuery(BaseModel):
    """Keyword query routed to the full-text collaborator."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["fulltext"] = "fulltext"
    text: str = Field(min_length=1)


class WeightedQuery(BaseModel):
    """One subquery of a hybrid query and its fusion weight."""

    query: Query
    weight: NonNegativeFloat = 1.0


class HybridQuery(BaseModel):
    """Ordered, weighted subqueries fused into one ranked list."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["hybrid"] = "hybrid"
    subqueries: list[WeightedQuery] = Field(min_length=1)


Query = Annotated[SemanticQuery | PatternQuery | FullTextQuery | HybridQuery, Field(discriminator="type")]

WeightedQuery.model_rebuild()
HybridQuery.model_rebuild()

_PATTERN_FIELDS = ("regex", "pattern", "fuzzy", "structural", "structure")

# Untyped text longer than this reads as a natural-language question and goes to semantic search
SEMANTIC_TEXT_MIN_LENGTH = 50


def classify_pattern(raw: dict[str, Any]) -> PatternKind:
    """Infer the pattern kind from a loose query dict (first match wins).

    regex source → predefined name → wildcard glob → literal string →
    fuzzy flag → structural payload → plain text.
    """
    if raw.get("regex"):
        return "regex"
    pattern = raw.get("pattern")
    if isinstance(pattern, str) and pattern:
        if is_predefined(pattern):
            return "predefined"
        if "*" in pattern or "?" in pattern:
            return "wildcard"
        return "literal"
    if raw.get("fuzzy"):
        return "fuzzy"
    if raw.get("structural") or raw.get("structure"):
        return "structural"
    return "text"


def _semantic_from_raw(raw: dict[str, Any]) -> SemanticQuery:
    return SemanticQuery(text=raw.get("text"), embedding=raw.get("embedding"), rerank_model=raw.get("rerank_model"))


def _pattern_from_raw(raw: dict[str, Any]) -> PatternQuery:
    kind = raw.get("kind") or classify_pattern(raw)
    if kind not in get_args(PatternKind):
        raise UnknownPatternKindError(kind)
    structure = raw.get("structure")
    if structure is None and isinstance(raw.get("structural"), dict):
        structure = raw["structural"]
    return PatternQuery(
        kind=kind,
        regex=raw.get("regex"),
        flags=raw.get("flags"),
        pattern=raw.get("pattern") if isinstance(raw.get("pattern"), str) else None,
        text=raw.get("text"),
        threshold=raw.get("threshold"),
        structure=structure,
    )


def _hybrid_from_raw(raw: dict[str, Any]) -> HybridQuery:
    if "subqueries" in raw:
        subqueries = []
        for item in raw["subqueries"]:
            if isinstance(item, (list, tuple)):
                sub, weight = item
            else:
                sub, weight = item["query"], item.get("weight", 1.0)
            subqueries.append(WeightedQuery(query=parse_query(sub), weight=weight))
        return HybridQuery(subqueries=subqueries)

    # {"queries": [...], "weights": [...] | {index: weight}}
    weights = raw.get("weights") or {}
    subqueries = []
    for index, sub in enumerate(raw.get("queries", [])):
        if isinstance(weights, dict):
            weight = weights.get(index, weights.get(str(index), 1.0))
        else:
            weight = weights[index] if index < len(weights) else 1.0
        subqueries.append(WeightedQuery(query=parse_query(sub), weight=weight))
    return HybridQuery(subqueries=subqueries)


def parse_query(raw: Query | dict[str, Any] | str) -> Query:
    """Resolve loose input into a typed query variant.

    Raises:
        pydantic.ValidationError: If the payload does not fit the resolved variant.
    """
    if isinstance(raw, (SemanticQuery, PatternQuery, FullTextQuery, HybridQuery)):
        return raw
    if isinstance(raw, str):
        return FullTextQuery(text=raw.strip())

    query_type = raw.get("type")
    if query_type == "semantic":
        return _semantic_from_raw(raw)
    if query_type == "pattern":
        return _pattern_from_raw(raw)
    if query_type == "hybrid":
        return _hybrid_from_raw(raw)
    if query_type == "fulltext":
        return FullTextQuery(text=str(raw.get("text", "")).strip())
    if query_type is not None:
        raise ValueError(f"Unknown query type: {query_type}")

    if "subqueries" in raw or "queries" in raw:
        return _hybrid_from_raw(raw)
    if raw.get("embedding") is not None:
        return _semantic_from_raw(raw)
    if any(raw.get(name) for name in _PATTERN_FIELDS):
        return _pattern_from_raw(raw)
    text = str(raw.get("text") or "").strip()
    if len(text) > SEMANTIC_TEXT_MIN_LENGTH:
        return _semantic_from_raw(raw)
    return FullTextQuery(text=text)

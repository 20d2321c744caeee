"""Shared Pydantic types and validators for reuse across models.

Centralises tag normalisation, timestamp coercion, range-clamped floats and
Literal enums so documents, queries and results speak the same language.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BeforeValidator, Field

# ---------------------------------------------------------------------------
# Tag normalisation
# ---------------------------------------------------------------------------


def normalize_tags(v: Any) -> list[str]:
    """Accept ``str | list | set | None`` and return a clean, de-duplicated ``list[str]``.

    * ``"a, b, a"`` → ``["a", "b"]``
    * ``["a", None, " b "]`` → ``["a", "b"]``
    * ``None`` → ``[]``

    First occurrence order is preserved so searchable text stays stable.
    """
    if v is None:
        return []
    if isinstance(v, str):
        items = [t.strip() for t in v.split(",")]
    elif isinstance(v, (list, tuple, set, frozenset)):
        items = [str(item).strip() for item in v if item is not None]
    else:
        return []
    return list(dict.fromkeys(t for t in items if t))


Tags = Annotated[list[str], BeforeValidator(normalize_tags)]
"""Flexible tag input: accepts str, list, set or None; always outputs list[str]."""


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def ensure_utc(v: datetime | None) -> datetime | None:
    """Interpret naive datetimes as UTC."""
    if v is not None and v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


UtcDatetime = Annotated[datetime | None, AfterValidator(ensure_utc)]


# ---------------------------------------------------------------------------
# Numeric types
# ---------------------------------------------------------------------------

UnitFloat = Annotated[float, Field(ge=0.0, le=1.0)]
"""Float in [0.0, 1.0] for scores and thresholds."""

NonNegativeInt = Annotated[int, Field(ge=0)]
"""Integer ≥ 0 for counts and offsets."""

NonNegativeFloat = Annotated[float, Field(ge=0.0)]
"""Float ≥ 0 for subquery weights."""


def clamp_unit(value: float) -> float:
    """Clamp *value* into [0.0, 1.0]."""
    return max(0.0, min(1.0, value))


# ---------------------------------------------------------------------------
# String constraints
# ---------------------------------------------------------------------------

DocumentId = Annotated[str, Field(min_length=1)]
"""Non-empty document identifier."""


# ---------------------------------------------------------------------------
# Literal enums
# ---------------------------------------------------------------------------

PatternKind = Literal["regex", "predefined", "wildcard", "fuzzy", "structural", "literal", "text"]
QueryType = Literal["semantic", "pattern", "fulltext", "hybrid"]
SubqueryStatus = Literal["ok", "error", "timeout", "skipped"]

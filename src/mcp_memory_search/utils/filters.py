"""Document filter predicates shared by the vector index scan and corpus adapters.

Filter values:
    - list/tuple/set:          document value must be one of them
    - {"min": x, "max": y}:    inclusive range (either bound optional)
    - scalar:                  equality, or membership when the document value is a list (e.g. tags)
"""

from collections.abc import Callable
from typing import Any

from ..models.document import Document

DocumentPredicate = Callable[[Document], bool]


def _is_range(value: Any) -> bool:
    return isinstance(value, dict) and ("min" in value or "max" in value)


def _matches_value(doc_value: Any, expected: Any) -> bool:
    if isinstance(expected, (list, tuple, set, frozenset)):
        if isinstance(doc_value, (list, tuple, set, frozenset)):
            return any(v in expected for v in doc_value)
        return doc_value in expected

    if _is_range(expected):
        if doc_value is None:
            return False
        try:
            if expected.get("min") is not None and doc_value < expected["min"]:
                return False
            if expected.get("max") is not None and doc_value > expected["max"]:
                return False
        except TypeError:
            return False
        return True

    if isinstance(doc_value, (list, tuple, set, frozenset)):
        return expected in doc_value
    return doc_value == expected


def passes_filters(doc: Document, filters: dict[str, Any] | None) -> bool:
    """True when *doc* satisfies every entry of *filters*."""
    if not filters:
        return True
    return all(_matches_value(doc.field_value(key), expected) for key, expected in filters.items())


def build_filter(user_id: str | None = None, filters: dict[str, Any] | None = None) -> DocumentPredicate | None:
    """Combine an owner filter and field filters into one predicate (None when unfiltered)."""
    if user_id is None and not filters:
        return None

    def predicate(doc: Document) -> bool:
        if user_id is not None and doc.user_id != user_id:
            return False
        return passes_filters(doc, filters)

    return predicate

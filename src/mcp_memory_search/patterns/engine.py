"""
Pattern-based search over the document corpus.

Supported kinds:
    - regex:      user-supplied regular expression (compiled through the FIFO cache)
    - predefined: named shortcut (email, url, phone, ...) executed as regex with ``gi``
    - wildcard:   ``*`` / ``?`` glob translated to regex, executed with ``gi``
    - fuzzy:      Jaro-Winkler similarity of every whitespace token against the query text
    - structural: recursive key/value match against the document's fields
    - literal:    escaped substring search scored by match density
    - text:       same as literal

Documents are fetched from the corpus reader on every call; all matching is
in-memory and synchronous.
"""

import logging
import re
import time
from collections.abc import Callable, Iterable
from typing import Any

from ..config import PatternSettings
from ..errors import UnknownPatternKindError, UnknownPredefinedPatternError
from ..models.document import Document
from ..models.query import PatternQuery
from ..models.results import PatternMatch, PatternSearchResponse, ScoredResult, SearchOptions
from ..storage.base import DocumentCorpusReader
from ..utils.predefined_patterns import PREDEFINED_PATTERNS
from ..utils.stats import SearchStatistics
from ..utils.string_similarity import escape_regex, jaro_winkler, levenshtein, wildcard_to_regex
from .cache import CompiledPatternCache

logger = logging.getLogger(__name__)

# Flags forced on predefined and wildcard searches
FORCED_FLAGS = "gi"

_TOKEN = re.compile(r"\S+")

Executor = Callable[[PatternQuery, list[Document]], list[ScoredResult]]


def match_field(doc: Document, index: int) -> str:
    """Attribute a searchable-text offset to ``title``, ``content`` or ``other``."""
    current = 0
    if doc.title:
        if index < current + len(doc.title):
            return "title"
        current += len(doc.title) + 1
    if doc.content:
        if index < current + len(doc.content):
            return "content"
    return "other"


def _distinct_fields(matches: Iterable[PatternMatch]) -> list[str]:
    return list(dict.fromkeys(m.field for m in matches if m.field))


class PatternEngine:
    """Executes typed :class:`PatternQuery` objects against the document corpus."""

    def __init__(
        self,
        corpus: DocumentCorpusReader,
        settings: PatternSettings | None = None,
        cache: CompiledPatternCache | None = None,
    ):
        self._corpus = corpus
        self._settings = settings or PatternSettings()
        self._cache = cache or CompiledPatternCache(
            capacity=self._settings.regex_cache_size,
            enabled=self._settings.enable_regex_cache,
        )
        self._stats = SearchStatistics()
        self._executors: dict[str, Executor] = {
            "regex": self._regex_search,
            "predefined": self._predefined_search,
            "wildcard": self._wildcard_search,
            "fuzzy": self._fuzzy_search,
            "structural": self._structural_search,
            "literal": self._literal_search,
            "text": self._literal_search,
        }

    @property
    def cache(self) -> CompiledPatternCache:
        return self._cache

    @property
    def settings(self) -> PatternSettings:
        return self._settings

    # ── Public API ─────────────────────────────────────────────────────

    async def search(self, query: PatternQuery, options: SearchOptions | None = None) -> PatternSearchResponse:
        """Run *query* against the corpus and return results sorted by score.

        Raises:
            PatternCompileError: Invalid regex source or flags.
            UnknownPatternKindError: Unknown kind, or a kind disabled in settings.
            UnknownPredefinedPatternError: Predefined name not registered.
        """
        start = time.perf_counter()
        options = options or SearchOptions(limit=self._settings.default_limit)

        try:
            documents = await self._corpus.list_documents(user_id=options.user_id, filters=options.filters or None)
            results = self.match_documents(query, documents, limit=options.limit)
        except Exception:
            self._stats.record_error()
            raise

        elapsed_ms = (time.perf_counter() - start) * 1000
        self._stats.record(query.kind, elapsed_ms)

        return PatternSearchResponse(
            results=results,
            total=len(results),
            pattern_type=query.kind,
            metadata={
                "search_time_ms": elapsed_ms,
                "pattern": query.source,
                "case_sensitive": self._settings.case_sensitive,
                "fuzzy_enabled": self._settings.enable_fuzzy_matching,
                "documents_scanned": len(documents),
            },
        )

    def match_documents(self, query: PatternQuery, documents: list[Document], limit: int = 10) -> list[ScoredResult]:
        """Score *documents* against *query*; highest score first, ties by document id."""
        executor = self._executors.get(query.kind)
        if executor is None:
            raise UnknownPatternKindError(query.kind)
        scored = executor(query, documents)
        scored.sort(key=lambda r: (-r.score, r.document_id))
        return scored[:limit]

    def get_compiled_regex(self, pattern: str, flags: str = "") -> re.Pattern[str]:
        return self._cache.get_or_compile(pattern, flags)

    def get_statistics(self) -> dict[str, Any]:
        stats = self._stats.snapshot()
        cache_stats = self._cache.stats()
        stats["cache_hits"] = cache_stats["hits"]
        stats["cache_hit_rate"] = cache_stats["hits"] / max(stats["total_queries"], 1)
        stats["regex_cache"] = cache_stats
        stats["pattern_types"] = stats.pop("counters")
        return stats

    def clear_cache(self) -> None:
        self._cache.clear()

    def reset_stats(self) -> None:
        self._stats.reset()

    # ── Regex family ───────────────────────────────────────────────────

    def find_regex_matches(self, doc: Document, compiled: re.Pattern[str]) -> list[PatternMatch]:
        text = doc.searchable_text()
        return [
            PatternMatch(
                text=m.group(0),
                index=m.start(),
                field=match_field(doc, m.start()),
                groups=m.groupdict(),
            )
            for m in compiled.finditer(text)
        ]

    def _run_regex(self, source: str, flags: str, documents: list[Document]) -> list[ScoredResult]:
        compiled = self.get_compiled_regex(source, flags)
        results = []
        for doc in documents:
            matches = self.find_regex_matches(doc, compiled)
            if not matches:
                continue
            title_boost = 0.2 if any(m.field == "title" for m in matches) else 0.0
            score = min(len(matches) / 10 + title_boost, 1.0)
            results.append(self._result(doc, score, matches))
        return results

    def _regex_search(self, query: PatternQuery, documents: list[Document]) -> list[ScoredResult]:
        flags = query.flags if query.flags is not None else self._settings.default_flags
        return self._run_regex(query.regex or "", flags, documents)

    def _predefined_search(self, query: PatternQuery, documents: list[Document]) -> list[ScoredResult]:
        name = query.pattern or ""
        source = PREDEFINED_PATTERNS.get(name)
        if source is None:
            raise UnknownPredefinedPatternError(name)
        return self._run_regex(source, FORCED_FLAGS, documents)

    def _wildcard_search(self, query: PatternQuery, documents: list[Document]) -> list[ScoredResult]:
        if not self._settings.enable_wildcards:
            raise UnknownPatternKindError("wildcard")
        return self._run_regex(wildcard_to_regex(query.pattern or ""), FORCED_FLAGS, documents)

    # ── Fuzzy ──────────────────────────────────────────────────────────

    def find_fuzzy_matches(self, doc: Document, search_text: str, threshold: float) -> list[PatternMatch]:
        fold = not self._settings.case_sensitive
        target = search_text.lower() if fold else search_text
        text = doc.searchable_text()
        matches = []
        for word_index, m in enumerate(_TOKEN.finditer(text)):
            token = m.group(0)
            candidate = token.lower() if fold else token
            similarity = jaro_winkler(candidate, target)
            if similarity >= threshold:
                matches.append(
                    PatternMatch(
                        text=token,
                        index=m.start(),
                        field=match_field(doc, m.start()),
                        similarity=similarity,
                        edit_distance=levenshtein(candidate, target),
                        word_index=word_index,
                    )
                )
        return matches

    def _fuzzy_search(self, query: PatternQuery, documents: list[Document]) -> list[ScoredResult]:
        if not self._settings.enable_fuzzy_matching:
            raise UnknownPatternKindError("fuzzy")
        threshold = query.threshold if query.threshold is not None else self._settings.fuzzy_threshold
        results = []
        for doc in documents:
            matches = self.find_fuzzy_matches(doc, query.search_text, threshold)
            if not matches:
                continue
            score = sum(m.similarity or 0.0 for m in matches) / len(matches)
            results.append(self._result(doc, score, matches))
        return results

    # ── Structural ─────────────────────────────────────────────────────

    def matches_structure(self, value: Any, pattern: Any) -> bool:
        """Recursive deep match of *value* against *pattern*.

        Every key of a dict pattern must exist on the value and match
        recursively; scalars compare by equality; lists follow the
        ``structural_array_match`` policy.
        """
        if isinstance(pattern, dict):
            if isinstance(value, Document):
                has, get = value.has_field, value.field_value
            elif isinstance(value, dict):
                has, get = value.__contains__, value.get
            else:
                return False
            return all(has(key) and self.matches_structure(get(key), sub) for key, sub in pattern.items())

        if isinstance(pattern, (list, tuple, set, frozenset)):
            if not isinstance(value, (list, tuple, set, frozenset)):
                return False
            if self._settings.structural_array_match == "contains":
                return all(any(self.matches_structure(v, p) for v in value) for p in pattern)
            if isinstance(pattern, (set, frozenset)) or isinstance(value, (set, frozenset)):
                return set(value) == set(pattern)
            return len(value) == len(pattern) and all(
                self.matches_structure(v, p) for v, p in zip(value, pattern)
            )

        return value == pattern

    def _structural_search(self, query: PatternQuery, documents: list[Document]) -> list[ScoredResult]:
        structure = query.structure or {}
        score = min(len(structure) / 10, 1.0)
        results = []
        for doc in documents:
            if self.matches_structure(doc, structure):
                result = self._result(doc, score, [])
                result.matched_fields = list(structure)
                result.match_count = len(structure)
                results.append(result)
        return results

    # ── Literal ────────────────────────────────────────────────────────

    def _literal_search(self, query: PatternQuery, documents: list[Document]) -> list[ScoredResult]:
        search_text = query.search_text
        flags = 0 if self._settings.case_sensitive else re.IGNORECASE
        compiled = re.compile(escape_regex(search_text), flags)
        results = []
        for doc in documents:
            matches = self.find_regex_matches(doc, compiled)
            if not matches:
                continue
            text_length = len(doc.searchable_text())
            density = len(matches) / (text_length / len(search_text))
            results.append(self._result(doc, min(density, 1.0), matches))
        return results

    # ── Helpers ────────────────────────────────────────────────────────

    @staticmethod
    def _result(doc: Document, score: float, matches: list[PatternMatch]) -> ScoredResult:
        return ScoredResult(
            document_id=doc.id,
            score=score,
            source_scores={"pattern": score},
            matches=matches,
            match_count=len(matches),
            matched_fields=_distinct_fields(matches),
            document=doc,
        )

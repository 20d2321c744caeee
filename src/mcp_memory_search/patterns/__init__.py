"""Pattern matching engine and its compiled-regex cache."""

from .cache import CompiledPatternCache
from .engine import PatternEngine

__all__ = ["CompiledPatternCache", "PatternEngine"]

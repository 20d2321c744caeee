"""
Bounded cache of compiled regular expressions.

Keyed by ``pattern::flags``. Eviction is insertion-order (FIFO): when the
cache is full the oldest *inserted* key is dropped, regardless of how
recently it was read.
"""

import logging
import re
import threading
from typing import Any

from ..errors import PatternCompileError

logger = logging.getLogger(__name__)

# Letter flags accepted on regex queries. "g" is accepted for compatibility;
# matching is always global.
REGEX_FLAGS: dict[str, int] = {
    "g": 0,
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    "u": 0,
}


def parse_flags(pattern: str, flags: str) -> int:
    """Convert letter flags (e.g. ``"gi"``) to ``re`` flag bits."""
    value = 0
    for letter in flags:
        if letter not in REGEX_FLAGS:
            raise PatternCompileError(pattern, f"unsupported flag '{letter}'")
        value |= REGEX_FLAGS[letter]
    return value


def cache_key(pattern: str, flags: str) -> str:
    return f"{pattern}::{flags}"


class CompiledPatternCache:
    """FIFO-bounded mapping from ``pattern::flags`` to compiled regex objects."""

    def __init__(self, capacity: int = 100, enabled: bool = True):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._capacity = capacity
        self._enabled = enabled
        self._entries: dict[str, re.Pattern[str]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def get_or_compile(self, pattern: str, flags: str = "") -> re.Pattern[str]:
        """Return the cached compiled pattern, compiling and storing it on a miss.

        Raises:
            PatternCompileError: If *pattern* is not valid regex source or *flags*
                contains an unsupported letter.
        """
        key = cache_key(pattern, flags)
        if self._enabled:
            with self._lock:
                compiled = self._entries.get(key)
                if compiled is not None:
                    self.hits += 1
                    return compiled

        try:
            compiled = re.compile(pattern, parse_flags(pattern, flags))
        except re.error as e:
            raise PatternCompileError(pattern, str(e)) from e

        if self._enabled:
            with self._lock:
                self.misses += 1
                if key not in self._entries:
                    if len(self._entries) >= self._capacity:
                        oldest = next(iter(self._entries))
                        del self._entries[oldest]
                        logger.debug(f"Regex cache full, evicted {oldest!r}")
                    self._entries[key] = compiled
        return compiled

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "size": len(self._entries),
                "capacity": self._capacity,
                "hits": self.hits,
                "misses": self.misses,
                "enabled": self._enabled,
            }

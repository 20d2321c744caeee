"""Embedding provider interface and shared helpers."""

import re
from typing import Protocol, runtime_checkable

_WHITESPACE = re.compile(r"\s+")

# Inputs longer than this are truncated before embedding
MAX_INPUT_CHARS = 10000


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Turns text into a fixed-dimension vector.

    Implementations raise :class:`~mcp_memory_search.errors.EmbeddingUnavailableError`
    when no vector can be produced.
    """

    @property
    def dimension(self) -> int: ...

    async def embed(self, text: str) -> list[float]: ...


def preprocess_text(text: str) -> str:
    """Collapse whitespace and truncate to :data:`MAX_INPUT_CHARS`."""
    return _WHITESPACE.sub(" ", text).strip()[:MAX_INPUT_CHARS]


"""
Deterministic offline embedding provider.

Feature-hashes lower-cased word tokens into a fixed number of buckets (signed
by a second hash bit) and L2-normalises the result. Texts sharing words get
positive cosine similarity, which is enough for local development and tests
without network access.
"""

import hashlib
import re

import numpy as np

from ..config import DEFAULT_EMBEDDING_DIMENSIONS
from ..errors import EmbeddingUnavailableError
from .base import preprocess_text

_TOKEN = re.compile(r"\w+")


class HashEmbeddingProvider:
    def __init__(self, dimension: int = DEFAULT_EMBEDDING_DIMENSIONS):
        if dimension < 1:
            raise ValueError("dimension must be >= 1")
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed_sync(self, text: str) -> list[float]:
        processed = preprocess_text(text or "").lower()
        tokens = _TOKEN.findall(processed)
        if not tokens:
            raise EmbeddingUnavailableError("Cannot embed text without word tokens")

        vector = np.zeros(self._dimension, dtype=np.float64)
        for token in tokens:
            digest = hashlib.sha256(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:8], "big") % self._dimension
            sign = 1.0 if digest[8] & 1 else -1.0
            vector[bucket] += sign

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector.tolist()

    async def embed(self, text: str) -> list[float]:
        return self.embed_sync(text)

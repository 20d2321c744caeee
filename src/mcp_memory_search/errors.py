"""Search error taxonomy.

Every engine-level failure derives from :class:`SearchError` so that the
hybrid coordinator can isolate it per subquery.
"""


class SearchError(Exception):
    """Base class for all search subsystem errors."""


class DimensionMismatchError(SearchError):
    """Raised when an embedding does not have the configured dimension."""

    def __init__(self, expected: int, actual: int, document_id: str | None = None):
        self.expected = expected
        self.actual = actual
        self.document_id = document_id

        message = f"Embedding dimension mismatch: expected {expected}, got {actual}"
        if document_id is not None:
            message += f" (document '{document_id}')"
        super().__init__(message)


class PatternCompileError(SearchError):
    """Raised when a regex or wildcard pattern cannot be compiled."""

    def __init__(self, pattern: str, message: str):
        self.pattern = pattern
        self.message = message
        super().__init__(f"Invalid regex pattern: {pattern} - {message}")


class NoEmbeddingAvailableError(SearchError):
    """Raised when a semantic query resolves to neither an embedding nor embeddable text."""


class EmbeddingUnavailableError(SearchError):
    """Raised when the embedding provider fails to produce a vector."""


class NotFoundError(SearchError):
    """Raised when an index operation targets an absent document."""

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(f"Document {document_id} not found in index")


class UnknownPatternKindError(SearchError):
    """Raised for pattern kinds that are unknown or disabled."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"Unknown or disabled pattern kind: {kind}")


class UnknownPredefinedPatternError(SearchError):
    """Raised when a predefined pattern name is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown predefined pattern: {name}")

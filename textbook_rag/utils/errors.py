"""Custom exception hierarchy for textbook-rag.

All application exceptions inherit from :class:`TextbookRAGError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "chromadb", "pymupdf") caused the failure.

The hierarchy is organized by pipeline stage:

    TextbookRAGError  (base -- catch-all for any textbook-rag error)
    +-- ExtractionError      (document text extraction)
    +-- EmbeddingError       (embedding API / model failure)
    +-- RAGError             (vector index failure)
    +-- PipelineError        (orchestration)
    +-- ConfigurationError   (startup / missing config)

Structure detection and chunking never raise: a document without usable
structure is reported through a low ``structure_quality`` instead.
"""


class TextbookRAGError(Exception):
    """Base exception for all textbook-rag errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    output, e.g. ``[chromadb] Upsert failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Collaborator errors
# ---------------------------------------------------------------------------

class ExtractionError(TextbookRAGError):
    """Raised when text cannot be extracted from a source document."""

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingError(TextbookRAGError):
    """Raised when an embedding request fails or returns unusable vectors."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RAGError(TextbookRAGError):
    """Raised when a vector index operation (upsert, query, delete) fails."""

    def __init__(
        self,
        message: str = "Vector index operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Orchestration / configuration errors
# ---------------------------------------------------------------------------

class PipelineError(TextbookRAGError):
    """Raised when pipeline orchestration fails outside a single document."""

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(TextbookRAGError):
    """Raised when configuration is invalid or missing at construction time."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)

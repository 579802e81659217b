"""Utility modules for textbook-rag.

Available utility modules (all re-exported here for convenience):

- **errors** -- Domain-specific exception hierarchy rooted at TextbookRAGError;
  each pipeline stage raises its own subclass so callers can handle failures
  granularly without broad ``except Exception`` blocks.
- **concurrency** -- asyncio semaphore throttling that keeps parallel
  embedding requests under provider rate limits.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **text_normalizer** -- Cleanup of PDF-extracted text (hyphenation,
  page numbers, URLs, whitespace) and fuzzy title matching.
"""

# -- Domain exception hierarchy --------------------------------------------
from textbook_rag.utils.errors import (
    ConfigurationError,
    EmbeddingError,
    ExtractionError,
    PipelineError,
    RAGError,
    TextbookRAGError,
)

# -- Async concurrency helpers ---------------------------------------------
from textbook_rag.utils.concurrency import make_semaphore, throttled_gather

# -- Structured logging setup ----------------------------------------------
from textbook_rag.utils.logging import configure_logging, get_logger

# -- Text normalization (PDF cleanup, fuzzy title matching) ----------------
from textbook_rag.utils.text_normalizer import clean_extracted_text, fuzzy_match

__all__ = [
    "ConfigurationError",
    "EmbeddingError",
    "ExtractionError",
    "PipelineError",
    "RAGError",
    "TextbookRAGError",
    "clean_extracted_text",
    "configure_logging",
    "fuzzy_match",
    "get_logger",
    "make_semaphore",
    "throttled_gather",
]

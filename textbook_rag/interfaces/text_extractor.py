"""Abstract base class for document text extractors.

The pipeline only needs plain text out of a document; how that happens
(PDF text layer, reading a file, an upstream service) is the extractor's
business.  The extraction handle is an opaque string, usually a file path.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from textbook_rag.models.rag import ExtractedDocument


# Concrete implementations (textbook_rag/providers/extraction/):
#   PDFTextExtractor       - PyMuPDF text layer + cleanup
#   PlainTextExtractor     - .txt / .md files
#   CompositeTextExtractor - dispatches to the first extractor that supports a handle
class ITextExtractor(ABC):
    """Contract for services that turn a document handle into raw text."""

    @abstractmethod
    async def extract(self, handle: str) -> ExtractedDocument:
        """Extract the full text of the document behind *handle*.

        Parameters
        ----------
        handle:
            File path or other locator understood by this extractor.

        Returns
        -------
        ExtractedDocument
            The document text with blank-line paragraph breaks preserved.

        Raises
        ------
        textbook_rag.utils.errors.ExtractionError
            If the document cannot be read or has no text.
        """

    @abstractmethod
    def supports(self, handle: str) -> bool:
        """Return ``True`` if this extractor can handle *handle*."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this extractor."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the extractor's backend library is importable."""

"""PDF text extractor backed by PyMuPDF.

Reads PDF files using PyMuPDF (fitz), extracts the text layer page by page
and joins pages with blank lines so page breaks become paragraph breaks.
The joined text is passed through
:func:`~textbook_rag.utils.text_normalizer.clean_extracted_text` to drop
running page numbers, footer URLs and ragged whitespace before the
structure detector sees it.

Scanned PDFs without a text layer are rejected; OCR is out of scope.
"""

from __future__ import annotations

import asyncio

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from textbook_rag.interfaces.text_extractor import ITextExtractor
from textbook_rag.models.rag import ExtractedDocument
from textbook_rag.utils.errors import ExtractionError
from textbook_rag.utils.text_normalizer import clean_extracted_text

logger = structlog.get_logger(logger_name=__name__)


class PDFTextExtractor(ITextExtractor):
    """Extracts cleaned text from PDF files.

    Parameters
    ----------
    fix_spacing:
        Re-insert spaces that some PDF text layers drop between glued
        words (``"cellMembrane"`` → ``"cell Membrane"``).  Off by default
        because it also splits legitimate camel-case identifiers.
    """

    def __init__(self, fix_spacing: bool = False) -> None:
        self._fix_spacing = fix_spacing

    async def extract(self, handle: str) -> ExtractedDocument:
        """Extract and clean the text of the PDF at *handle*.

        Raises
        ------
        ExtractionError
            If the file cannot be opened or has no extractable text.
        """
        pages = await asyncio.to_thread(self._extract_pages, handle)
        raw = "\n\n".join(text for _, text in pages)
        text = clean_extracted_text(raw, fix_spacing=self._fix_spacing)
        if not text:
            raise ExtractionError(
                message=f"No extractable text in {handle}",
                provider_name=self.get_provider_name(),
            )

        logger.info(
            "pdf_extracted",
            file_path=handle,
            pages=len(pages),
            raw_chars=len(raw),
            cleaned_chars=len(text),
        )
        return ExtractedDocument(text=text, page_count=len(pages), source_path=handle)

    def supports(self, handle: str) -> bool:
        return handle.lower().endswith(".pdf")

    def get_provider_name(self) -> str:
        return "pymupdf"

    def is_available(self) -> bool:
        """PyMuPDF is a hard dependency, so this is always ``True``."""
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _extract_pages(self, file_path: str) -> list[tuple[int, str]]:
        """Return ``(page_number, page_text)`` for every page with text; numbers are 1-based."""
        try:
            doc = fitz.open(file_path)
        except Exception as exc:
            logger.error("pdf_open_failed", file_path=file_path, error=str(exc))
            raise ExtractionError(
                message=f"Cannot open PDF {file_path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        pages: list[tuple[int, str]] = []
        try:
            for page_num in range(len(doc)):
                text = doc[page_num].get_text("text").strip()
                if text:
                    pages.append((page_num + 1, text))
        finally:
            doc.close()

        if not pages:
            logger.warning("pdf_no_text_extracted", file_path=file_path)
        return pages

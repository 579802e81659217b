"""Text extractor implementations.

Three implementations of ITextExtractor:
    1. PDFTextExtractor       - PyMuPDF text layer, cleaned for chunking.
    2. PlainTextExtractor     - .txt / .md files read as UTF-8.
    3. CompositeTextExtractor - picks the first extractor that supports a
       handle; the CLI wires PDF + plain text behind it.
"""

from textbook_rag.providers.extraction.composite_extractor import CompositeTextExtractor
from textbook_rag.providers.extraction.pdf_extractor import PDFTextExtractor
from textbook_rag.providers.extraction.plain_text_extractor import PlainTextExtractor

__all__ = ["CompositeTextExtractor", "PDFTextExtractor", "PlainTextExtractor"]

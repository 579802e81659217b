"""Plain-text extractor for ``.txt`` and ``.md`` textbook sources."""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from textbook_rag.interfaces.text_extractor import ITextExtractor
from textbook_rag.models.rag import ExtractedDocument
from textbook_rag.utils.errors import ExtractionError
from textbook_rag.utils.text_normalizer import normalize_whitespace

logger = structlog.get_logger(logger_name=__name__)

_SUFFIXES = (".txt", ".md", ".text")


class PlainTextExtractor(ITextExtractor):
    """Reads UTF-8 text files; only whitespace is normalized."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    async def extract(self, handle: str) -> ExtractedDocument:
        path = Path(handle)
        try:
            raw = await asyncio.to_thread(path.read_text, encoding=self._encoding)
        except (OSError, UnicodeDecodeError) as exc:
            raise ExtractionError(
                message=f"Cannot read {handle}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        text = normalize_whitespace(raw)
        if not text:
            raise ExtractionError(
                message=f"{handle} is empty",
                provider_name=self.get_provider_name(),
            )
        logger.info("text_file_extracted", file_path=handle, chars=len(text))
        return ExtractedDocument(text=text, source_path=handle)

    def supports(self, handle: str) -> bool:
        return handle.lower().endswith(_SUFFIXES)

    def get_provider_name(self) -> str:
        return "plain_text"

    def is_available(self) -> bool:
        return True

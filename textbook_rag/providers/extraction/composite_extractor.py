"""Dispatching extractor that routes each handle to a capable extractor."""

from __future__ import annotations

import structlog

from textbook_rag.interfaces.text_extractor import ITextExtractor
from textbook_rag.models.rag import ExtractedDocument
from textbook_rag.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


class CompositeTextExtractor(ITextExtractor):
    """Delegates to the first of *extractors* whose ``supports()`` accepts the handle."""

    def __init__(self, extractors: list[ITextExtractor]) -> None:
        self._extractors = list(extractors)

    async def extract(self, handle: str) -> ExtractedDocument:
        for extractor in self._extractors:
            if extractor.supports(handle):
                logger.debug(
                    "extractor_selected",
                    handle=handle,
                    extractor=extractor.get_provider_name(),
                )
                return await extractor.extract(handle)
        raise ExtractionError(
            message=f"No extractor supports {handle}",
            provider_name=self.get_provider_name(),
        )

    def supports(self, handle: str) -> bool:
        return any(extractor.supports(handle) for extractor in self._extractors)

    def get_provider_name(self) -> str:
        return "composite(" + ",".join(e.get_provider_name() for e in self._extractors) + ")"

    def is_available(self) -> bool:
        return any(extractor.is_available() for extractor in self._extractors)

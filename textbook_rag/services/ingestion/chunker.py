"""Structure-aware text chunking for textbook documents.

Splits extracted text into :class:`~textbook_rag.models.rag.Chunk` objects
sized for embedding models (~1000 characters by default).

The chunker picks one of two strategies from the document's structure
quality:

1. **Structure-aware** (quality > 0.3) -- paragraphs are packed greedily,
   but a chunk is flushed the moment a chapter or section heading appears,
   so no chunk ever spans two structural regions.  When a chunk overflows,
   the next few paragraphs are checked for an upcoming heading; if one is
   near, the chunk keeps growing and lets the heading close it instead of
   leaving a tiny orphan behind.  Otherwise the next chunk starts with the
   last few words of the previous one for retrieval continuity.

2. **Fallback** -- a fixed character window slides across the text with
   ``chunk_overlap`` characters shared between neighbours, snapping to the
   previous space so words are not cut.

Both outputs then go through the refinement passes (semantic boundary
recording, math tagging, density-based re-splitting), each of which can be
switched off.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from textbook_rag.models.rag import (
    BookMetadata,
    Chunk,
    ChunkingResult,
    ChunkingStats,
    ChunkMetadata,
    ContentType,
)
from textbook_rag.models.structure import StructureResult
from textbook_rag.services.ingestion.content_analysis import (
    content_density,
    detect_math,
    determine_content_type,
    extract_keywords,
    find_semantic_boundaries,
    make_chunk_id,
    merge_keywords,
    split_at_midpoint_sentence,
)
from textbook_rag.services.ingestion.heading_rules import HeadingClassifier, HeadingKind, HeadingMatch
from textbook_rag.services.ingestion.structure_detector import StructureDetector
from textbook_rag.utils.errors import ConfigurationError
from textbook_rag.utils.text_normalizer import fuzzy_match

if TYPE_CHECKING:
    from textbook_rag.config.settings import Settings

logger = structlog.get_logger(logger_name=__name__)

STRATEGY_STRUCTURE_AWARE = "structure_aware"
STRATEGY_FALLBACK = "fallback"

_PARAGRAPH_BREAK_RE = re.compile(r"\n\s*\n")

# Fraction of the target window a snap-to-space may keep at minimum.
_SNAP_RATIO = 0.7
# Dense chunks are re-split only above this fraction of chunk_size.
_RESIZE_LENGTH_RATIO = 0.8
_RESIZE_DENSITY_THRESHOLD = 0.7
_SEMANTIC_BOUNDARY_CONFIDENCE = 0.7


@dataclass(frozen=True)
class _Paragraph:
    text: str
    heading: HeadingMatch | None


@dataclass(frozen=True)
class _Draft:
    """Chunk text plus the structural region it was cut from."""

    text: str
    chapter: str | None = None
    section: str | None = None


class ContentChunker:
    """Splits document text into metadata-rich chunks.

    Parameters
    ----------
    chunk_size:
        Target maximum chunk length in characters.
    chunk_overlap:
        Characters shared between neighbouring fallback windows.
    min_chunk_size:
        Fallback windows shorter than this are dropped (except the last).
    section_overlap_words:
        Words carried into the next chunk inside a chapter or section.
    overlap_words:
        Words carried into the next chunk when no structural region is open.
    lookahead_paragraphs:
        Paragraphs scanned for an upcoming heading before splitting.
    quality_threshold:
        Structure quality above which the structure-aware strategy is used.
    semantic_boundaries, mathematical_aware, dynamic_sizing:
        Enable the individual refinement passes.
    detector:
        Structure detector; its heading classifier also drives paragraph
        boundary detection here.
    """

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        min_chunk_size: int = 300,
        section_overlap_words: int = 20,
        overlap_words: int = 30,
        lookahead_paragraphs: int = 3,
        quality_threshold: float = 0.3,
        semantic_boundaries: bool = True,
        mathematical_aware: bool = True,
        dynamic_sizing: bool = True,
        detector: StructureDetector | None = None,
    ) -> None:
        if chunk_size <= 0:
            raise ConfigurationError(f"chunk_size must be positive, got {chunk_size}")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ConfigurationError(
                f"chunk_overlap must be in [0, chunk_size), got {chunk_overlap} for chunk_size {chunk_size}"
            )
        if min_chunk_size < 0 or min_chunk_size > chunk_size:
            raise ConfigurationError(
                f"min_chunk_size must be in [0, chunk_size], got {min_chunk_size}"
            )

        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._min_chunk_size = min_chunk_size
        self._section_overlap_words = section_overlap_words
        self._overlap_words = overlap_words
        self._lookahead = lookahead_paragraphs
        self._quality_threshold = quality_threshold
        self._semantic_boundaries = semantic_boundaries
        self._mathematical_aware = mathematical_aware
        self._dynamic_sizing = dynamic_sizing
        self._detector = detector or StructureDetector(fallback_threshold=quality_threshold)
        self._classifier = self._detector.classifier

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        classifier: HeadingClassifier | None = None,
    ) -> ContentChunker:
        """Build a chunker (and its detector) from application settings."""
        detector = StructureDetector(
            classifier=classifier,
            max_chapters=settings.max_chapters,
            fallback_threshold=settings.structure_quality_threshold,
        )
        return cls(
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            min_chunk_size=settings.min_chunk_size,
            section_overlap_words=settings.section_overlap_words,
            overlap_words=settings.overlap_words,
            lookahead_paragraphs=settings.lookahead_paragraphs,
            quality_threshold=settings.structure_quality_threshold,
            semantic_boundaries=settings.semantic_boundaries,
            mathematical_aware=settings.mathematical_aware,
            dynamic_sizing=settings.dynamic_sizing,
            detector=detector,
        )

    @property
    def detector(self) -> StructureDetector:
        return self._detector

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk_content(
        self,
        text: str,
        book_metadata: BookMetadata,
        structure: StructureResult | None = None,
    ) -> ChunkingResult:
        """Split *text* into chunks tagged with *book_metadata*.

        Parameters
        ----------
        text:
            Full document text.
        book_metadata:
            Book identity copied into every chunk.
        structure:
            A structure already detected for *text*; detected here when
            omitted.

        Returns
        -------
        ChunkingResult
            Chunks in document order with ``total_chunks`` filled in.
        """
        started = time.monotonic()
        text = text or ""
        if structure is None:
            structure = self._detector.detect_structure(text)

        if structure.structure_quality > self._quality_threshold:
            strategy = STRATEGY_STRUCTURE_AWARE
            drafts = self._chunk_structure_aware(text, structure)
        else:
            strategy = STRATEGY_FALLBACK
            drafts = [_Draft(text=window) for window in self._window(text, drop_short=True)]

        chunks = [
            self._build_chunk(draft, index, book_metadata) for index, draft in enumerate(drafts)
        ]

        boundary_candidates = 0
        if self._semantic_boundaries and strategy == STRATEGY_STRUCTURE_AWARE:
            boundary_candidates = self._record_semantic_boundaries(chunks)
        if self._mathematical_aware:
            chunks = self._enhance_mathematical(chunks)
        if self._dynamic_sizing:
            chunks = self._resize_dense(chunks)

        total = len(chunks)
        chunks = [
            c.model_copy(update={"metadata": c.metadata.model_copy(update={"total_chunks": total})})
            for c in chunks
        ]

        elapsed_ms = (time.monotonic() - started) * 1000
        stats = ChunkingStats(
            total_chunks=total,
            average_chunk_size=(sum(len(c.text) for c in chunks) / total) if total else 0.0,
            structure_preserved=strategy == STRATEGY_STRUCTURE_AWARE,
            fallback_used=strategy == STRATEGY_FALLBACK,
            processing_time_ms=elapsed_ms,
            semantic_boundary_candidates=boundary_candidates,
        )

        logger.info(
            "chunking_complete",
            book=book_metadata.book,
            strategy=strategy,
            num_chunks=total,
            avg_chunk_size=round(stats.average_chunk_size, 1),
            structure_quality=round(structure.structure_quality, 3),
            processing_time_ms=round(elapsed_ms, 1),
        )
        return ChunkingResult(chunks=chunks, strategy_used=strategy, stats=stats, structure=structure)

    # ------------------------------------------------------------------
    # Structure-aware strategy
    # ------------------------------------------------------------------

    def _split_paragraphs(self, text: str) -> list[_Paragraph]:
        """Split on blank lines, and also before any interior heading line."""
        paragraphs: list[_Paragraph] = []
        for block in _PARAGRAPH_BREAK_RE.split(text):
            lines: list[str] = []
            heading: HeadingMatch | None = None
            for line in block.split("\n"):
                match = self._classifier.classify(line)
                if match is not None and any(ln.strip() for ln in lines):
                    paragraphs.append(_Paragraph("\n".join(lines).strip(), heading))
                    lines = []
                if not any(ln.strip() for ln in lines):
                    heading = match
                lines.append(line)
            body = "\n".join(lines).strip()
            if body:
                paragraphs.append(_Paragraph(body, heading))
        return paragraphs

    def _chunk_structure_aware(self, text: str, structure: StructureResult) -> list[_Draft]:
        paragraphs = self._split_paragraphs(text)
        chapter_titles = [c.title for c in structure.chapters]
        section_titles = [s.title for s in structure.sections]

        drafts: list[_Draft] = []
        current = ""
        chapter: str | None = None
        section: str | None = None

        def flush() -> None:
            nonlocal current
            if current.strip():
                drafts.append(_Draft(text=current.strip(), chapter=chapter, section=section))
            current = ""

        for index, paragraph in enumerate(paragraphs):
            heading = paragraph.heading
            if heading is not None:
                # Hard boundary: flush regardless of size, no overlap.
                flush()
                if heading.kind == HeadingKind.CHAPTER:
                    chapter = self._canonical_title(heading.title, chapter_titles)
                    section = None
                else:
                    section = self._canonical_title(heading.title, section_titles)

            if len(paragraph.text) > self._chunk_size:
                flush()
                for window in self._window(paragraph.text, drop_short=False):
                    drafts.append(_Draft(text=window, chapter=chapter, section=section))
                continue

            if not current:
                current = paragraph.text
                continue

            candidate = f"{current}\n\n{paragraph.text}"
            if len(candidate) <= self._chunk_size:
                current = candidate
                continue

            if self._boundary_ahead(paragraphs, index):
                # Let the upcoming heading close this chunk.
                current = candidate
                continue

            previous = current
            flush()
            current = f"{self._overlap_text(previous, in_region=bool(chapter or section))}\n\n{paragraph.text}"

        flush()
        return drafts

    def _boundary_ahead(self, paragraphs: list[_Paragraph], index: int) -> bool:
        upcoming = paragraphs[index + 1 : index + 1 + self._lookahead]
        return any(p.heading is not None for p in upcoming)

    def _overlap_text(self, previous: str, in_region: bool) -> str:
        """Last words of *previous*: the section-aware count inside a region, else the generic count."""
        count = self._section_overlap_words if in_region else self._overlap_words
        if count <= 0:
            return ""
        return " ".join(previous.split()[-count:])

    @staticmethod
    def _canonical_title(title: str, known_titles: list[str]) -> str:
        """Map a heading to the detector's spelling of the same title (case, word order)."""
        match = fuzzy_match(title, known_titles, threshold=0.95)
        return match[0] if match else title

    # ------------------------------------------------------------------
    # Character windows (fallback strategy and oversized paragraphs)
    # ------------------------------------------------------------------

    def _window(self, text: str, drop_short: bool) -> list[str]:
        """Slide a ``chunk_size`` window with ``chunk_overlap`` shared characters.

        The right edge snaps back to the last space when that keeps at least
        70% of the window.  With *drop_short*, windows under
        ``min_chunk_size`` are discarded except the final one.
        """
        pieces: list[str] = []
        length = len(text)
        start = 0
        while start < length:
            end = min(start + self._chunk_size, length)
            if end < length:
                snap = text.rfind(" ", start, end)
                if snap > start + self._chunk_size * _SNAP_RATIO:
                    end = snap

            window = text[start:end]
            piece = window.strip()
            is_final = end >= length
            if piece and (not drop_short or is_final or len(piece) >= self._min_chunk_size):
                pieces.append(piece)
            if is_final:
                break
            start += max(1, len(window) - self._chunk_overlap)
        return pieces

    # ------------------------------------------------------------------
    # Chunk construction and refinement passes
    # ------------------------------------------------------------------

    @staticmethod
    def _build_chunk(draft: _Draft, index: int, book: BookMetadata) -> Chunk:
        chunk_id = make_chunk_id(book.book, index, draft.text)
        metadata = ChunkMetadata(
            book=book.book,
            title=book.title,
            subject=book.subject,
            chapter=draft.chapter,
            section=draft.section,
            chunk_id=chunk_id,
            chunk_index=index,
            content_type=determine_content_type(draft.text, detect_math(draft.text)),
            keywords=extract_keywords(draft.text),
        )
        return Chunk(id=chunk_id, text=draft.text, metadata=metadata)

    @staticmethod
    def _record_semantic_boundaries(chunks: list[Chunk]) -> int:
        """Log transition-marker split candidates; chunks are left intact."""
        total = 0
        for chunk in chunks:
            boundaries = find_semantic_boundaries(chunk.text, _SEMANTIC_BOUNDARY_CONFIDENCE)
            if boundaries:
                total += len(boundaries)
                logger.debug(
                    "semantic_boundaries_detected",
                    chunk_id=chunk.id,
                    count=len(boundaries),
                    positions=[b.position for b in boundaries],
                )
        return total

    @staticmethod
    def _enhance_mathematical(chunks: list[Chunk]) -> list[Chunk]:
        enhanced: list[Chunk] = []
        for chunk in chunks:
            math = detect_math(chunk.text)
            if not math.detected:
                enhanced.append(chunk)
                continue
            metadata = chunk.metadata.model_copy(
                update={
                    "content_type": ContentType.FORMULA,
                    "keywords": merge_keywords(chunk.metadata.keywords, math.keywords),
                }
            )
            enhanced.append(chunk.model_copy(update={"metadata": metadata}))
        return enhanced

    def _resize_dense(self, chunks: list[Chunk]) -> list[Chunk]:
        """Split long, lexically dense chunks in two at the middle sentence.

        Children inherit the parent's metadata with ``_1`` / ``_2`` id
        suffixes.  A split that would leave a half under ``min_chunk_size``
        is skipped.
        """
        resized: list[Chunk] = []
        for chunk in chunks:
            if (
                len(chunk.text) <= self._chunk_size * _RESIZE_LENGTH_RATIO
                or content_density(chunk.text) <= _RESIZE_DENSITY_THRESHOLD
            ):
                resized.append(chunk)
                continue

            halves = split_at_midpoint_sentence(chunk.text)
            if halves is None or min(len(h) for h in halves) < self._min_chunk_size:
                resized.append(chunk)
                continue

            logger.debug("dense_chunk_split", chunk_id=chunk.id, length=len(chunk.text))
            for suffix, half in zip(("_1", "_2"), halves):
                child_id = f"{chunk.id}{suffix}"
                resized.append(
                    Chunk(
                        id=child_id,
                        text=half,
                        metadata=chunk.metadata.model_copy(update={"chunk_id": child_id}),
                    )
                )
        return resized

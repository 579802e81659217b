"""Chapter / section structure detection for extracted textbook text.

# ─── HOW DETECTION WORKS ───────────────────────────────────────────────
#
# The text is scanned line by line.  Each short, non-blank line that is not
# front/back-matter boilerplate is offered to the HeadingClassifier:
#
#   "Chapter 2: Osmosis"          → chapter 2 "Osmosis"       (0.9)
#   "2.1 Passive Transport"       → section 2.1               (0.9)
#   "THE CHEMICAL LEVEL OF ..."   → chapter, ALL CAPS         (0.3)
#
# A chapter closes the previous chapter's span; a section is attached to
# whichever chapter is open ("Unknown" before the first one).  The mean
# confidence of all accepted headings becomes ``structure_quality``, the
# single number the chunker uses to pick its strategy.
#
# Detection never raises.  A document with no recognisable headings simply
# comes back with quality 0 and is chunked with the fallback strategy.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import re

import structlog

from textbook_rag.models.structure import Chapter, Section, StructureResult
from textbook_rag.services.ingestion.heading_rules import HeadingClassifier, HeadingKind

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MAX_CHAPTERS = 50
_DEFAULT_FALLBACK_THRESHOLD = 0.3

_ROMAN_RE = re.compile(r"^[IVXLCDM]+$", re.IGNORECASE)
_ROMAN_VALUES = {"I": 1, "V": 5, "X": 10, "L": 50, "C": 100, "D": 500, "M": 1000}
_INT_RE = re.compile(r"\d+")


def _roman_to_int(numeral: str) -> int:
    total = 0
    previous = 0
    for char in reversed(numeral.upper()):
        value = _ROMAN_VALUES[char]
        if value < previous:
            total -= value
        else:
            total += value
            previous = value
    return total


def chapter_sort_key(number: str) -> int:
    """Numeric value of a chapter number: digits, then roman numerals, else 0."""
    if number.isdigit():
        return int(number)
    if _ROMAN_RE.match(number):
        return _roman_to_int(number)
    return 0


def section_sort_key(section: Section) -> tuple[str, tuple[int, ...]]:
    """Sort key ``(parent chapter title, dotted number as ints)``."""
    return (
        section.parent_chapter_title,
        tuple(int(part) for part in _INT_RE.findall(section.number)),
    )


class StructureDetector:
    """Infers chapters and sections from raw document text.

    Parameters
    ----------
    classifier:
        Heading classifier; the default rule tables are used when omitted.
    max_chapters:
        Upper bound on returned chapters.  Documents over the bound keep
        their highest-confidence chapters, in document order.
    fallback_threshold:
        ``used_fallback`` is set when quality is at or below this value.
    """

    def __init__(
        self,
        classifier: HeadingClassifier | None = None,
        max_chapters: int = _DEFAULT_MAX_CHAPTERS,
        fallback_threshold: float = _DEFAULT_FALLBACK_THRESHOLD,
    ) -> None:
        self._classifier = classifier or HeadingClassifier()
        self._max_chapters = max_chapters
        self._fallback_threshold = fallback_threshold

    @property
    def classifier(self) -> HeadingClassifier:
        return self._classifier

    def detect_structure(self, text: str) -> StructureResult:
        """Detect chapters and sections in *text*.

        Returns
        -------
        StructureResult
            Chapters sorted by numeric number, sections sorted by
            ``(parent chapter, number)``, and the mean heading confidence.
        """
        text = text or ""
        chapters: list[Chapter] = []
        sections: list[Section] = []
        confidences: list[float] = []
        current_chapter: Chapter | None = None

        offset = 0
        for raw_line in text.split("\n"):
            line_start = offset
            offset += len(raw_line) + 1

            match = self._classifier.classify(raw_line)
            if match is None:
                continue

            confidences.append(match.confidence)

            if match.kind == HeadingKind.CHAPTER:
                start = line_start + len(raw_line) - len(raw_line.lstrip())
                if chapters:
                    chapters[-1] = chapters[-1].model_copy(update={"end_position": start - 1})
                current_chapter = Chapter(
                    title=match.title,
                    number=match.number,
                    start_position=start,
                    confidence=match.confidence,
                )
                chapters.append(current_chapter)
                logger.debug(
                    "chapter_detected",
                    title=match.title,
                    number=match.number,
                    rule=match.rule_name,
                    confidence=match.confidence,
                )
            else:
                sections.append(
                    Section(
                        title=match.title,
                        number=match.number,
                        parent_chapter_title=current_chapter.title if current_chapter else "Unknown",
                        level=match.level,
                    )
                )
                logger.debug(
                    "section_detected",
                    title=match.title,
                    number=match.number,
                    rule=match.rule_name,
                    confidence=match.confidence,
                )

        quality = sum(confidences) / len(confidences) if confidences else 0.0

        if len(chapters) > self._max_chapters:
            chapters = self._cap_chapters(chapters, len(text))

        chapters = self._fill_end_positions(chapters, len(text))
        chapters = sorted(chapters, key=lambda c: chapter_sort_key(c.number))
        sections = sorted(sections, key=section_sort_key)

        result = StructureResult(
            chapters=chapters,
            sections=sections,
            structure_quality=quality,
            used_fallback=quality <= self._fallback_threshold,
        )

        logger.info(
            "structure_detection_complete",
            chapters=len(chapters),
            sections=len(sections),
            quality=round(quality, 3),
            used_fallback=result.used_fallback,
        )
        return result

    # ------------------------------------------------------------------
    # Post-processing
    # ------------------------------------------------------------------

    def _cap_chapters(self, chapters: list[Chapter], text_length: int) -> list[Chapter]:
        """Keep the highest-confidence chapters, restored to document order.

        Spans are recomputed over the survivors so each still ends where the
        next kept chapter starts.
        """
        logger.info(
            "chapter_cap_applied",
            detected=len(chapters),
            kept=self._max_chapters,
        )
        ranked = sorted(enumerate(chapters), key=lambda item: item[1].confidence, reverse=True)
        kept = sorted(ranked[: self._max_chapters], key=lambda item: item[0])
        survivors = [chapter.model_copy(update={"end_position": None}) for _, chapter in kept]
        return self._fill_end_positions(survivors, text_length)

    @staticmethod
    def _fill_end_positions(chapters: list[Chapter], text_length: int) -> list[Chapter]:
        """Fill missing ends from the next chapter in document order; the last ends at *text_length*."""
        filled: list[Chapter] = []
        for index, chapter in enumerate(chapters):
            if chapter.end_position is None:
                if index + 1 < len(chapters):
                    end = chapters[index + 1].start_position - 1
                else:
                    end = text_length
                chapter = chapter.model_copy(update={"end_position": end})
            filled.append(chapter)
        return filled

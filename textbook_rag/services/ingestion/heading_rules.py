"""Data-driven heading rules for chapter and section detection.

A heading rule is a compiled regex with named groups ``number`` and/or
``title``, a fixed confidence, and the kind of heading it recognises.
Rules are scanned in descending confidence order (ties keep table order)
and the first rule whose match also passes validation wins.

The same :class:`HeadingClassifier` is used by the structure detector
(whole-document scan) and by the chunker (first line of each paragraph),
so both agree on what a boundary is.

To teach the detector a new heading style, pass extra rules to the
classifier rather than editing control flow::

    classifier = HeadingClassifier(extra_rules=[
        HeadingRule(
            name="lesson",
            kind=HeadingKind.CHAPTER,
            pattern=re.compile(r"^Lesson\\s+(?P<number>\\d+)(?:\\s*:\\s*(?P<title>.+))?$"),
            confidence=0.85,
        ),
    ])
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from textbook_rag.config.heading_vocabulary import (
    CHAPTER_VOCABULARY,
    DANGLING_END_WORDS,
    LEADING_FRAGMENT_WORDS,
    PROSE_MARKER_WORDS,
    SECTION_VOCABULARY,
    contains_metadata_indicator,
    contains_vocabulary_word,
)

# Lines longer than this are prose, never headings.
MAX_HEADING_LINE_LENGTH = 150


class HeadingKind(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    CHAPTER = "chapter"
    SECTION = "section"


@dataclass(frozen=True)
class HeadingRule:
    """One entry of a heading rule table.

    Attributes
    ----------
    pattern:
        Compiled regex with optional named groups ``number`` and ``title``.
    descriptive:
        The rule matches unnumbered prose-like titles; sections matched by
        it must pass the topic-vocabulary gate, chapters get their number
        from any digits in the title.
    all_caps:
        The rule matches shouted lines and applies the ALL CAPS checks.
    """

    name: str
    kind: HeadingKind
    pattern: re.Pattern[str]
    confidence: float
    level: int = 1
    descriptive: bool = False
    all_caps: bool = False


@dataclass(frozen=True)
class HeadingMatch:
    """A line accepted as a heading."""

    kind: HeadingKind
    title: str
    number: str
    confidence: float
    level: int
    rule_name: str


# ---------------------------------------------------------------------------
# Metadata exclusions: front/back matter and boilerplate that look like
# headings but never start a chapter or section.
# ---------------------------------------------------------------------------

_EXCLUDED_PHRASES: tuple[str, ...] = (
    # front / back matter
    "author", "authors", "contributing author", "contributing authors",
    "senior contributing author", "senior contributing authors",
    "acknowledgment", "acknowledgments", "acknowledgement", "acknowledgements",
    "preface", "foreword", "introduction", "table of contents", "contents",
    "index", "appendix", "bibliography", "references", "glossary",
    "about the author", "about the authors", "about this book", "copyright",
    "credits", "publisher", "revision history", "learning objectives",
    "answer key", "solutions", "end of chapter", "review questions",
    "practice exercises", "summary", "key terms", "study guide",
    "further reading", "chapter review", "exercises", "problems", "quiz",
    "test yourself", "self check", "checkpoint", "checkpoints", "resources",
    "additional resources", "web resources", "online resources",
    "suggested reading", "suggested readings", "recommended reading",
    "recommended readings", "notes", "chapter notes",
    "critical thinking questions", "interactive link questions",
    # publisher and organisational names
    "openstax", "rice university", "rice", "houston", "philanthropic support",
    "creative commons", "media", "university", "college", "department",
    "faculty", "staff", "office", "board", "committee", "foundation",
    "program", "initiative", "project", "team", "group", "center",
    "institute", "laboratory", "library", "press", "publication", "edition",
    "version", "volume", "part", "section", "unit", "module", "lesson",
    "how to", "what is", "when to", "where to", "why to",
    "the william and flora hewlett foundation",
    "william and flora hewlett foundation", "hewlett foundation",
    "the bill and stephanie sick fund", "bill and stephanie sick fund",
    "sick fund", "gates foundation", "bill and melinda gates foundation",
    "bill & melinda gates foundation", "carnegie foundation",
    "ford foundation", "rockefeller foundation",
    "national science foundation", "educational foundation",
    "laura and john arnold foundation", "arnold foundation",
    "arthur and carlyse ciocca charitable foundation",
    "ciocca charitable foundation", "girard foundation", "maxfield foundation",
    "the maxfield foundation", "open society foundations",
    "the open society foundations", "michelson 20 mm foundation",
    "chan zuckerberg initiative", "arnold ventures", "digital promise",
    "google inc", "chegg inc", "donor support", "generous support",
    "grateful for", "thanks to",
    # generic fragments
    "the body", "the cell", "the process", "the system", "the structure",
    "the function", "the surface", "the secretion",
    "which structure is associated with the", "which of the following",
    "what is the", "how does the", "where is the", "when does the",
    "why does the",
)

# Prefix patterns: question stems from end-of-chapter review sets.
_EXCLUDED_PREFIXES: tuple[str, ...] = (
    r"^which\s+part\s+of\s+the\s+\w+(?:\s+\w+)?\s+is\b",
    r"^figure\s+\d+(?:\.\d+)*\b",
    r"^table\s+\d+(?:\.\d+)*\b",
)


def _phrase_pattern(phrase: str) -> re.Pattern[str]:
    return re.compile(
        r"^" + r"\s+".join(re.escape(word) for word in phrase.split()) + r"$",
        re.IGNORECASE,
    )


METADATA_EXCLUSIONS: tuple[re.Pattern[str], ...] = tuple(
    [_phrase_pattern(p) for p in _EXCLUDED_PHRASES]
    + [re.compile(p, re.IGNORECASE) for p in _EXCLUDED_PREFIXES]
)


# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------

CHAPTER_RULES: tuple[HeadingRule, ...] = (
    HeadingRule(
        name="chapter_number",
        kind=HeadingKind.CHAPTER,
        pattern=re.compile(
            r"^(?:Chapter|Ch\.|Ch(?=\s))\s*(?P<number>\d+)"
            r"(?:(?:\s*[:.\-]\s*|\s+)(?P<title>.+))?$",
            re.IGNORECASE,
        ),
        confidence=0.9,
    ),
    HeadingRule(
        name="numbered_title",
        kind=HeadingKind.CHAPTER,
        # Colon or dash only: "1. Title" and "1.1 Title" are section forms.
        pattern=re.compile(r"^(?P<number>\d+)\s*[:\-]\s*(?P<title>[A-Za-z].*)$"),
        confidence=0.8,
    ),
    HeadingRule(
        name="unit",
        kind=HeadingKind.CHAPTER,
        pattern=re.compile(
            r"^Unit\s+(?P<number>\d+)(?:\s*[:.\-]\s*(?P<title>.+))?$", re.IGNORECASE
        ),
        confidence=0.8,
    ),
    HeadingRule(
        name="part",
        kind=HeadingKind.CHAPTER,
        pattern=re.compile(
            r"^Part\s+(?P<number>[IVX]+|\d+)(?:\s*[:.\-]\s*(?P<title>.+))?$", re.IGNORECASE
        ),
        confidence=0.8,
    ),
    HeadingRule(
        name="descriptive_the",
        kind=HeadingKind.CHAPTER,
        pattern=re.compile(
            r"^(?P<title>The\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*"
            r"(?:\s+Level\s+of\s+Organization)?)\s*$",
            re.IGNORECASE,
        ),
        confidence=0.95,
        descriptive=True,
    ),
    HeadingRule(
        name="level_of_organization",
        kind=HeadingKind.CHAPTER,
        pattern=re.compile(
            r"^(?P<title>[A-Z][a-z]+(?:\s+[a-z]+)*\s+Level\s+of\s+Organization)\s*$",
            re.IGNORECASE,
        ),
        confidence=0.9,
        descriptive=True,
    ),
    HeadingRule(
        name="title_case",
        kind=HeadingKind.CHAPTER,
        pattern=re.compile(r"^(?P<title>[A-Z][a-z]+(?:\s+[A-Z][a-z]+){1,4})\s*$"),
        confidence=0.7,
        descriptive=True,
    ),
    HeadingRule(
        name="all_caps",
        kind=HeadingKind.CHAPTER,
        pattern=re.compile(r"^(?P<title>[A-Z][A-Z\s]+)$"),
        confidence=0.3,
        descriptive=True,
        all_caps=True,
    ),
)

SECTION_RULES: tuple[HeadingRule, ...] = (
    HeadingRule(
        name="dotted",
        kind=HeadingKind.SECTION,
        pattern=re.compile(r"^(?P<number>\d+\.\d+)(?!\.\d)\s*[:.\-]?\s*(?P<title>[A-Za-z].*)$"),
        confidence=0.9,
    ),
    HeadingRule(
        name="section_keyword",
        kind=HeadingKind.SECTION,
        pattern=re.compile(
            r"^Section\s+(?P<number>\d+\.\d+)(?:\s*[:.\-]\s*(?P<title>.+))?$", re.IGNORECASE
        ),
        confidence=0.9,
    ),
    HeadingRule(
        name="subsection",
        kind=HeadingKind.SECTION,
        pattern=re.compile(r"^(?P<number>\d+\.\d+\.\d+)\s*[:.\-]?\s*(?P<title>[A-Za-z].*)$"),
        confidence=0.8,
        level=2,
    ),
    HeadingRule(
        name="numbered_item",
        kind=HeadingKind.SECTION,
        pattern=re.compile(r"^(?P<number>\d+)\.\s*(?P<title>[A-Za-z].*)$"),
        confidence=0.6,
    ),
    HeadingRule(
        name="title_case_and",
        kind=HeadingKind.SECTION,
        pattern=re.compile(
            r"^(?P<title>[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*"
            r"(?:\s+and\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)?)$"
        ),
        confidence=0.7,
        descriptive=True,
    ),
    HeadingRule(
        name="of_heading",
        kind=HeadingKind.SECTION,
        pattern=re.compile(
            r"^(?P<title>[A-Z][a-z]+(?:\s+[a-z]+)*(?:\s+of\s+[A-Z][a-z]+(?:\s+[a-z]+)*)?)$"
        ),
        confidence=0.7,
        descriptive=True,
    ),
    HeadingRule(
        name="mixed_case",
        kind=HeadingKind.SECTION,
        pattern=re.compile(
            r"^(?P<title>[A-Z][a-z]+(?:\s+[a-z]+)*(?:\s+[A-Z][a-z]+(?:\s+[a-z]+)*)?)$"
        ),
        confidence=0.6,
        descriptive=True,
    ),
)

_DIGITS_RE = re.compile(r"\b(\d+)\b")
_WORD_SPLIT_RE = re.compile(r"\s+")


def _sorted_rules(rules: Iterable[HeadingRule]) -> tuple[HeadingRule, ...]:
    # sorted() is stable, so equal confidences keep table order.
    return tuple(sorted(rules, key=lambda r: r.confidence, reverse=True))


def _number_from_title(title: str) -> str:
    match = _DIGITS_RE.search(title)
    return match.group(1) if match else ""


class HeadingClassifier:
    """Classifies single lines as chapter headings, section headings or neither.

    Parameters
    ----------
    chapter_rules, section_rules:
        Replacement rule tables; the module defaults are used when omitted.
    extra_rules:
        Additional rules merged into the table matching their ``kind``.
    extra_exclusions:
        Additional regex strings (matched case-insensitively) for lines
        that must never be treated as headings.
    max_line_length:
        Lines longer than this are never headings.
    """

    def __init__(
        self,
        chapter_rules: Iterable[HeadingRule] | None = None,
        section_rules: Iterable[HeadingRule] | None = None,
        extra_rules: Iterable[HeadingRule] = (),
        extra_exclusions: Iterable[str] = (),
        max_line_length: int = MAX_HEADING_LINE_LENGTH,
    ) -> None:
        chapters = list(CHAPTER_RULES if chapter_rules is None else chapter_rules)
        sections = list(SECTION_RULES if section_rules is None else section_rules)
        for rule in extra_rules:
            (chapters if rule.kind == HeadingKind.CHAPTER else sections).append(rule)

        self._chapter_rules = _sorted_rules(chapters)
        self._section_rules = _sorted_rules(sections)
        self._exclusions = METADATA_EXCLUSIONS + tuple(
            re.compile(p, re.IGNORECASE) for p in extra_exclusions
        )
        self._max_line_length = max_line_length

    @property
    def chapter_rules(self) -> tuple[HeadingRule, ...]:
        return self._chapter_rules

    @property
    def section_rules(self) -> tuple[HeadingRule, ...]:
        return self._section_rules

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def classify(self, line: str) -> HeadingMatch | None:
        """Return the heading *line* represents, chapter rules first.

        Blank lines, over-long lines and metadata lines are never headings.
        """
        candidate = line.strip()
        if not candidate or len(candidate) > self._max_line_length:
            return None
        if self.is_metadata_line(candidate):
            return None
        return self.match_chapter(candidate) or self.match_section(candidate)

    def is_metadata_line(self, line: str) -> bool:
        """Return True when *line* is front/back matter or publisher boilerplate."""
        candidate = line.strip()
        return any(pattern.search(candidate) for pattern in self._exclusions)

    def match_chapter(self, line: str) -> HeadingMatch | None:
        """Match *line* (already stripped) against the chapter rules."""
        for rule in self._chapter_rules:
            match = rule.pattern.match(line)
            if match is None:
                continue

            groups = match.groupdict()
            title = (groups.get("title") or "").strip()
            number = (groups.get("number") or "").strip()

            if not self._valid_chapter(rule, line, title):
                continue

            if not number:
                number = _number_from_title(title) or "0"
            if not title:
                title = f"Chapter {number}"

            return HeadingMatch(
                kind=HeadingKind.CHAPTER,
                title=title,
                number=number,
                confidence=rule.confidence,
                level=rule.level,
                rule_name=rule.name,
            )
        return None

    def match_section(self, line: str) -> HeadingMatch | None:
        """Match *line* (already stripped) against the section rules."""
        if len(line) < 3 or len(line) > 100:
            return None

        words = _WORD_SPLIT_RE.split(line)
        if len(words) > 8 and any(w.lower() in PROSE_MARKER_WORDS for w in words):
            return None

        for rule in self._section_rules:
            match = rule.pattern.match(line)
            if match is None:
                continue

            groups = match.groupdict()
            title = (groups.get("title") or "").strip()
            number = (groups.get("number") or "").strip()

            if not number and not self._valid_descriptive_section(title):
                continue

            return HeadingMatch(
                kind=HeadingKind.SECTION,
                title=title or f"Section {number}",
                number=number or "0",
                confidence=rule.confidence,
                level=rule.level,
                rule_name=rule.name,
            )
        return None

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def _valid_chapter(rule: HeadingRule, line: str, title: str) -> bool:
        if len(line) < 8 or len(line) > 100:
            return False

        if rule.all_caps:
            words = title.split()
            if not any(len(word) >= 4 for word in words):
                return False
            if contains_metadata_indicator(title):
                return False
            if not contains_vocabulary_word(title, CHAPTER_VOCABULARY):
                return False

        if not title:
            # "Chapter 7" with no title is accepted as is.
            return True

        words = title.split()
        if words[0].lower() in LEADING_FRAGMENT_WORDS and len(words) > 1 and len(title) < 30:
            return False
        if len(words) > 1 and words[-1].lower() in DANGLING_END_WORDS:
            return False
        if title[0].islower() and len(words) > 5:
            return False
        return True

    @staticmethod
    def _valid_descriptive_section(title: str) -> bool:
        if not title or not (title[0].isupper() and len(title) > 1 and title[1].islower()):
            return False
        if not contains_vocabulary_word(title, SECTION_VOCABULARY):
            return False
        if len(title.split(".")) > 2:
            return False
        words = title.split()
        if len(words) > 1 and words[-1].lower() in DANGLING_END_WORDS:
            return False
        return True

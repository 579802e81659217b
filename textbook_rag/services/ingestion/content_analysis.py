"""Pure text-analysis helpers used by the content chunker.

Everything here is a side-effect-free function over one passage of text:
sentence splitting, math detection, content-type sniffing, keyword
extraction, lexical density and discourse-transition detection.
"""

from __future__ import annotations

import hashlib
import re
from collections import Counter
from dataclasses import dataclass

from textbook_rag.config.heading_vocabulary import (
    KEYWORD_STOP_WORDS,
    LATEX_COMMAND_KEYWORDS,
    MATH_KEYWORDS,
    TRANSITION_MARKERS,
)
from textbook_rag.models.rag import ContentType

# Common abbreviations that should NOT trigger a sentence split.
# "e.g. osmosis" should remain one sentence, not split at the period.
_ABBREVIATIONS = frozenset(
    {
        "Dr",
        "Mr",
        "Mrs",
        "Ms",
        "Prof",
        "Fig",
        "Eq",
        "Eqs",
        "Ch",
        "Sec",
        "Vol",
        "No",
        "vs",
        "etc",
        "approx",
        "e.g",
        "i.e",
        "al",
        "ca",
    }
)

_ABBREVIATION_RE = re.compile(
    r"\b(" + "|".join(re.escape(a) for a in sorted(_ABBREVIATIONS, key=len, reverse=True)) + r")\."
)
_SENTENCE_END_RE = re.compile(r"[.!?](?:\s|$)")
_MATH_SYMBOL_RE = re.compile(r"[∫∑∏√≤≥≠±∓∞πα-ωΑ-Ω]")
_SIMPLE_EQUATION_RE = re.compile(r"\b\d+\s*[+\-*/=]\s*\d+\b")
_TECHNICAL_WORD_RE = re.compile(r"^[A-Z][a-z]")
_ALPHA_WORD_RE = re.compile(r"^[a-z]+$")
_EDGE_PUNCTUATION = ".,;:!?()[]{}\"'“”‘’"

_TRANSITION_RES: tuple[tuple[str, re.Pattern[str]], ...] = tuple(
    (marker, re.compile(r"\b" + r"\s+".join(marker.split()) + r"\b", re.IGNORECASE))
    for marker in TRANSITION_MARKERS
)


# ---------------------------------------------------------------------------
# Sentences
# ---------------------------------------------------------------------------

def _mask_abbreviations(text: str) -> str:
    # '.' -> '\x00' keeps indices aligned with the original text.
    return _ABBREVIATION_RE.sub(lambda m: m.group(1) + "\x00", text)


def split_sentences(text: str) -> list[str]:
    """Split *text* at sentence boundaries while respecting abbreviations.

    Handles ``.``, ``!``, ``?`` followed by whitespace or end-of-string.
    Periods after known abbreviations (Fig., e.g., etc.) are masked with
    ``\\x00`` first, which keeps indices aligned with the original text.
    """
    masked = _mask_abbreviations(text)

    sentences: list[str] = []
    last = 0
    for match in _SENTENCE_END_RE.finditer(masked):
        end = match.end()
        sentence = text[last:end].strip()
        if sentence:
            sentences.append(sentence)
        last = end

    remainder = text[last:].strip()
    if remainder:
        sentences.append(remainder)

    return sentences if sentences else [text]


def split_at_midpoint_sentence(text: str) -> tuple[str, str] | None:
    """Split *text* at the sentence boundary closest to its midpoint.

    Both halves are slices of the original text, so paragraph breaks
    survive.  Returns ``None`` when the text is a single sentence.
    """
    masked = _mask_abbreviations(text)
    cuts = [
        match.end()
        for match in _SENTENCE_END_RE.finditer(masked)
        if text[match.end():].strip()
    ]
    if not cuts:
        return None

    midpoint = len(text) / 2
    cut = min(cuts, key=lambda c: abs(c - midpoint))
    return text[:cut].strip(), text[cut:].strip()


# ---------------------------------------------------------------------------
# Math content
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MathAnalysis:
    """Whether a passage reads as mathematical, and the math keywords it names."""

    detected: bool
    keywords: tuple[str, ...] = ()


def detect_math(text: str) -> MathAnalysis:
    """Detect mathematical content in *text*.

    A passage is mathematical when it names a math keyword, uses a LaTeX
    command or ``$$`` display math, contains a math Unicode symbol, or has
    a ``digit operator digit`` expression.  LaTeX commands contribute the
    keyword they imply (``\\int`` → ``integral``).
    """
    lowered = text.lower()
    keywords: list[str] = [kw for kw in MATH_KEYWORDS if kw in lowered]

    has_latex = "$$" in text
    for command, keyword in LATEX_COMMAND_KEYWORDS.items():
        if command in text:
            has_latex = True
            if keyword not in keywords:
                keywords.append(keyword)

    detected = (
        bool(keywords)
        or has_latex
        or _MATH_SYMBOL_RE.search(text) is not None
        or _SIMPLE_EQUATION_RE.search(text) is not None
    )
    return MathAnalysis(detected=detected, keywords=tuple(keywords))


# ---------------------------------------------------------------------------
# Classification and keywords
# ---------------------------------------------------------------------------

def determine_content_type(text: str, math: MathAnalysis | None = None) -> ContentType:
    """Classify a passage by keyword sniffing; formula takes precedence.

    *math* is the passage's :func:`detect_math` result, or ``None`` when
    math detection is disabled.
    """
    if math is not None and math.detected:
        return ContentType.FORMULA

    lowered = text.lower()
    if "definition" in lowered or "define" in lowered:
        return ContentType.DEFINITION
    if "example" in lowered or "for instance" in lowered:
        return ContentType.EXAMPLE
    if "exercise" in lowered or "problem" in lowered:
        return ContentType.EXERCISE
    return ContentType.TEXT


def extract_keywords(text: str, limit: int = 10) -> list[str]:
    """Return the *limit* most frequent content words of *text*.

    Words are lowercased and stripped of edge punctuation; only purely
    alphabetic words longer than four characters that are not stop words
    count.  Ties keep first-occurrence order.
    """
    counts: Counter[str] = Counter()
    for raw in text.lower().split():
        word = raw.strip(_EDGE_PUNCTUATION)
        if len(word) > 4 and _ALPHA_WORD_RE.match(word) and word not in KEYWORD_STOP_WORDS:
            counts[word] += 1
    return [word for word, _ in counts.most_common(limit)]


def merge_keywords(keywords: list[str], extra: tuple[str, ...] | list[str]) -> list[str]:
    """Append *extra* keywords not already present, keeping order."""
    merged = list(keywords)
    for keyword in extra:
        if keyword not in merged:
            merged.append(keyword)
    return merged


def content_density(text: str) -> float:
    """Lexical density in ``[0, 1]``.

    Mean of the unique-word ratio and the ratio of technical-looking words
    (capitalised, or longer than eight characters).
    """
    words = text.split()
    if not words:
        return 0.0
    unique_ratio = len({w.lower() for w in words}) / len(words)
    technical = sum(1 for w in words if _TECHNICAL_WORD_RE.match(w) or len(w) > 8)
    return (unique_ratio + technical / len(words)) / 2


# ---------------------------------------------------------------------------
# Discourse transitions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SemanticBoundary:
    """A candidate split point before a sentence that opens with a transition."""

    position: int
    confidence: float
    marker: str


def find_semantic_boundaries(text: str, confidence: float = 0.7) -> list[SemanticBoundary]:
    """Return candidate split points before sentences containing a transition marker.

    The first sentence never yields a boundary.  Positions are character
    offsets into *text* where the marked sentence starts.
    """
    boundaries: list[SemanticBoundary] = []
    search_from = 0
    for index, sentence in enumerate(split_sentences(text)):
        position = text.find(sentence, search_from)
        if position < 0:
            position = search_from
        search_from = position + len(sentence)
        if index == 0:
            continue
        for marker, pattern in _TRANSITION_RES:
            if pattern.search(sentence):
                boundaries.append(
                    SemanticBoundary(position=position, confidence=confidence, marker=marker)
                )
                break
    return boundaries


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------

def make_chunk_id(book: str, index: int, text: str) -> str:
    """Deterministic chunk id ``{book}_{index}_{md5(text)[:8]}``."""
    digest = hashlib.md5(text.encode("utf-8")).hexdigest()[:8]  # noqa: S324
    return f"{book}_{index}_{digest}"

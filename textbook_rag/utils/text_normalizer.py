"""Text cleanup utilities for extracted textbook text.

This module handles two concerns:

1. **Extraction cleanup** -- PDF text layers come back with ragged
   whitespace, running page numbers, URLs in footers and words hyphenated
   across line breaks.  :func:`clean_extracted_text` normalizes all of that
   while keeping blank-line paragraph breaks intact, because the chunker
   and structure detector both rely on them.

2. **Heading matching** -- :func:`fuzzy_match` compares a heading seen
   while chunking against the titles found by the structure detector, so
   that reflowed or slightly mangled headings ("The Cellular Level of
   Organisation") still resolve to the detected chapter.
"""

import re

from rapidfuzz import fuzz, process

# ----------------------------------------------------------------------
# Extraction cleanup
# ----------------------------------------------------------------------

_HYPHENATED_BREAK = re.compile(r"(\w)-\n(\w)")
_HORIZONTAL_SPACE = re.compile(r"[ \t ]+")
_BLANK_RUN = re.compile(r"\n\s*\n")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")

_PAGE_NUMBER_LINE = re.compile(r"^\s*\d+\s*$", re.MULTILINE)
_PAGE_OF_LINE = re.compile(r"^\s*Page\s+\d+\s*(?:of\s+\d+)?\s*$", re.MULTILINE | re.IGNORECASE)
_BARE_SECTION_NUMBER_LINE = re.compile(r"^\s*\d+\.\d+\s*$", re.MULTILINE)

_HTTP_URL = re.compile(r"https?://\S+")
_WWW_URL = re.compile(r"www\.\S+")
_EMAIL = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

# Applied in order; each fixes a glyph-run that PDF text layers emit
# without the separating space.
_SPACING_CORRECTIONS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"([a-z])([A-Z][a-z])"), r"\1 \2"),
    (re.compile(r"([.!?])([A-Z])"), r"\1 \2"),
    (re.compile(r"\.([a-z])"), r". \1"),
    (re.compile(r"([a-zA-Z])([+*/=])"), r"\1 \2"),
    (re.compile(r"([+*/=])([a-zA-Z])"), r"\1 \2"),
]


def normalize_whitespace(text: str) -> str:
    """Collapse horizontal whitespace and cap blank-line runs at one.

    Paragraph breaks survive as exactly one blank line; every line is
    stripped.
    """
    normalized = _HORIZONTAL_SPACE.sub(" ", text)
    normalized = _BLANK_RUN.sub("\n\n", normalized)
    normalized = _EXCESS_NEWLINES.sub("\n\n", normalized)
    normalized = "\n".join(line.strip() for line in normalized.split("\n"))
    return normalized.strip()


def remove_page_numbers(text: str) -> str:
    """Drop lines that hold only a page number, ``Page N of M`` or a bare ``N.N``."""
    cleaned = _PAGE_NUMBER_LINE.sub("", text)
    cleaned = _PAGE_OF_LINE.sub("", cleaned)
    return _BARE_SECTION_NUMBER_LINE.sub("", cleaned)


def remove_urls(text: str) -> str:
    """Strip http(s) URLs, ``www.`` hosts and e-mail addresses."""
    cleaned = _HTTP_URL.sub("", text)
    cleaned = _WWW_URL.sub("", cleaned)
    return _EMAIL.sub("", cleaned)


def correct_spacing(text: str) -> str:
    """Re-insert spaces that PDF text layers drop between glyph runs.

    ``"cellMembrane"`` becomes ``"cell Membrane"`` and ``"end.Next"`` becomes
    ``"end. Next"``.  Opt-in because it also splits legitimate camel case.
    """
    corrected = text
    for pattern, replacement in _SPACING_CORRECTIONS:
        corrected = pattern.sub(replacement, corrected)
    return corrected


def clean_extracted_text(text: str, fix_spacing: bool = False) -> str:
    """Run the full cleanup chain on raw extracted text.

    Args:
        text: Raw text as returned by the extraction backend.
        fix_spacing: Also apply :func:`correct_spacing`.

    Returns:
        Cleaned text with blank-line paragraph breaks preserved.
    """
    if not text:
        return ""

    cleaned = _HYPHENATED_BREAK.sub(r"\1\2", text)
    if fix_spacing:
        cleaned = correct_spacing(cleaned)
    cleaned = remove_page_numbers(cleaned)
    cleaned = remove_urls(cleaned)
    return normalize_whitespace(cleaned)


# ----------------------------------------------------------------------
# Heading matching
# ----------------------------------------------------------------------


def fuzzy_match(
    query: str,
    candidates: list[str],
    threshold: float = 0.9,
) -> tuple[str, float] | None:
    """Find the best fuzzy match for *query* among *candidates*.

    Uses rapidfuzz ``token_sort_ratio`` so word-order and case differences
    between a heading line and a detected title do not matter.

    Args:
        query: The heading text to match.
        candidates: Known titles.
        threshold: Minimum similarity in ``0.0``-``1.0``.

    Returns:
        ``(best_match, score)`` with score in ``0.0``-``1.0``, or ``None``
        when nothing reaches *threshold*.
    """
    if not query or not candidates:
        return None

    result = process.extractOne(
        query.lower(),
        [c.lower() for c in candidates],
        scorer=fuzz.token_sort_ratio,
    )
    if result is None:
        return None

    _, score, index = result
    normalized_score = score / 100.0
    if normalized_score < threshold:
        return None

    return candidates[index], normalized_score

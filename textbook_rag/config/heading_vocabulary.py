"""Static word lists used to classify textbook headings and passages.

# ─── PURPOSE ───────────────────────────────────────────────────────────
#
# Heading detection is pattern matching plus a vocabulary gate: a line
# shaped like a title ("Chemical Bonds") is only accepted as a section
# heading when it mentions a topic-domain word, and an ALL CAPS line is
# only accepted as a chapter when it mentions a chapter-like subject.
# Without these gates running headers, figure captions and sentence
# fragments in the PDF text layer all read as headings.
#
# All tables are frozensets built once at import time; every lookup is a
# set-membership test per word.  Word forms are normalised by
# :func:`word_forms` so plurals ("molecules", "properties") hit the
# singular entry.
#
# All functions are **pure** (no side effects, no I/O).
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import re


# ═════════════════════════════════════════════════════════════════════════
# 1. CHAPTER VOCABULARY
# ═════════════════════════════════════════════════════════════════════════
# Subjects and structural nouns that real chapter titles contain.  Only
# consulted for ALL CAPS candidates, which otherwise match any shouted
# running header.

CHAPTER_VOCABULARY: frozenset[str] = frozenset({
    # structural / organising nouns
    "level", "organization", "structure", "function", "process", "system",
    "introduction", "overview", "foundation", "foundations", "principles",
    "basics", "fundamentals", "concepts", "theory", "practice",
    "application", "analysis", "synthesis", "evaluation",
    # life sciences
    "cell", "cellular", "tissue", "organ", "body", "human", "chemical",
    "biological", "physical", "biology", "chemistry", "physics", "anatomy",
    "physiology", "evolution", "genetics", "ecology", "metabolism",
    "nutrition", "immunity", "reproduction", "development",
    # mathematics
    "algebra", "equation", "graph", "polynomial", "exponential",
    "logarithm", "trigonometry", "geometry", "calculus", "statistics",
    "probability", "matrix", "vector", "derivative", "integral", "limit",
    "series", "sequence", "number", "fraction", "ratio",
    # humanities and social sciences
    "philosophy", "ethics", "logic", "metaphysics", "epistemology",
    "history", "culture", "civilization", "society", "politics",
    "economics", "religion", "art", "literature", "writing", "grammar",
    "syntax", "rhetoric", "composition", "essay", "narrative", "poetry",
    "drama", "psychology", "sociology", "government", "market",
})


# Substrings that mark an ALL CAPS line as front/back matter or a
# publisher credit.  Matched as substrings, so "AUTHORS" and "NOTES" are
# covered by "AUTHOR" and "NOTE".
METADATA_INDICATORS: tuple[str, ...] = (
    "AUTHOR", "CREDIT", "PUBLISHER", "COPYRIGHT", "REVISION", "EXERCISE",
    "REVIEW", "SUMMARY", "INDEX", "APPENDIX", "BIBLIOGRAPHY", "REFERENCE",
    "GLOSSARY", "SOLUTION", "ANSWER", "KEY", "TERM", "QUIZ", "TEST",
    "CHECK", "RESOURCE", "NOTE", "MEDIA", "SUPPORT", "UNIVERSITY",
    "COLLEGE", "RICE", "OPENSTAX", "HOUSTON", "FACULTY", "STAFF", "OFFICE",
    "BOARD", "COMMITTEE", "FOUNDATION", "PROGRAM", "INITIATIVE", "PROJECT",
    "TEAM", "GROUP", "CENTER", "INSTITUTE", "LABORATORY", "LIBRARY",
    "PRESS", "PUBLICATION", "EDITION", "VERSION", "VOLUME", "PART",
    "SECTION", "UNIT", "MODULE", "LESSON", "HOW", "WHAT", "WHEN", "WHERE",
    "WHY", "PHILANTHROPIC", "CREATIVE", "COMMONS",
)


# ═════════════════════════════════════════════════════════════════════════
# 2. SECTION-TOPIC VOCABULARY
# ═════════════════════════════════════════════════════════════════════════
# Unnumbered section headings must contain one of these words.  Grouped by
# field for maintenance; the groups are merged into one set below.

_GENERAL_TOPIC_WORDS = {
    "introduction", "overview", "definition", "property", "properties",
    "characteristic", "type", "classification", "formation", "interaction",
    "relationship", "comparison", "analysis", "synthesis", "evaluation",
    "application", "example", "case", "study", "method", "technique",
    "procedure", "principle", "concept", "theory", "law", "rule", "model",
    "diagram", "figure", "table", "chart", "data", "result", "conclusion",
    "summary", "review", "exercise", "problem", "solution", "answer",
    "key", "term", "glossary", "reference", "bibliography", "index",
    "appendix", "structure", "function", "process", "system", "mechanism",
    "regulation", "control", "development", "change", "cycle", "role",
    "component", "pattern", "measurement", "unit", "scale",
}

_CHEMISTRY_WORDS = {
    "atom", "molecule", "bond", "bonding", "element", "compound",
    "reaction", "energy", "matter", "ion", "electron", "proton", "neutron",
    "isotope", "acid", "base", "salt", "solution", "mixture", "gas",
    "liquid", "solid", "enzyme", "catalyst", "equilibrium", "oxidation",
    "reduction", "polymer", "carbon", "water", "organic", "inorganic",
}

_LIFE_SCIENCE_WORDS = {
    "cell", "membrane", "nucleus", "organelle", "cytoplasm", "protein",
    "lipid", "carbohydrate", "nucleic", "gene", "chromosome", "mitosis",
    "meiosis", "tissue", "organ", "epithelial", "connective", "muscle",
    "muscular", "nervous", "neuron", "brain", "spinal", "cord", "nerve",
    "sensory", "motor", "skeletal", "bone", "joint", "skin", "integumentary",
    "cardiovascular", "heart", "blood", "vessel", "circulation",
    "lymphatic", "immune", "respiratory", "lung", "digestive", "stomach",
    "intestine", "liver", "urinary", "kidney", "endocrine", "hormone",
    "gland", "reproductive", "pregnancy", "embryo", "development",
    "homeostasis", "metabolism", "nutrition", "transport", "diffusion",
    "osmosis", "signal", "receptor", "anatomy", "physiology", "body",
    "organism", "species", "population", "ecosystem", "evolution",
    "selection", "inheritance", "genetics", "photosynthesis",
    "respiration",
}

_MATH_PHYSICS_WORDS = {
    "equation", "formula", "function", "graph", "variable", "constant",
    "expression", "polynomial", "exponent", "exponential", "logarithm",
    "logarithmic", "root", "radical", "inequality", "matrix", "vector",
    "determinant", "derivative", "integral", "limit", "series", "sequence",
    "theorem", "proof", "lemma", "angle", "triangle", "circle", "line",
    "plane", "area", "volume", "probability", "statistic", "distribution",
    "sample", "mean", "variance", "set", "number", "fraction", "ratio",
    "proportion", "rate", "force", "motion", "velocity", "acceleration",
    "momentum", "work", "power", "wave", "light", "sound", "heat",
    "temperature", "pressure", "charge", "current", "field", "circuit",
    "magnetism", "gravity", "orbit",
}

_HUMANITIES_WORDS = {
    "history", "culture", "society", "government", "politics", "economy",
    "market", "trade", "war", "revolution", "empire", "religion",
    "philosophy", "ethics", "argument", "language", "grammar", "sentence",
    "paragraph", "essay", "writing", "reading", "literature", "poetry",
    "narrative", "rhetoric", "source", "evidence", "identity", "behavior",
    "memory", "learning", "perception", "emotion", "personality",
}

SECTION_VOCABULARY: frozenset[str] = frozenset(
    _GENERAL_TOPIC_WORDS
    | _CHEMISTRY_WORDS
    | _LIFE_SCIENCE_WORDS
    | _MATH_PHYSICS_WORDS
    | _HUMANITIES_WORDS
)


# ═════════════════════════════════════════════════════════════════════════
# 3. FUNCTION WORDS
# ═════════════════════════════════════════════════════════════════════════

# A line of more than eight words containing any of these reads as prose,
# not a heading.
PROSE_MARKER_WORDS: frozenset[str] = frozenset({
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
    "by", "is", "are", "was", "were", "be", "been", "being", "have", "has",
    "had", "do", "does", "did", "will", "would", "could", "should", "may",
    "might", "can", "shall", "this", "that", "these", "those", "a", "an",
})

# Chapter titles opening with one of these and shorter than 30 characters
# are question or sentence fragments ("Which structure ...").
LEADING_FRAGMENT_WORDS: frozenset[str] = frozenset({
    "the", "a", "an", "which", "what", "how", "where", "when", "why",
    "that", "this", "these", "those",
})

# Chapter titles ending in one of these were cut mid-phrase by a line wrap.
DANGLING_END_WORDS: frozenset[str] = frozenset({
    "is", "are", "was", "were", "the", "and", "or", "but", "in", "on", "at",
    "to", "for", "of", "with", "by",
})

# Excluded from passage keywords.
KEYWORD_STOP_WORDS: frozenset[str] = PROSE_MARKER_WORDS | frozenset({
    "about", "above", "after", "again", "against", "among", "because",
    "before", "below", "between", "both", "during", "each", "either",
    "every", "first", "from", "further", "having", "however", "into",
    "itself", "other", "others", "their", "theirs", "them", "themselves",
    "then", "there", "therefore", "these", "they", "through", "under",
    "until", "where", "which", "while", "whose", "within", "without",
    "would", "should", "could", "might", "shall", "often", "since",
    "still", "such", "thus", "very", "also", "only", "many", "much",
    "more", "most", "some", "what", "when", "your", "yours", "being",
    "another", "around", "called", "known", "example", "figure",
    "section", "chapter",
})


# ═════════════════════════════════════════════════════════════════════════
# 4. PASSAGE VOCABULARY
# ═════════════════════════════════════════════════════════════════════════

MATH_KEYWORDS: tuple[str, ...] = (
    "equation", "formula", "theorem", "proof", "definition", "lemma",
    "derivative", "integral", "function", "variable", "constant",
    "matrix", "vector", "algebra", "calculus", "geometry", "trigonometry",
)

# LaTeX commands and the math keyword each one implies.  Checked as plain
# substrings of the passage text.
LATEX_COMMAND_KEYWORDS: dict[str, str] = {
    "\\int": "integral",
    "\\iint": "integral",
    "\\oint": "integral",
    "\\frac": "fraction",
    "\\sum": "summation",
    "\\prod": "product",
    "\\lim": "limit",
    "\\sqrt": "root",
    "\\partial": "derivative",
    "\\nabla": "vector",
    "\\vec": "vector",
    "\\begin{matrix}": "matrix",
    "\\begin{pmatrix}": "matrix",
    "\\begin{bmatrix}": "matrix",
    "\\sin": "trigonometry",
    "\\cos": "trigonometry",
    "\\tan": "trigonometry",
}

# Discourse markers that open a new line of argument.
TRANSITION_MARKERS: tuple[str, ...] = (
    "however", "therefore", "furthermore", "in conclusion", "next", "finally",
)


# ═════════════════════════════════════════════════════════════════════════
# 5. LOOKUP HELPERS
# ═════════════════════════════════════════════════════════════════════════

_WORD_RE = re.compile(r"[A-Za-z]+")


def word_forms(word: str) -> set[str]:
    """Return *word* lowercased plus its likely singular forms.

    ``"Properties"`` yields ``{"properties", "property", "propertie"}``; the
    extra non-words are harmless because they are only used for lookups.
    """
    lowered = word.lower()
    forms = {lowered}
    if lowered.endswith("ies") and len(lowered) > 4:
        forms.add(lowered[:-3] + "y")
    if lowered.endswith("es") and len(lowered) > 3:
        forms.add(lowered[:-2])
    if lowered.endswith("s") and not lowered.endswith("ss") and len(lowered) > 3:
        forms.add(lowered[:-1])
    return forms


def contains_vocabulary_word(text: str, vocabulary: frozenset[str]) -> bool:
    """Return True when any word of *text* (in any inflected form) is in *vocabulary*."""
    return any(
        not word_forms(word).isdisjoint(vocabulary)
        for word in _WORD_RE.findall(text)
    )


def contains_metadata_indicator(text: str) -> bool:
    """Return True when *text* contains any front/back-matter indicator substring."""
    upper = text.upper()
    return any(indicator in upper for indicator in METADATA_INDICATORS)

"""Document-structure models produced by the structure detector.

A textbook's structure is reduced to two flat lists: chapters (with
character spans into the document text) and sections (which point at
their chapter by title only).  Both are frozen; the detector builds new
instances via ``model_copy(update=...)`` when it fills in spans during
post-processing.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Chapter(BaseModel):
    """A detected chapter heading and the span of text it governs."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(description="Chapter title, e.g. 'Osmosis' or 'The Cellular Level of Organization'.")
    # Kept as a string: "2", "IV" and "0" (unnumbered) are all valid.
    number: str = Field(description="Chapter number as written in the heading.")
    start_position: int = Field(ge=0, description="Character offset of the heading line in the document text.")
    end_position: int | None = Field(
        default=None,
        ge=0,
        description="Character offset where the chapter ends; next chapter's start - 1, or len(text).",
    )
    confidence: float = Field(ge=0.0, le=1.0, description="Confidence of the rule that matched the heading.")


class Section(BaseModel):
    """A detected section or subsection heading.

    ``parent_chapter_title`` is a back-reference by title, ``"Unknown"`` when
    the heading appeared before any chapter.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    number: str = Field(description="Dotted section number ('1.2', '1.2.3') or '0' when unnumbered.")
    parent_chapter_title: str = "Unknown"
    level: int = Field(default=1, ge=1, le=2, description="1 = section, 2 = subsection.")


class StructureResult(BaseModel):
    """Chapters and sections of one document plus a scalar quality score.

    ``structure_quality`` is the mean confidence of every accepted heading
    (0 when none were found) and is the single value that selects the
    chunking strategy.
    """

    model_config = ConfigDict(frozen=True)

    chapters: list[Chapter] = Field(default_factory=list)
    sections: list[Section] = Field(default_factory=list)
    structure_quality: float = Field(default=0.0, ge=0.0, le=1.0)
    used_fallback: bool = True

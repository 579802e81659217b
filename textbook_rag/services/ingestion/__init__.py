"""Structure detection and chunking for textbook ingestion.

Pipeline stages overview:

1. **Classify** (heading_rules.py / HeadingClassifier) -- Ordered,
   confidence-scored heading rules decide whether a line is a chapter
   heading, a section heading, or neither.  Front/back-matter boilerplate
   ("Preface", "Answer Key", ...) is excluded before any rule is tried.

2. **Detect** (structure_detector.py / StructureDetector) -- Scans the whole
   document, assigns character spans to chapters, attaches sections to
   their chapter, and scores overall ``structure_quality``.

3. **Chunk** (chunker.py / ContentChunker) -- Packs paragraphs into chunks
   that never straddle a chapter or section boundary when structure is
   reliable, or slides a character window over the text when it is not.
   Refinement passes tag formulas and split lexically dense chunks.

Embedding and indexing happen in textbook_rag/pipeline/coordinator.py.
"""

from textbook_rag.services.ingestion.chunker import ContentChunker
from textbook_rag.services.ingestion.heading_rules import (
    HeadingClassifier,
    HeadingKind,
    HeadingMatch,
    HeadingRule,
)
from textbook_rag.services.ingestion.structure_detector import StructureDetector

__all__ = [
    "ContentChunker",
    "HeadingClassifier",
    "HeadingKind",
    "HeadingMatch",
    "HeadingRule",
    "StructureDetector",
]

"""textbook-rag domain models; re-exports all public model classes.

Submodules by concern:
    - structure.py - chapters, sections and the structure-detection result
    - rag.py       - books, chunks, embeddings, index and orchestration results
    - pipeline.py  - pipeline stages and progress events
"""

from __future__ import annotations

from textbook_rag.models.pipeline import PipelineStage, ProgressEvent
from textbook_rag.models.rag import (
    BookMetadata,
    Chunk,
    ChunkEmbedding,
    ChunkingResult,
    ChunkingStats,
    ChunkMetadata,
    ContentType,
    DocumentOutcome,
    ExtractedDocument,
    IndexStats,
    OrchestrationResult,
    OrchestrationStats,
    QueryMatch,
    SourceDocument,
    SystemStats,
    UpsertResult,
)
from textbook_rag.models.structure import Chapter, Section, StructureResult

__all__ = [
    # structure
    "Chapter",
    "Section",
    "StructureResult",
    # rag
    "BookMetadata",
    "Chunk",
    "ChunkEmbedding",
    "ChunkingResult",
    "ChunkingStats",
    "ChunkMetadata",
    "ContentType",
    "DocumentOutcome",
    "ExtractedDocument",
    "IndexStats",
    "OrchestrationResult",
    "OrchestrationStats",
    "QueryMatch",
    "SourceDocument",
    "SystemStats",
    "UpsertResult",
    # pipeline
    "PipelineStage",
    "ProgressEvent",
]

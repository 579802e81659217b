"""RAG pipeline data models for the textbook knowledge base.

Defines Pydantic v2 models for chunks, embeddings, vector-index results
and orchestration outcomes.  All models use frozen config; the one field
updated after creation (``ChunkMetadata.total_chunks``) is back-filled with
``model_copy(update={...})``.

RAG (Retrieval-Augmented Generation) overview:
    1. EXTRACTION: a textbook (PDF or plain text) is turned into raw text.
    2. STRUCTURE: chapter and section headings are detected in that text.
    3. CHUNKING: the text is split into retrieval-sized passages that never
       straddle a chapter or section boundary.
    4. EMBEDDING: each chunk becomes a numeric vector.
    5. INDEXING: vectors plus chunk metadata are upserted into the vector
       index, where ``query()`` later finds passages for a question.

    See textbook_rag/services/ingestion/ for steps 2-3 and
    textbook_rag/pipeline/coordinator.py for the whole flow.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from textbook_rag.models.structure import StructureResult


# ---------------------------------------------------------------------------
# Book / document-source records
# ---------------------------------------------------------------------------
class BookMetadata(BaseModel):
    """Identity of one textbook, attached to every chunk cut from it."""

    model_config = ConfigDict(frozen=True)

    # Stable book id; prefix of every chunk id and the delete filter key.
    book: str = Field(description="Stable identifier of the book, e.g. 'anatomy-physiology-2e'.")
    title: str = Field(description="Human-readable book title.")
    subject: str = Field(default="", description="Subject area, e.g. 'biology'.")


class SourceDocument(BaseModel):
    """A document handed to the coordinator: book identity plus an extraction handle."""

    model_config = ConfigDict(frozen=True)

    metadata: BookMetadata
    # File path or any locator the configured text extractor understands.
    handle: str


class ExtractedDocument(BaseModel):
    """Raw text returned by a text extractor."""

    model_config = ConfigDict(frozen=True)

    text: str
    page_count: int | None = Field(default=None, ge=0)
    source_path: str = ""


# ---------------------------------------------------------------------------
# Chunks
# ---------------------------------------------------------------------------
class ContentType(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Coarse passage classification used as a retrieval filter."""

    TEXT = "text"
    DEFINITION = "definition"
    EXAMPLE = "example"
    EXERCISE = "exercise"
    FORMULA = "formula"


class ChunkMetadata(BaseModel):
    """Provenance and classification of one chunk.

    Stored alongside the vector so queries can filter by book, chapter or
    content type.
    """

    model_config = ConfigDict(frozen=True)

    book: str
    title: str
    subject: str = ""
    chapter: str | None = Field(default=None, description="Title of the chapter the chunk belongs to.")
    section: str | None = Field(default=None, description="Title of the section the chunk belongs to.")
    chunk_id: str
    chunk_index: int = Field(ge=0)
    # Unknown while chunking; back-filled once the final list is known.
    total_chunks: int = Field(default=0, ge=0)
    content_type: ContentType = ContentType.TEXT
    keywords: list[str] = Field(default_factory=list)


class Chunk(BaseModel):
    """A retrieval-sized passage with its metadata.

    ``id`` always equals ``metadata.chunk_id`` and is derived from
    ``(book, chunk_index, md5(text))``, so unchanged text yields unchanged ids.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    metadata: ChunkMetadata


class ChunkingStats(BaseModel):
    """Summary numbers for one chunking run."""

    model_config = ConfigDict(frozen=True)

    total_chunks: int = Field(default=0, ge=0)
    average_chunk_size: float = Field(default=0.0, ge=0.0, description="Mean chunk length in characters.")
    structure_preserved: bool = False
    fallback_used: bool = True
    processing_time_ms: float = Field(default=0.0, ge=0.0)
    # Transition-marker split points found by the semantic pass (recorded only).
    semantic_boundary_candidates: int = Field(default=0, ge=0)


class ChunkingResult(BaseModel):
    """Output of :meth:`ContentChunker.chunk_content`."""

    model_config = ConfigDict(frozen=True)

    chunks: list[Chunk] = Field(default_factory=list)
    strategy_used: str = Field(description='"structure_aware" or "fallback".')
    stats: ChunkingStats
    structure: StructureResult | None = None


# ---------------------------------------------------------------------------
# Embedding / vector index records
# ---------------------------------------------------------------------------
class ChunkEmbedding(BaseModel):
    """One embedding vector keyed by the chunk it was computed from."""

    model_config = ConfigDict(frozen=True)

    chunk_id: str
    vector: list[float]


class UpsertResult(BaseModel):
    """Outcome of a batched vector-index upsert."""

    model_config = ConfigDict(frozen=True)

    success_count: int = Field(default=0, ge=0)
    failed_count: int = Field(default=0, ge=0)
    errors: list[str] = Field(default_factory=list)
    processing_time_ms: float = Field(default=0.0, ge=0.0)


class QueryMatch(BaseModel):
    """One vector-index hit."""

    model_config = ConfigDict(frozen=True)

    id: str
    score: float = Field(description="Similarity score; higher is closer.")
    text: str = ""
    metadata: dict[str, str | int | float | bool] = Field(default_factory=dict)


class IndexStats(BaseModel):
    """Size and composition of the vector index."""

    model_config = ConfigDict(frozen=True)

    total_vectors: int = Field(default=0, ge=0)
    dimension: int = Field(default=0, ge=0)
    books: list[str] = Field(default_factory=list, description="Sorted distinct book ids.")
    vectors_by_book: dict[str, int] = Field(default_factory=dict)


class SystemStats(BaseModel):
    """Index statistics plus the providers wired into the coordinator."""

    model_config = ConfigDict(frozen=True)

    index: IndexStats
    embedding_provider: str
    embedding_dimension: int
    vector_index_provider: str


# ---------------------------------------------------------------------------
# Orchestration results
# ---------------------------------------------------------------------------
class DocumentOutcome(BaseModel):
    """Counts for one successfully processed document."""

    model_config = ConfigDict(frozen=True)

    book: str
    chunk_count: int = 0
    embedding_count: int = 0
    indexed_count: int = 0
    strategy_used: str = ""
    structure_quality: float = 0.0
    average_chunk_size: float = 0.0
    errors: list[str] = Field(default_factory=list)


class OrchestrationStats(BaseModel):
    """Aggregates over every successfully processed document."""

    model_config = ConfigDict(frozen=True)

    avg_chunks_per_book: float = 0.0
    avg_chunk_size: float = 0.0
    # indexed / embeddings * 100; 0 when nothing was embedded.
    indexing_success_rate: float = 0.0
    total_processing_time_ms: float = 0.0


class OrchestrationResult(BaseModel):
    """Result of :meth:`PipelineCoordinator.process`.

    A batch run always completes; callers inspect ``errors`` to learn which
    documents failed and why.
    """

    model_config = ConfigDict(frozen=True)

    processed_ids: list[str] = Field(default_factory=list)
    # Documents never started because the run was cancelled.
    skipped_ids: list[str] = Field(default_factory=list)
    total_chunks: int = 0
    total_embeddings: int = 0
    indexed_count: int = 0
    errors: list[str] = Field(default_factory=list)
    processing_time_ms: float = 0.0
    cancelled: bool = False
    outcomes: list[DocumentOutcome] = Field(default_factory=list)
    stats: OrchestrationStats = Field(default_factory=OrchestrationStats)

"""Shared pytest fixtures for the textbook-rag test suite."""

from __future__ import annotations

import hashlib
import struct
from pathlib import Path
from typing import Any

import pytest

from textbook_rag.interfaces.embedding_provider import IEmbeddingProvider
from textbook_rag.interfaces.text_extractor import ITextExtractor
from textbook_rag.interfaces.vector_store_provider import IVectorIndex
from textbook_rag.models.rag import (
    BookMetadata,
    Chunk,
    ChunkEmbedding,
    ExtractedDocument,
    IndexStats,
    QueryMatch,
    SourceDocument,
    UpsertResult,
)
from textbook_rag.utils.errors import EmbeddingError, ExtractionError

_TEST_DIMENSION = 64


# ---------------------------------------------------------------------------
# Sample textbook text
# ---------------------------------------------------------------------------

_PROSE = (
    "Cells exchange water and solutes with their surroundings through a selectively "
    "permeable membrane that lets some molecules pass freely while others are held back."
)

SAMPLE_TEXTBOOK = f"""Chapter 1: Cell Structure

{_PROSE} The membrane is made of a lipid bilayer studded with proteins that act as channels and pumps.

1.1 Membrane Proteins

{_PROSE} Transmembrane proteins span the bilayer, while peripheral proteins sit on one face of the membrane.

Chapter 2: Cell Transport

{_PROSE} Transport across the membrane may be passive or active depending on whether energy is spent.

2.1 Passive Transport

{_PROSE} Diffusion moves solutes from regions of high concentration to regions of low concentration.

2.2 Active Transport

{_PROSE} Pumps such as the sodium potassium pump use energy stored in ATP to move ions against a gradient.
"""


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def sample_textbook_text() -> str:
    """A short two-chapter textbook with numbered sections."""
    return SAMPLE_TEXTBOOK


@pytest.fixture
def book_metadata() -> BookMetadata:
    return BookMetadata(book="biology-2e", title="Biology 2e", subject="biology")


# ---------------------------------------------------------------------------
# Mock providers for pipeline tests
# ---------------------------------------------------------------------------


def _hash_to_vector(text: str, dim: int = _TEST_DIMENSION) -> list[float]:
    """Deterministic pseudo-embedding: sha256 digests unpacked to floats in [-1, 1]."""
    values: list[float] = []
    counter = 0
    while len(values) < dim:
        digest = hashlib.sha256(f"{counter}:{text}".encode()).digest()
        for (value,) in struct.iter_unpack(">I", digest):
            values.append(value / 0xFFFFFFFF * 2 - 1)
        counter += 1
    return values[:dim]


class MockEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider returning hash-derived vectors; records every call."""

    def __init__(self, dimension: int = _TEST_DIMENSION, fail_on: str | None = None) -> None:
        self._dimension = dimension
        self._fail_on = fail_on
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self._fail_on is not None and any(self._fail_on in t for t in texts):
            raise EmbeddingError(message="mock embedding failure", provider_name="mock")
        return [_hash_to_vector(t, self._dimension) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "mock_embedding"

    def is_available(self) -> bool:
        return True


class MockVectorIndex(IVectorIndex):
    """In-memory vector index using dot-product scores and equality filters."""

    def __init__(self, dimension: int = _TEST_DIMENSION) -> None:
        self._dimension = dimension
        self.records: dict[str, tuple[list[float], Chunk]] = {}
        self.upsert_calls = 0

    async def upsert(
        self,
        embeddings: list[ChunkEmbedding],
        chunks: list[Chunk],
        batch_size: int = 100,
    ) -> UpsertResult:
        self.upsert_calls += 1
        by_id = {chunk.id: chunk for chunk in chunks}
        stored = 0
        errors: list[str] = []
        for embedding in embeddings:
            chunk = by_id.get(embedding.chunk_id)
            if chunk is None:
                errors.append(f"No chunk for embedding {embedding.chunk_id}")
                continue
            self.records[embedding.chunk_id] = (embedding.vector, chunk)
            stored += 1
        return UpsertResult(success_count=stored, failed_count=len(errors), errors=errors)

    async def query(
        self,
        vector: list[float],
        top_k: int = 10,
        filter: dict[str, Any] | None = None,  # noqa: A002
    ) -> list[QueryMatch]:
        matches = []
        for chunk_id, (stored, chunk) in self.records.items():
            if not self._matches(chunk, filter or {}):
                continue
            score = sum(a * b for a, b in zip(vector, stored))
            matches.append(
                QueryMatch(id=chunk_id, score=score, text=chunk.text, metadata={"book": chunk.metadata.book})
            )
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:top_k]

    async def delete_by_filter(self, filter: dict[str, Any]) -> int:  # noqa: A002
        doomed = [cid for cid, (_, chunk) in self.records.items() if self._matches(chunk, filter)]
        for chunk_id in doomed:
            del self.records[chunk_id]
        return len(doomed)

    async def get_stats(self) -> IndexStats:
        by_book: dict[str, int] = {}
        for _, chunk in self.records.values():
            by_book[chunk.metadata.book] = by_book.get(chunk.metadata.book, 0) + 1
        return IndexStats(
            total_vectors=len(self.records),
            dimension=self._dimension,
            books=sorted(by_book),
            vectors_by_book=by_book,
        )

    async def reset(self) -> None:
        self.records.clear()

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "mock_index"

    def is_available(self) -> bool:
        return True

    @staticmethod
    def _matches(chunk: Chunk, filter: dict[str, Any]) -> bool:  # noqa: A002
        metadata = chunk.metadata.model_dump(mode="json")
        return all(metadata.get(key) == value for key, value in filter.items())


class MockTextExtractor(ITextExtractor):
    """Extractor serving text from a ``{handle: text}`` mapping.

    Handles mapped to ``None`` raise :class:`ExtractionError`.
    """

    def __init__(self, documents: dict[str, str | None]) -> None:
        self._documents = documents
        self.extracted: list[str] = []

    async def extract(self, handle: str) -> ExtractedDocument:
        self.extracted.append(handle)
        text = self._documents.get(handle)
        if text is None:
            raise ExtractionError(message=f"Cannot read {handle}", provider_name="mock")
        return ExtractedDocument(text=text, source_path=handle)

    def supports(self, handle: str) -> bool:
        return handle in self._documents

    def get_provider_name(self) -> str:
        return "mock_extractor"

    def is_available(self) -> bool:
        return True


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def mock_vector_index() -> MockVectorIndex:
    return MockVectorIndex()


@pytest.fixture
def make_source_document():
    """Factory for :class:`SourceDocument` records keyed by book id."""

    def _make(book: str, title: str | None = None, handle: str | None = None) -> SourceDocument:
        return SourceDocument(
            metadata=BookMetadata(book=book, title=title or book.title(), subject="biology"),
            handle=handle or f"{book}.txt",
        )

    return _make


@pytest.fixture
def mock_text_extractor_factory():
    """Factory building a :class:`MockTextExtractor` from a handle→text mapping."""

    def _make(documents: dict[str, str | None]) -> MockTextExtractor:
        return MockTextExtractor(documents)

    return _make

"""Abstract base class for vector-index service providers.

Defines the contract for storing, querying, and deleting embedded chunks.
The ChromaDB adapter is the shipped implementation; Pinecone, Qdrant or any
other vector database can be slotted in behind this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from textbook_rag.models.rag import Chunk, ChunkEmbedding, IndexStats, QueryMatch, UpsertResult


# Concrete implementation: ChromaDBVectorIndex (textbook_rag/providers/vector_store/)
# Data persists to disk at CHROMADB_PERSIST_DIR (default: ./data/chromadb).
class IVectorIndex(ABC):
    """Contract for vector-index services used by the ingestion pipeline.

    All methods that touch the index are async so network-backed stores do
    not block the event loop.

    **Filter syntax** (for :meth:`query` and :meth:`delete_by_filter`) is a
    flat equality mapping over chunk metadata fields:

    * ``{"book": "biology-2e"}`` - one book.
    * ``{"book": "biology-2e", "chapter": "Osmosis"}`` - one chapter.
    * ``{"content_type": "formula"}`` - formula passages only.

    Concrete providers translate this into their backend's query language.
    """

    @abstractmethod
    async def upsert(
        self,
        embeddings: list[ChunkEmbedding],
        chunks: list[Chunk],
        batch_size: int = 100,
    ) -> UpsertResult:
        """Insert or replace vectors together with their chunk metadata.

        Parameters
        ----------
        embeddings:
            Vectors keyed by chunk id.
        chunks:
            The chunks the vectors were computed from; matched to
            *embeddings* by id, not by position.
        batch_size:
            Vectors sent per backend call.  A failed batch adds its size to
            ``failed_count`` and is not retried.

        Returns
        -------
        UpsertResult
            Success/failure counts and one error string per failed batch.
        """

    @abstractmethod
    async def query(
        self,
        vector: list[float],
        top_k: int = 10,
        filter: dict[str, Any] | None = None,  # noqa: A002
    ) -> list[QueryMatch]:
        """Return the *top_k* stored vectors closest to *vector*.

        Raises
        ------
        textbook_rag.utils.errors.RAGError
            If the backend query fails.
        """

    @abstractmethod
    async def delete_by_filter(self, filter: dict[str, Any]) -> int:  # noqa: A002
        """Delete every vector whose metadata matches *filter*.

        Returns
        -------
        int
            The number of vectors deleted.
        """

    @abstractmethod
    async def get_stats(self) -> IndexStats:
        """Return the size and per-book composition of the index."""

    @abstractmethod
    async def reset(self) -> None:
        """Delete every vector in the index."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the vector dimension the index was configured with."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this vector index."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the backend is importable and configured."""

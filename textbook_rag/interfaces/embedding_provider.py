"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.
Implementations wrap OpenAI ``text-embedding-3-small`` or a local
Sentence Transformers model; the coordinator only sees this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from textbook_rag.models.rag import Chunk, ChunkEmbedding


# Concrete implementations:
#   OpenAIEmbeddingProvider              - text-embedding-3-small (requires API key)
#   SentenceTransformerEmbeddingProvider - all-MiniLM-L6-v2 (local, needs PyTorch)
# Located in: textbook_rag/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the ingestion pipeline.

    Embeddings are consumed by
    :class:`~textbook_rag.interfaces.vector_store_provider.IVectorIndex` for
    indexing and query-time similarity search.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.  Implementations handle
            batching internally if the underlying API has a per-call limit.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.  Each
            inner list has length equal to :meth:`get_dimension`.

        Raises
        ------
        textbook_rag.utils.errors.EmbeddingError
            If the embedding API call fails.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string.

        Convenience wrapper around :meth:`embed` for the single-text case
        (e.g. embedding a search query).
        """

    async def embed_chunks(self, chunks: list[Chunk]) -> list[ChunkEmbedding]:
        """Embed every chunk's text and key the vectors by chunk id.

        Returns one :class:`ChunkEmbedding` per chunk, in chunk order.
        """
        if not chunks:
            return []
        vectors = await self.embed([chunk.text for chunk in chunks])
        return [
            ChunkEmbedding(chunk_id=chunk.id, vector=vector)
            for chunk, vector in zip(chunks, vectors)
        ]

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        This value must remain constant for the lifetime of the provider
        instance and must match the dimension configured in the vector index.

        Example values: ``1536`` (OpenAI ``text-embedding-3-small``),
        ``384`` (``all-MiniLM-L6-v2``).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider.

        Example return values: ``"openai"``, ``"sentence-transformers"``.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured and reachable.

        Implementations verify that credentials (if any) are present and the
        model is accessible without generating an actual embedding.
        """

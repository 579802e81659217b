"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Supports both real OpenAI and OpenAI-compatible providers (TogetherAI,
Anyscale, Fireworks) via custom ``base_url`` and model name settings.

Texts are sent in batches of ``embedding_batch_size`` (100 by default) with
at most ``max_concurrent_requests`` batches in flight.  When a whole batch
is rejected, its texts are retried one at a time so a single oversized or
malformed passage does not cost the other 99 their vectors.
"""

from __future__ import annotations

import openai
import structlog

from textbook_rag.config.settings import Settings
from textbook_rag.interfaces.embedding_provider import IEmbeddingProvider
from textbook_rag.models.rag import Chunk, ChunkEmbedding
from textbook_rag.utils.concurrency import make_semaphore, throttled_gather
from textbook_rag.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "text-embedding-3-small"

# Known embedding model dimensions.
_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-large-en-v1.5": 1024,
}


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Uses ``text-embedding-3-small`` (1536 dims) by default.  The
    ``text-embedding-3`` family accepts a ``dimensions`` request parameter,
    so for those models ``embedding_dimensions`` from settings is honoured;
    other models report their native size.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key

        # Build client kwargs; add base_url only when configured.
        client_kwargs: dict = {"api_key": self._api_key}
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = settings.openai_embedding_model or _DEFAULT_MODEL
        self._sends_dimensions = self._model.startswith("text-embedding-3")
        if self._sends_dimensions:
            self._dimension = settings.embedding_dimensions
        else:
            self._dimension = _MODEL_DIMENSIONS.get(self._model, settings.embedding_dimensions)
        self._batch_size = max(1, settings.embedding_batch_size)
        self._semaphore = make_semaphore(settings.max_concurrent_requests)
        self._provider_label = (
            "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        )

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Raises
        ------
        EmbeddingError
            If any text is still without a vector after the per-text retry.
        """
        vectors = await self._embed_all(texts)
        failed = sum(1 for v in vectors if v is None)
        if failed:
            raise EmbeddingError(
                message=f"{failed} of {len(texts)} texts could not be embedded",
                provider_name=self.get_provider_name(),
            )
        return [v for v in vectors if v is not None]

    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""
        try:
            return (await self._request([text]))[0]
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def embed_chunks(self, chunks: list[Chunk]) -> list[ChunkEmbedding]:
        """Embed chunks, dropping the ones whose text could not be embedded.

        The coordinator reports dropped chunks through a lower indexed count
        rather than failing the whole book.
        """
        vectors = await self._embed_all([chunk.text for chunk in chunks])
        results: list[ChunkEmbedding] = []
        for chunk, vector in zip(chunks, vectors):
            if vector is None:
                logger.warning("chunk_embedding_dropped", chunk_id=chunk.id)
                continue
            results.append(ChunkEmbedding(chunk_id=chunk.id, vector=vector))
        return results

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)

    # ------------------------------------------------------------------
    # Batching
    # ------------------------------------------------------------------

    async def _embed_all(self, texts: list[str]) -> list[list[float] | None]:
        if not texts:
            return []
        batches = [
            texts[start : start + self._batch_size]
            for start in range(0, len(texts), self._batch_size)
        ]
        results = await throttled_gather(
            [self._embed_batch(batch) for batch in batches],
            self._semaphore,
            return_exceptions=False,
        )
        return [vector for batch_vectors in results for vector in batch_vectors]

    async def _embed_batch(self, batch: list[str]) -> list[list[float] | None]:
        """Embed one batch; on API failure fall back to one request per text."""
        try:
            return list(await self._request(batch))
        except openai.APIError as exc:
            logger.warning(
                "openai_embedding_batch_failed",
                model=self._model,
                batch_size=len(batch),
                error=str(exc),
            )

        vectors: list[list[float] | None] = []
        for text in batch:
            try:
                vectors.append((await self._request([text]))[0])
            except openai.APIError as exc:
                logger.error(
                    "openai_embedding_text_failed",
                    model=self._model,
                    text_chars=len(text),
                    error=str(exc),
                )
                vectors.append(None)
        return vectors

    async def _request(self, batch: list[str]) -> list[list[float]]:
        kwargs: dict = {"input": batch, "model": self._model}
        if self._sends_dimensions:
            kwargs["dimensions"] = self._dimension
        response = await self._client.embeddings.create(**kwargs)
        logger.info(
            "openai_embedding_batch",
            model=self._model,
            provider=self._provider_label,
            batch_size=len(batch),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return [item.embedding for item in response.data]

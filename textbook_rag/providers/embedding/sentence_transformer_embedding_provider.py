"""Offline embedding provider for textbook chunks.

Used when no OpenAI key is configured.  The default ``all-MiniLM-L6-v2``
model emits 384-dimensional vectors, so a collection built with it cannot
be mixed with one built from OpenAI embeddings.
"""

from __future__ import annotations

import asyncio

import structlog

from textbook_rag.interfaces.embedding_provider import IEmbeddingProvider
from textbook_rag.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

_MODEL_DIMENSIONS: dict[str, int] = {
    "all-MiniLM-L6-v2": 384,
    "all-mpnet-base-v2": 768,
    "multi-qa-MiniLM-L6-cos-v1": 384,
    "BAAI/bge-small-en-v1.5": 384,
    "BAAI/bge-base-en-v1.5": 768,
}

_DEFAULT_MODEL = "all-MiniLM-L6-v2"
_DEFAULT_BATCH_SIZE = 64


class SentenceTransformerEmbeddingProvider(IEmbeddingProvider):
    """Embeds chunk text with a locally loaded sentence-transformers model.

    The model is only loaded by the first :meth:`embed` call, so ``stats``
    and ``delete`` runs never pay for it.
    """

    def __init__(self, model_name: str | None = None, batch_size: int = _DEFAULT_BATCH_SIZE) -> None:
        self._model_name = model_name or _DEFAULT_MODEL
        self._batch_size = max(1, batch_size)
        self._dimension = _MODEL_DIMENSIONS.get(self._model_name, 384)
        self._model = None

    def _ensure_model(self) -> None:
        if self._model is not None:
            return
        try:
            from sentence_transformers import SentenceTransformer

            logger.info("loading_sentence_transformer", model=self._model_name)
            model = SentenceTransformer(self._model_name)
        except Exception as exc:
            raise EmbeddingError(
                message=f"Failed to load sentence-transformers model '{self._model_name}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        reported = model.get_sentence_embedding_dimension()
        if reported:
            self._dimension = int(reported)
        self._model = model
        logger.info("sentence_transformer_loaded", model=self._model_name, dimension=self._dimension)

    def _encode(self, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for start in range(0, len(texts), self._batch_size):
            batch = texts[start : start + self._batch_size]
            encoded = self._model.encode(batch, normalize_embeddings=True, show_progress_bar=False)
            vectors.extend(encoded.tolist())
            logger.debug("sentence_transformer_batch_encoded", model=self._model_name, batch_size=len(batch))
        return vectors

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in order, off the event loop."""
        if not texts:
            return []

        self._ensure_model()
        try:
            return await asyncio.to_thread(self._encode, texts)
        except Exception as exc:
            raise EmbeddingError(
                message=f"Sentence-transformers embedding error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return f"sentence_transformer_{self._model_name.split('/')[-1]}"

    def is_available(self) -> bool:
        try:
            import sentence_transformers  # noqa: F401
        except ImportError:
            return False
        return True

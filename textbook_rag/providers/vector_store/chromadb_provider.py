"""ChromaDB vector index adapter.

Wraps `chromadb.PersistentClient` to implement :class:`IVectorIndex`.
Uses cosine distance for similarity search.  Fully local, free, and
Python-native, with no external service required.
"""

from __future__ import annotations

import os
import time
from typing import Any

# Disable ChromaDB telemetry completely before importing chromadb.
# ChromaDB uses PostHog for anonymous telemetry, but a version mismatch
# between ChromaDB's bundled PostHog client and the installed version
# causes "capture() takes 1 positional argument but 3 were given" errors.
# Three layers:
#   1. ANONYMIZED_TELEMETRY env var - respected by some ChromaDB versions
#   2. posthog.disabled = True - disables the PostHog SDK directly
#   3. Settings(anonymized_telemetry=False) - passed to PersistentClient
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import posthog

posthog.disabled = True

import chromadb
import structlog

from textbook_rag.interfaces.vector_store_provider import IVectorIndex
from textbook_rag.models.rag import Chunk, ChunkEmbedding, IndexStats, QueryMatch, UpsertResult
from textbook_rag.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MAX_TEXT_CHARS = 40_000
_PAGE_SIZE = 5000


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that prevents ChromaDB from loading a model.

    Vectors always come from the pipeline's :class:`IEmbeddingProvider`,
    so ChromaDB's built-in embedding is never invoked.  Without this,
    ChromaDB downloads its default ONNX model on collection creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:  # noqa: A002
        raise NotImplementedError(
            "textbook-rag uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBVectorIndex(IVectorIndex):
    """Vector index backed by ChromaDB with local persistence.

    Parameters
    ----------
    persist_directory:
        On-disk location of the ChromaDB database.
    collection_name:
        Collection holding the textbook chunks.
    dimension:
        Vector dimension every upserted embedding must have.
    max_text_chars:
        Stored chunk text is truncated to this many characters.
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "textbook-embeddings",
        dimension: int = 1536,
        max_text_chars: int = _DEFAULT_MAX_TEXT_CHARS,
    ) -> None:
        self._persist_directory = persist_directory
        self._collection_name = collection_name
        self._dimension = dimension
        self._max_text_chars = max_text_chars
        self._client = chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        self._collection = self._open_collection()

        self._validate_stored_dimension()

    def _open_collection(self) -> Any:
        # Newer ChromaDB versions reject an embedding function that differs
        # from the persisted one; reopen without it in that case.
        try:
            return self._client.get_or_create_collection(
                name=self._collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            return self._client.get_or_create_collection(
                name=self._collection_name,
                metadata={"hnsw:space": "cosine"},
            )

    # ------------------------------------------------------------------
    # Startup validation
    # ------------------------------------------------------------------

    def _validate_stored_dimension(self) -> None:
        """Verify the configured dimension matches vectors already stored.

        Peeks at a single stored vector.  A mismatch means every query would
        produce garbage results, so fail loud and fast.
        """
        try:
            if self._collection.count() == 0:
                return
            sample = self._collection.peek(limit=1)
        except Exception as exc:
            logger.warning("embedding_dimension_check_skipped", error=str(exc))
            return

        embeddings = sample.get("embeddings") if sample else None
        if embeddings is None or len(embeddings) == 0:
            return

        stored_dim = len(embeddings[0])
        if stored_dim != self._dimension:
            logger.error(
                "embedding_dimension_mismatch",
                stored_dim=stored_dim,
                expected_dim=self._dimension,
                collection=self._collection_name,
            )
            raise RAGError(
                message=(
                    f"Embedding dimension mismatch: collection '{self._collection_name}' holds "
                    f"{stored_dim}-dim vectors but {self._dimension} was configured. "
                    f"Reset the index or use the embedding model that built it."
                ),
                provider_name=self.get_provider_name(),
            )

    # ------------------------------------------------------------------
    # IVectorIndex implementation
    # ------------------------------------------------------------------

    async def upsert(
        self,
        embeddings: list[ChunkEmbedding],
        chunks: list[Chunk],
        batch_size: int = 100,
    ) -> UpsertResult:
        """Upsert vectors with their chunk text and metadata, batch by batch.

        A batch that ChromaDB rejects is counted as failed and recorded;
        the remaining batches still run.  Embeddings with no matching chunk
        or the wrong dimension are failed individually.
        """
        started = time.monotonic()
        chunks_by_id = {chunk.id: chunk for chunk in chunks}

        errors: list[str] = []
        failed = 0
        pairs: list[tuple[ChunkEmbedding, Chunk]] = []
        for embedding in embeddings:
            chunk = chunks_by_id.get(embedding.chunk_id)
            if chunk is None:
                failed += 1
                errors.append(f"No chunk for embedding {embedding.chunk_id}")
            elif len(embedding.vector) != self._dimension:
                failed += 1
                errors.append(
                    f"Embedding {embedding.chunk_id} has dimension {len(embedding.vector)}, "
                    f"expected {self._dimension}"
                )
            else:
                pairs.append((embedding, chunk))

        succeeded = 0
        size = max(1, batch_size)
        for batch_number, start in enumerate(range(0, len(pairs), size), start=1):
            batch = pairs[start : start + size]
            try:
                self._collection.upsert(
                    ids=[chunk.id for _, chunk in batch],
                    embeddings=[embedding.vector for embedding, _ in batch],
                    documents=[chunk.text[: self._max_text_chars] for _, chunk in batch],
                    metadatas=[self._chunk_to_metadata(chunk) for _, chunk in batch],
                )
                succeeded += len(batch)
            except Exception as exc:
                failed += len(batch)
                errors.append(f"Batch {batch_number} failed: {exc}")
                logger.error(
                    "chromadb_upsert_batch_failed",
                    batch=batch_number,
                    batch_size=len(batch),
                    error=str(exc),
                )

        elapsed_ms = (time.monotonic() - started) * 1000
        logger.info(
            "chromadb_upsert",
            success_count=succeeded,
            failed_count=failed,
            batches=(len(pairs) + size - 1) // size,
        )
        return UpsertResult(
            success_count=succeeded,
            failed_count=failed,
            errors=errors,
            processing_time_ms=elapsed_ms,
        )

    async def query(
        self,
        vector: list[float],
        top_k: int = 10,
        filter: dict[str, Any] | None = None,  # noqa: A002
    ) -> list[QueryMatch]:
        """Return the *top_k* closest chunks; score is ``1 - cosine distance``."""
        try:
            count = self._collection.count()
            if count == 0 or top_k <= 0:
                return []

            kwargs: dict[str, Any] = {
                "query_embeddings": [vector],
                "n_results": min(top_k, count),
                "include": ["documents", "metadatas", "distances"],
            }
            where = self._translate_filter(filter)
            if where:
                kwargs["where"] = where

            results = self._collection.query(**kwargs)
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = results["ids"][0] if results["ids"] else []
        documents = results["documents"][0] if results.get("documents") else [""] * len(ids)
        metadatas = results["metadatas"][0] if results.get("metadatas") else [{}] * len(ids)
        distances = results["distances"][0] if results.get("distances") else [0.0] * len(ids)

        matches = [
            QueryMatch(
                id=chunk_id,
                score=1.0 - float(distance),
                text=document or "",
                metadata=dict(meta or {}),
            )
            for chunk_id, document, meta, distance in zip(ids, documents, metadatas, distances)
        ]

        logger.info(
            "chromadb_query",
            top_k=top_k,
            results_count=len(matches),
            top_score=round(matches[0].score, 4) if matches else 0.0,
        )
        return matches

    async def delete_by_filter(self, filter: dict[str, Any]) -> int:  # noqa: A002
        """Delete every chunk whose metadata matches *filter*.

        An empty filter is refused; use :meth:`reset` to clear the index.
        """
        where = self._translate_filter(filter)
        if not where:
            raise RAGError(
                message="delete_by_filter requires a non-empty filter",
                provider_name=self.get_provider_name(),
            )
        try:
            existing = self._collection.get(where=where, include=[])
            count = len(existing["ids"]) if existing["ids"] else 0
            if count > 0:
                self._collection.delete(where=where)
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB delete failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_delete_by_filter", filter=filter, deleted_count=count)
        return count

    async def get_stats(self) -> IndexStats:
        """Count vectors overall and per book.

        Metadata is fetched in 5K-row pages to stay under SQLite's
        bind-parameter limit on large collections.
        """
        try:
            total = self._collection.count()
            by_book: dict[str, int] = {}
            for offset in range(0, total, _PAGE_SIZE):
                page = self._collection.get(include=["metadatas"], limit=_PAGE_SIZE, offset=offset)
                for meta in page["metadatas"] or []:
                    book = str(meta.get("book", "unknown"))
                    by_book[book] = by_book.get(book, 0) + 1
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB get_stats failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        return IndexStats(
            total_vectors=total,
            dimension=self._dimension,
            books=sorted(by_book),
            vectors_by_book=by_book,
        )

    async def reset(self) -> None:
        """Drop and recreate the collection."""
        try:
            self._client.delete_collection(name=self._collection_name)
            self._collection = self._open_collection()
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB reset failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.warning("chromadb_collection_reset", collection=self._collection_name)

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the ChromaDB collection is accessible."""
        try:
            self._collection.count()
            return True
        except Exception:
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _chunk_to_metadata(chunk: Chunk) -> dict[str, str | int | float | bool]:
        """Convert chunk metadata to a ChromaDB-compatible metadata dict.

        ChromaDB metadata values must be str, int, float, or bool, so
        keywords are serialized as a comma-separated string and missing
        chapter/section titles are omitted.
        """
        md = chunk.metadata
        meta: dict[str, str | int | float | bool] = {
            "book": md.book,
            "title": md.title,
            "subject": md.subject,
            "chunk_id": md.chunk_id,
            "chunk_index": md.chunk_index,
            "total_chunks": md.total_chunks,
            "content_type": md.content_type.value,
            "keywords": ",".join(md.keywords),
        }
        if md.chapter is not None:
            meta["chapter"] = md.chapter
        if md.section is not None:
            meta["section"] = md.section
        return meta

    @staticmethod
    def _translate_filter(filter: dict[str, Any] | None) -> dict[str, Any] | None:  # noqa: A002
        """Translate a flat equality filter to a ChromaDB ``where`` clause.

        ``{"book": "b"}`` passes through; several keys are combined with
        ``$and``.
        """
        if not filter:
            return None
        clauses = [{key: value} for key, value in filter.items()]
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}

"""Coordinator for the textbook ingestion pipeline.

Pipeline stages per document: **extract -> detect -> chunk -> embed -> index**.

The :class:`PipelineCoordinator` implements the **Orchestrator pattern**: it
coordinates the text extractor, the content chunker (which owns the
structure detector), the embedding provider and the vector index without
any of them knowing about each other.  All collaborators are injected via
the constructor, so providers can be swapped (e.g. OpenAI -> local
Sentence Transformers) without changing this class.

# ─── HOW A BATCH RUN WORKS ────────────────────────────────────────────
#
#   process(documents)
#     │
#     ├─ "downloading"  0%   ← one event before any work starts
#     │
#     ├─ per document (concurrently, extraction bounded by a semaphore):
#     │     extract → detect structure → chunk → back-fill total_chunks
#     │       → embed → batched upsert → accumulate counts
#     │     then one "extracting" event at completed/total * 100
#     │
#     └─ "complete"   100%
#
# A failure inside one document is caught and recorded as
# "Failed to process {title}: {error}"; the batch always completes.
# cancel() stops documents that have not started yet; a document that is
# already running finishes, so no book is left half-indexed.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import TYPE_CHECKING, Any

import structlog

from textbook_rag.models.pipeline import PipelineStage
from textbook_rag.models.rag import (
    DocumentOutcome,
    OrchestrationResult,
    OrchestrationStats,
    QueryMatch,
    SourceDocument,
    SystemStats,
)
from textbook_rag.pipeline.progress_tracker import ProgressCallback, ProgressTracker
from textbook_rag.services.ingestion.chunker import ContentChunker
from textbook_rag.utils.concurrency import make_semaphore
from textbook_rag.utils.errors import ConfigurationError, PipelineError

if TYPE_CHECKING:
    from textbook_rag.interfaces.embedding_provider import IEmbeddingProvider
    from textbook_rag.interfaces.text_extractor import ITextExtractor
    from textbook_rag.interfaces.vector_store_provider import IVectorIndex

logger = structlog.get_logger(logger_name=__name__)


class PipelineCoordinator:
    """Runs batches of textbooks through the ingestion pipeline.

    Parameters
    ----------
    extractor:
        Turns a document handle into raw text.
    embedding_provider:
        Generates one vector per chunk and for query text.
    vector_index:
        Stores chunk vectors and serves similarity queries.
    chunker:
        Structure-aware chunker; a default-configured one is used when omitted.
    progress_tracker:
        Receives stage events; a private tracker is created when omitted.
    max_concurrent_processing:
        Documents allowed in the extraction stage at once.
    upsert_batch_size:
        Vectors per vector-index upsert call.
    index_dimension:
        Expected vector dimension; read from *vector_index* when omitted.

    Raises
    ------
    ConfigurationError
        If the index dimension is missing, non-positive or disagrees with
        the embedding provider, or if a concurrency / batch setting is not
        positive.
    """

    def __init__(
        self,
        extractor: ITextExtractor,
        embedding_provider: IEmbeddingProvider,
        vector_index: IVectorIndex,
        chunker: ContentChunker | None = None,
        progress_tracker: ProgressTracker | None = None,
        max_concurrent_processing: int = 3,
        upsert_batch_size: int = 100,
        index_dimension: int | None = None,
    ) -> None:
        if index_dimension is None:
            index_dimension = vector_index.get_dimension()
        if not index_dimension or index_dimension <= 0:
            raise ConfigurationError(
                f"Vector index dimension must be a positive integer, got {index_dimension!r}",
                provider_name=vector_index.get_provider_name(),
            )
        embedding_dimension = embedding_provider.get_dimension()
        if embedding_dimension != index_dimension:
            raise ConfigurationError(
                f"Embedding dimension {embedding_dimension} does not match "
                f"vector index dimension {index_dimension}",
                provider_name=embedding_provider.get_provider_name(),
            )
        if max_concurrent_processing <= 0:
            raise ConfigurationError(
                f"max_concurrent_processing must be positive, got {max_concurrent_processing}"
            )
        if upsert_batch_size <= 0:
            raise ConfigurationError(f"upsert_batch_size must be positive, got {upsert_batch_size}")

        self._extractor = extractor
        self._embedding_provider = embedding_provider
        self._vector_index = vector_index
        self._chunker = chunker or ContentChunker()
        self._tracker = progress_tracker or ProgressTracker()
        self._max_concurrent = max_concurrent_processing
        self._upsert_batch_size = upsert_batch_size
        self._index_dimension = index_dimension
        self._cancel_event = asyncio.Event()

    @property
    def progress_tracker(self) -> ProgressTracker:
        return self._tracker

    # ------------------------------------------------------------------
    # Batch processing
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        """Stop starting new documents; documents already running finish."""
        logger.info("pipeline_cancel_requested")
        self._cancel_event.set()

    async def process(
        self,
        documents: list[SourceDocument],
        on_progress: ProgressCallback | None = None,
    ) -> OrchestrationResult:
        """Ingest *documents* and return aggregate counts.

        Parameters
        ----------
        documents:
            Books to ingest.  A book id appearing more than once is
            processed once.
        on_progress:
            Optional sync or async callable receiving every
            :class:`~textbook_rag.models.pipeline.ProgressEvent` of this run.

        Returns
        -------
        OrchestrationResult
            Per-book outcomes plus one error string per failed document.
        """
        started = time.monotonic()
        self._cancel_event.clear()
        run_id = str(uuid.uuid4())
        if on_progress is not None:
            self._tracker.register_listener(run_id, on_progress)

        try:
            unique = self._dedupe(documents)
            total = len(unique)
            logger.info("pipeline_run_started", run_id=run_id, documents=total)

            await self._tracker.update(
                run_id, PipelineStage.DOWNLOADING, 0.0, f"Preparing {total} documents..."
            )

            semaphore = make_semaphore(self._max_concurrent)
            completed = 0
            errors: list[str] = []
            skipped: list[str] = []

            async def _run(document: SourceDocument) -> DocumentOutcome | None:
                nonlocal completed
                outcome = await self._process_document(document, semaphore, errors, skipped)
                if document.metadata.book in skipped:
                    return None
                completed += 1
                await self._tracker.update(
                    run_id,
                    PipelineStage.EXTRACTING,
                    completed / total * 100,
                    f"Processed {document.metadata.title}",
                )
                return outcome

            outcomes = await asyncio.gather(*(_run(doc) for doc in unique))
            processed = [outcome for outcome in outcomes if outcome is not None]

            await self._tracker.update(run_id, PipelineStage.COMPLETE, 100.0, "Processing complete")
        finally:
            if on_progress is not None:
                self._tracker.unregister_listener(run_id, on_progress)

        elapsed_ms = (time.monotonic() - started) * 1000
        result = self._build_result(processed, skipped, errors, elapsed_ms)

        logger.info(
            "pipeline_run_complete",
            run_id=run_id,
            processed=len(result.processed_ids),
            skipped=len(result.skipped_ids),
            failed=len(errors),
            total_chunks=result.total_chunks,
            indexed=result.indexed_count,
            cancelled=result.cancelled,
            processing_time_ms=round(elapsed_ms, 1),
        )
        return result

    async def _process_document(
        self,
        document: SourceDocument,
        semaphore: asyncio.Semaphore,
        errors: list[str],
        skipped: list[str],
    ) -> DocumentOutcome | None:
        """Run one document through every stage.

        Failures are appended to *errors*; a document not started because
        the run was cancelled is appended to *skipped*.  Returns ``None`` in
        both cases.
        """
        book = document.metadata
        if self._cancel_event.is_set():
            logger.info("document_skipped_cancelled", book=book.book)
            skipped.append(book.book)
            return None

        try:
            async with semaphore:
                # Cancellation may arrive while waiting for a slot.
                if self._cancel_event.is_set():
                    logger.info("document_skipped_cancelled", book=book.book)
                    skipped.append(book.book)
                    return None
                extracted = await self._extractor.extract(document.handle)

            structure = self._chunker.detector.detect_structure(extracted.text)
            chunking = self._chunker.chunk_content(extracted.text, book, structure=structure)
            chunks = chunking.chunks

            doc_errors: list[str] = []
            embeddings = []
            indexed = 0
            if chunks:
                embeddings = await self._embedding_provider.embed_chunks(chunks)
                if not embeddings:
                    raise PipelineError(
                        f"None of {len(chunks)} chunks could be embedded",
                        provider_name=self._embedding_provider.get_provider_name(),
                    )
                dropped = len(chunks) - len(embeddings)
                if dropped > 0:
                    doc_errors.append(
                        f"{book.title}: {dropped} of {len(chunks)} chunks could not be embedded"
                    )
                    logger.warning(
                        "chunks_not_embedded",
                        book=book.book,
                        dropped=dropped,
                        chunks=len(chunks),
                    )
                upsert = await self._vector_index.upsert(
                    embeddings, chunks, batch_size=self._upsert_batch_size
                )
                indexed = upsert.success_count
                doc_errors.extend(f"{book.title}: {error}" for error in upsert.errors)
                errors.extend(doc_errors)

        except Exception as exc:
            message = f"Failed to process {book.title}: {exc}"
            errors.append(message)
            logger.error(
                "document_failed",
                book=book.book,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return None

        logger.info(
            "document_processed",
            book=book.book,
            strategy=chunking.strategy_used,
            structure_quality=round(structure.structure_quality, 3),
            chunks=len(chunks),
            embeddings=len(embeddings),
            indexed=indexed,
        )
        return DocumentOutcome(
            book=book.book,
            chunk_count=len(chunks),
            embedding_count=len(embeddings),
            indexed_count=indexed,
            strategy_used=chunking.strategy_used,
            structure_quality=structure.structure_quality,
            average_chunk_size=chunking.stats.average_chunk_size,
            errors=doc_errors,
        )

    # ------------------------------------------------------------------
    # Query / maintenance
    # ------------------------------------------------------------------

    async def query(
        self,
        text: str,
        top_k: int = 10,
        filter: dict[str, Any] | None = None,  # noqa: A002
    ) -> list[QueryMatch]:
        """Embed *text* and return the closest indexed chunks."""
        vector = await self._embedding_provider.embed_single(text)
        matches = await self._vector_index.query(vector, top_k=top_k, filter=filter)
        logger.debug("query_complete", top_k=top_k, matches=len(matches), filter=filter)
        return matches

    async def delete_book(self, book_id: str) -> int:
        """Remove every indexed chunk of *book_id*; returns the number deleted."""
        deleted = await self._vector_index.delete_by_filter({"book": book_id})
        logger.info("book_deleted", book=book_id, deleted=deleted)
        return deleted

    async def get_system_stats(self) -> SystemStats:
        """Index statistics plus the names and dimension of the wired providers."""
        index_stats = await self._vector_index.get_stats()
        return SystemStats(
            index=index_stats,
            embedding_provider=self._embedding_provider.get_provider_name(),
            embedding_dimension=self._embedding_provider.get_dimension(),
            vector_index_provider=self._vector_index.get_provider_name(),
        )

    async def reset(self) -> None:
        """Delete every vector in the index."""
        logger.warning("vector_index_reset", provider=self._vector_index.get_provider_name())
        await self._vector_index.reset()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _dedupe(documents: list[SourceDocument]) -> list[SourceDocument]:
        seen: set[str] = set()
        unique: list[SourceDocument] = []
        for document in documents:
            book_id = document.metadata.book
            if book_id in seen:
                logger.warning("duplicate_document_ignored", book=book_id)
                continue
            seen.add(book_id)
            unique.append(document)
        return unique

    def _build_result(
        self,
        outcomes: list[DocumentOutcome],
        skipped: list[str],
        errors: list[str],
        elapsed_ms: float,
    ) -> OrchestrationResult:
        total_chunks = sum(o.chunk_count for o in outcomes)
        total_embeddings = sum(o.embedding_count for o in outcomes)
        indexed = sum(o.indexed_count for o in outcomes)

        stats = OrchestrationStats(
            avg_chunks_per_book=total_chunks / len(outcomes) if outcomes else 0.0,
            avg_chunk_size=(
                sum(o.average_chunk_size * o.chunk_count for o in outcomes) / total_chunks
                if total_chunks
                else 0.0
            ),
            indexing_success_rate=indexed / total_embeddings * 100 if total_embeddings else 0.0,
            total_processing_time_ms=elapsed_ms,
        )
        return OrchestrationResult(
            processed_ids=[o.book for o in outcomes],
            skipped_ids=skipped,
            total_chunks=total_chunks,
            total_embeddings=total_embeddings,
            indexed_count=indexed,
            errors=errors,
            processing_time_ms=elapsed_ms,
            cancelled=self._cancel_event.is_set(),
            outcomes=outcomes,
            stats=stats,
        )

"""Unit tests for PipelineCoordinator.

Collaborators are the in-memory mocks from conftest; the chunker and
structure detector are the real implementations.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from tests.conftest import MockEmbeddingProvider, MockTextExtractor, MockVectorIndex
from textbook_rag.models.pipeline import PipelineStage, ProgressEvent
from textbook_rag.models.rag import ExtractedDocument, UpsertResult
from textbook_rag.pipeline.coordinator import PipelineCoordinator
from textbook_rag.pipeline.progress_tracker import ProgressTracker
from textbook_rag.services.ingestion.chunker import ContentChunker
from textbook_rag.utils.errors import ConfigurationError


def _coordinator(
    extractor,
    embedding=None,
    index=None,
    **kwargs,
) -> PipelineCoordinator:
    return PipelineCoordinator(
        extractor=extractor,
        embedding_provider=embedding or MockEmbeddingProvider(),
        vector_index=index or MockVectorIndex(),
        **kwargs,
    )


# ======================================================================
# Construction
# ======================================================================


class TestConstruction:
    def test_dimension_mismatch_is_fatal(self) -> None:
        with pytest.raises(ConfigurationError, match="does not match"):
            _coordinator(
                MockTextExtractor({}),
                embedding=MockEmbeddingProvider(dimension=32),
                index=MockVectorIndex(dimension=64),
            )

    @pytest.mark.parametrize("dimension", [0, -1])
    def test_non_positive_index_dimension(self, dimension) -> None:
        with pytest.raises(ConfigurationError):
            _coordinator(MockTextExtractor({}), index_dimension=dimension)

    def test_missing_index_dimension(self) -> None:
        index = MockVectorIndex()
        index.get_dimension = MagicMock(return_value=None)

        with pytest.raises(ConfigurationError):
            _coordinator(MockTextExtractor({}), index=index)

    @pytest.mark.parametrize(
        "kwargs",
        [{"max_concurrent_processing": 0}, {"upsert_batch_size": 0}],
    )
    def test_non_positive_settings(self, kwargs) -> None:
        with pytest.raises(ConfigurationError):
            _coordinator(MockTextExtractor({}), **kwargs)

    def test_default_progress_tracker(self) -> None:
        coordinator = _coordinator(MockTextExtractor({}), index_dimension=64)
        assert isinstance(coordinator.progress_tracker, ProgressTracker)


# ======================================================================
# Batch processing
# ======================================================================


class TestProcess:
    @pytest.mark.asyncio
    async def test_processes_every_document(self, sample_textbook_text, make_source_document) -> None:
        extractor = MockTextExtractor({"bio.txt": sample_textbook_text, "chem.txt": sample_textbook_text})
        index = MockVectorIndex()
        coordinator = _coordinator(extractor, index=index)

        result = await coordinator.process(
            [make_source_document("bio", handle="bio.txt"), make_source_document("chem", handle="chem.txt")]
        )

        assert sorted(result.processed_ids) == ["bio", "chem"]
        assert result.errors == []
        assert result.total_chunks == 10
        assert result.total_embeddings == 10
        assert result.indexed_count == 10
        assert len(index.records) == 10
        assert result.stats.avg_chunks_per_book == 5.0
        assert result.stats.indexing_success_rate == 100.0
        assert result.cancelled is False

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, sample_textbook_text, make_source_document) -> None:
        extractor = MockTextExtractor({"good.txt": sample_textbook_text, "bad.pdf": None})
        coordinator = _coordinator(extractor)

        result = await coordinator.process(
            [
                make_source_document("bad", title="Broken Book", handle="bad.pdf"),
                make_source_document("good", handle="good.txt"),
            ]
        )

        assert result.processed_ids == ["good"]
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Failed to process Broken Book: ")
        assert "Cannot read bad.pdf" in result.errors[0]

    @pytest.mark.asyncio
    async def test_embedding_failure_recorded(self, sample_textbook_text, make_source_document) -> None:
        extractor = MockTextExtractor({"bio.txt": sample_textbook_text})
        coordinator = _coordinator(extractor, embedding=MockEmbeddingProvider(fail_on="Membrane"))

        result = await coordinator.process([make_source_document("bio", title="Biology", handle="bio.txt")])

        assert result.processed_ids == []
        assert result.errors[0].startswith("Failed to process Biology: ")
        assert "mock embedding failure" in result.errors[0]

    @pytest.mark.asyncio
    async def test_no_embeddings_fails_document(self, sample_textbook_text, make_source_document) -> None:
        extractor = MockTextExtractor({"bio.txt": sample_textbook_text})
        embedding = MockEmbeddingProvider()
        embedding.embed_chunks = AsyncMock(return_value=[])
        index = MockVectorIndex()
        coordinator = _coordinator(extractor, embedding=embedding, index=index)

        result = await coordinator.process([make_source_document("bio", title="Biology", handle="bio.txt")])

        assert result.processed_ids == []
        assert result.errors == ["Failed to process Biology: [mock_embedding] None of 5 chunks could be embedded"]
        assert index.upsert_calls == 0

    @pytest.mark.asyncio
    async def test_partially_embedded_document_reports_loss(
        self, sample_textbook_text, make_source_document
    ) -> None:
        extractor = MockTextExtractor({"bio.txt": sample_textbook_text})
        embedding = MockEmbeddingProvider()
        full_embed_chunks = embedding.embed_chunks

        async def _drop_last(chunks):
            return (await full_embed_chunks(chunks))[:-1]

        embedding.embed_chunks = _drop_last
        coordinator = _coordinator(extractor, embedding=embedding)

        result = await coordinator.process([make_source_document("bio", title="Biology", handle="bio.txt")])

        assert result.processed_ids == ["bio"]
        assert result.total_chunks == 5
        assert result.indexed_count == 4
        assert result.errors == ["Biology: 1 of 5 chunks could not be embedded"]
        assert result.outcomes[0].errors == result.errors

    @pytest.mark.asyncio
    async def test_upsert_errors_prefixed_with_title(self, sample_textbook_text, make_source_document) -> None:
        index = MockVectorIndex()
        index.upsert = AsyncMock(
            return_value=UpsertResult(success_count=3, failed_count=2, errors=["Batch 1 failed: disk full"])
        )
        coordinator = _coordinator(MockTextExtractor({"bio.txt": sample_textbook_text}), index=index)

        result = await coordinator.process([make_source_document("bio", title="Biology", handle="bio.txt")])

        assert result.processed_ids == ["bio"]
        assert result.errors == ["Biology: Batch 1 failed: disk full"]
        assert result.indexed_count == 3
        assert result.stats.indexing_success_rate == pytest.approx(60.0)
        assert result.outcomes[0].errors == ["Biology: Batch 1 failed: disk full"]

    @pytest.mark.asyncio
    async def test_upsert_batch_size_forwarded(self, sample_textbook_text, make_source_document) -> None:
        index = MockVectorIndex()
        index.upsert = AsyncMock(return_value=UpsertResult(success_count=5))
        coordinator = _coordinator(
            MockTextExtractor({"bio.txt": sample_textbook_text}), index=index, upsert_batch_size=7
        )

        await coordinator.process([make_source_document("bio", handle="bio.txt")])

        assert index.upsert.await_args.kwargs["batch_size"] == 7

    @pytest.mark.asyncio
    async def test_empty_document_indexes_nothing(self, make_source_document) -> None:
        index = MockVectorIndex()
        embedding = MockEmbeddingProvider()
        coordinator = _coordinator(MockTextExtractor({"empty.txt": ""}), embedding=embedding, index=index)

        result = await coordinator.process([make_source_document("empty", handle="empty.txt")])

        assert result.processed_ids == ["empty"]
        assert result.total_chunks == 0
        assert embedding.calls == []
        assert index.upsert_calls == 0

    @pytest.mark.asyncio
    async def test_duplicate_books_processed_once(self, sample_textbook_text, make_source_document) -> None:
        extractor = MockTextExtractor({"bio.txt": sample_textbook_text})
        coordinator = _coordinator(extractor)
        document = make_source_document("bio", handle="bio.txt")

        result = await coordinator.process([document, document])

        assert result.processed_ids == ["bio"]
        assert extractor.extracted == ["bio.txt"]

    @pytest.mark.asyncio
    async def test_empty_batch(self) -> None:
        coordinator = _coordinator(MockTextExtractor({}))

        result = await coordinator.process([])

        assert result.processed_ids == []
        assert result.errors == []
        assert result.stats.avg_chunks_per_book == 0.0

    @pytest.mark.asyncio
    async def test_custom_chunker_used(self, sample_textbook_text, make_source_document) -> None:
        chunker = ContentChunker(quality_threshold=0.95)
        coordinator = _coordinator(MockTextExtractor({"bio.txt": sample_textbook_text}), chunker=chunker)

        result = await coordinator.process([make_source_document("bio", handle="bio.txt")])

        assert result.outcomes[0].strategy_used == "fallback"


# ======================================================================
# Progress reporting
# ======================================================================


class TestProgress:
    @pytest.mark.asyncio
    async def test_event_sequence(self, sample_textbook_text, make_source_document) -> None:
        extractor = MockTextExtractor({f"{n}.txt": sample_textbook_text for n in ("a", "b", "c", "d")})
        coordinator = _coordinator(extractor)
        events: list[ProgressEvent] = []

        await coordinator.process(
            [make_source_document(n, handle=f"{n}.txt") for n in ("a", "b", "c", "d")],
            on_progress=events.append,
        )

        assert [e.stage for e in events] == [
            PipelineStage.DOWNLOADING,
            PipelineStage.EXTRACTING,
            PipelineStage.EXTRACTING,
            PipelineStage.EXTRACTING,
            PipelineStage.EXTRACTING,
            PipelineStage.COMPLETE,
        ]
        assert [e.percentage for e in events] == [0.0, 25.0, 50.0, 75.0, 100.0, 100.0]
        assert events[0].message == "Preparing 4 documents..."
        assert events[-1].message == "Processing complete"

    @pytest.mark.asyncio
    async def test_failed_documents_still_advance_progress(self, sample_textbook_text, make_source_document) -> None:
        extractor = MockTextExtractor({"good.txt": sample_textbook_text, "bad.txt": None})
        coordinator = _coordinator(extractor)
        events: list[ProgressEvent] = []

        await coordinator.process(
            [make_source_document("bad", handle="bad.txt"), make_source_document("good", handle="good.txt")],
            on_progress=events.append,
        )

        extracting = [e.percentage for e in events if e.stage == PipelineStage.EXTRACTING]
        assert extracting == [50.0, 100.0]

    @pytest.mark.asyncio
    async def test_listener_removed_after_run(self, sample_textbook_text, make_source_document) -> None:
        coordinator = _coordinator(MockTextExtractor({"bio.txt": sample_textbook_text}))
        events: list[ProgressEvent] = []

        await coordinator.process([make_source_document("bio", handle="bio.txt")], on_progress=events.append)
        first_run = len(events)
        await coordinator.process([make_source_document("bio", handle="bio.txt")])

        assert len(events) == first_run


# ======================================================================
# Cancellation
# ======================================================================


class _CancellingExtractor(MockTextExtractor):
    """Calls ``coordinator.cancel()`` while extracting the first document."""

    def __init__(self, documents: dict[str, str | None]) -> None:
        super().__init__(documents)
        self.coordinator: PipelineCoordinator | None = None

    async def extract(self, handle: str) -> ExtractedDocument:
        if self.coordinator is not None and not self.extracted:
            self.coordinator.cancel()
        return await super().extract(handle)


class TestCancellation:
    @pytest.mark.asyncio
    async def test_running_document_finishes_pending_are_skipped(
        self, sample_textbook_text, make_source_document
    ) -> None:
        extractor = _CancellingExtractor({f"{n}.txt": sample_textbook_text for n in ("a", "b", "c")})
        index = MockVectorIndex()
        coordinator = _coordinator(extractor, index=index, max_concurrent_processing=1)
        extractor.coordinator = coordinator
        events: list[ProgressEvent] = []

        result = await coordinator.process(
            [make_source_document(n, handle=f"{n}.txt") for n in ("a", "b", "c")],
            on_progress=events.append,
        )

        assert result.cancelled is True
        assert result.processed_ids == ["a"]
        assert sorted(result.skipped_ids) == ["b", "c"]
        assert result.errors == []
        assert {chunk.metadata.book for _, chunk in index.records.values()} == {"a"}
        assert [e.stage for e in events].count(PipelineStage.EXTRACTING) == 1
        assert events[-1].stage == PipelineStage.COMPLETE

    @pytest.mark.asyncio
    async def test_new_run_clears_cancellation(self, sample_textbook_text, make_source_document) -> None:
        coordinator = _coordinator(MockTextExtractor({"bio.txt": sample_textbook_text}))
        coordinator.cancel()

        result = await coordinator.process([make_source_document("bio", handle="bio.txt")])

        assert result.cancelled is False
        assert result.processed_ids == ["bio"]


# ======================================================================
# Query and maintenance
# ======================================================================


class TestQueryAndMaintenance:
    @staticmethod
    async def _loaded(sample_textbook_text, make_source_document):
        extractor = MockTextExtractor({"bio.txt": sample_textbook_text, "chem.txt": sample_textbook_text})
        index = MockVectorIndex()
        coordinator = _coordinator(extractor, index=index)
        await coordinator.process(
            [make_source_document("bio", handle="bio.txt"), make_source_document("chem", handle="chem.txt")]
        )
        return coordinator, index

    @pytest.mark.asyncio
    async def test_query_with_filter(self, sample_textbook_text, make_source_document) -> None:
        coordinator, _ = await self._loaded(sample_textbook_text, make_source_document)

        matches = await coordinator.query("membrane pumps", top_k=3, filter={"book": "chem"})

        assert len(matches) == 3
        assert all(m.metadata["book"] == "chem" for m in matches)

    @pytest.mark.asyncio
    async def test_delete_book(self, sample_textbook_text, make_source_document) -> None:
        coordinator, index = await self._loaded(sample_textbook_text, make_source_document)

        deleted = await coordinator.delete_book("bio")

        assert deleted == 5
        stats = await coordinator.get_system_stats()
        assert stats.index.books == ["chem"]

    @pytest.mark.asyncio
    async def test_system_stats(self, sample_textbook_text, make_source_document) -> None:
        coordinator, _ = await self._loaded(sample_textbook_text, make_source_document)

        stats = await coordinator.get_system_stats()

        assert stats.index.total_vectors == 10
        assert stats.index.vectors_by_book == {"bio": 5, "chem": 5}
        assert stats.embedding_provider == "mock_embedding"
        assert stats.embedding_dimension == 64
        assert stats.vector_index_provider == "mock_index"

    @pytest.mark.asyncio
    async def test_reset(self, sample_textbook_text, make_source_document) -> None:
        coordinator, index = await self._loaded(sample_textbook_text, make_source_document)

        await coordinator.reset()

        assert index.records == {}

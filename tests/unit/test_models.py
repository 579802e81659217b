"""Unit tests for the frozen domain models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from textbook_rag.models import (
    BookMetadata,
    Chapter,
    Chunk,
    ChunkMetadata,
    ContentType,
    OrchestrationResult,
    PipelineStage,
    ProgressEvent,
    Section,
    StructureResult,
)


class TestStructureModels:
    """Validate chapter, section and structure-result constraints."""

    def test_chapter_defaults(self) -> None:
        chapter = Chapter(title="Osmosis", number="0", start_position=0, confidence=0.7)

        assert chapter.end_position is None
        assert chapter.number == "0"

    def test_chapter_confidence_range(self) -> None:
        with pytest.raises(ValidationError):
            Chapter(title="Osmosis", number="1", start_position=0, confidence=1.5)

    def test_chapter_negative_position(self) -> None:
        with pytest.raises(ValidationError):
            Chapter(title="Osmosis", number="1", start_position=-1, confidence=0.9)

    def test_section_defaults(self) -> None:
        section = Section(title="Passive Transport", number="2.1")

        assert section.parent_chapter_title == "Unknown"
        assert section.level == 1

    def test_section_level_bounds(self) -> None:
        with pytest.raises(ValidationError):
            Section(title="Deep", number="1.2.3.4", level=3)

    def test_empty_structure(self) -> None:
        result = StructureResult()

        assert result.chapters == []
        assert result.structure_quality == 0.0
        assert result.used_fallback is True

    def test_frozen_copy_with_update(self) -> None:
        chapter = Chapter(title="Osmosis", number="1", start_position=10, confidence=0.9)

        with pytest.raises(ValidationError):
            chapter.end_position = 20  # type: ignore[misc]

        updated = chapter.model_copy(update={"end_position": 20})
        assert updated.end_position == 20
        assert chapter.end_position is None


class TestChunkModels:
    def test_chunk_metadata_defaults(self) -> None:
        metadata = ChunkMetadata(book="bio", title="Biology", chunk_id="bio_0_abcd1234", chunk_index=0)

        assert metadata.chapter is None
        assert metadata.section is None
        assert metadata.content_type == ContentType.TEXT
        assert metadata.keywords == []

    def test_negative_chunk_index(self) -> None:
        with pytest.raises(ValidationError):
            ChunkMetadata(book="bio", title="Biology", chunk_id="x", chunk_index=-1)

    def test_content_type_serializes_to_value(self) -> None:
        metadata = ChunkMetadata(
            book="bio",
            title="Biology",
            chunk_id="x",
            chunk_index=0,
            content_type=ContentType.FORMULA,
        )
        chunk = Chunk(id="x", text="E = mc^2", metadata=metadata)

        assert chunk.model_dump(mode="json")["metadata"]["content_type"] == "formula"

    def test_book_metadata_subject_optional(self) -> None:
        assert BookMetadata(book="bio", title="Biology").subject == ""


class TestPipelineModels:
    def test_progress_event_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ProgressEvent(stage=PipelineStage.EXTRACTING, percentage=101.0)

    def test_progress_event_timestamp_is_utc(self) -> None:
        event = ProgressEvent(stage=PipelineStage.COMPLETE, percentage=100.0)

        assert event.timestamp.tzinfo is not None

    def test_stage_values(self) -> None:
        assert [stage.value for stage in PipelineStage] == [
            "downloading",
            "extracting",
            "chunking",
            "embedding",
            "indexing",
            "complete",
        ]

    def test_empty_orchestration_result(self) -> None:
        result = OrchestrationResult()

        assert result.processed_ids == []
        assert result.skipped_ids == []
        assert result.cancelled is False
        assert result.stats.indexing_success_rate == 0.0

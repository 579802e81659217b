"""Progress models for the ingestion pipeline.

The coordinator reports progress as discrete :class:`ProgressEvent` records
tagged with a :class:`PipelineStage`.  Events are frozen; the progress
tracker keeps the last one per run id.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# PipelineStage: coarse state machine of one batch run.
# ---------------------------------------------------------------------------
class PipelineStage(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Stages of a batch ingestion run.

    DOWNLOADING → EXTRACTING → (CHUNKING → EMBEDDING → INDEXING per
    document) → COMPLETE.  The coordinator emits DOWNLOADING at 0%, one
    EXTRACTING event per finished document and COMPLETE at 100%.
    """

    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    INDEXING = "indexing"
    COMPLETE = "complete"


class ProgressEvent(BaseModel):
    """A single progress report."""

    model_config = ConfigDict(frozen=True)

    stage: PipelineStage
    percentage: float = Field(default=0.0, ge=0.0, le=100.0)
    message: str = ""
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )

"""Pipeline orchestration components for textbook ingestion."""

from textbook_rag.pipeline.coordinator import PipelineCoordinator
from textbook_rag.pipeline.progress_tracker import ProgressTracker

__all__ = [
    "PipelineCoordinator",
    "ProgressTracker",
]

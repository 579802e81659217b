"""Pipeline progress tracking with callback-based listener notification.

Keeps the last :class:`ProgressEvent` for each ingestion run and broadcasts
every update to the listeners registered for that run.  Listeners are keyed
by run id so several batch runs can share one tracker without cross-talk.

# ─── HOW PROGRESS TRACKING WORKS ──────────────────────────────────────
#
# Observer pattern:
#
#   PipelineCoordinator ──update()──→ ProgressTracker ──callback(event)──→ CLI printer
#                                                     ──→ (any other listener)
#
#   1. The coordinator calls tracker.update(run_id, stage, percentage, msg)
#   2. ProgressTracker stores the event and calls all registered listeners
#   3. Sync and async callbacks are both supported (asyncio.iscoroutine check)
#   4. A listener that raises is logged and skipped; the run continues
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog

from textbook_rag.models.pipeline import PipelineStage, ProgressEvent
from textbook_rag.utils.logging import get_logger

ProgressCallback = Callable[[ProgressEvent], object]


class ProgressTracker:
    """Tracks and broadcasts ingestion progress via callbacks."""

    def __init__(self) -> None:
        self._events: dict[str, ProgressEvent] = {}
        self._listeners: dict[str, list[ProgressCallback]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def update(
        self,
        run_id: str,
        stage: PipelineStage,
        percentage: float,
        message: str = "",
    ) -> ProgressEvent:
        """Record a progress update and notify all listeners of *run_id*.

        Parameters
        ----------
        run_id:
            The batch run to update.
        stage:
            The current pipeline stage.
        percentage:
            Completion percentage; clamped to ``0.0 – 100.0``.
        message:
            Human-readable status message.

        Returns
        -------
        ProgressEvent
            The event that was recorded and broadcast.
        """
        event = ProgressEvent(
            stage=stage,
            percentage=max(0.0, min(100.0, percentage)),
            message=message,
        )
        self._events[run_id] = event

        self._logger.debug(
            "progress_update",
            run_id=run_id,
            stage=stage.value,
            percentage=round(event.percentage, 1),
            message=message,
        )

        await self._notify_listeners(run_id, event)
        return event

    def register_listener(self, run_id: str, callback: ProgressCallback) -> None:
        """Register *callback* (sync or async, called with a :class:`ProgressEvent`) for *run_id*."""
        listeners = self._listeners.setdefault(run_id, [])
        if callback not in listeners:
            listeners.append(callback)
            self._logger.debug(
                "listener_registered",
                run_id=run_id,
                total_listeners=len(listeners),
            )

    def unregister_listener(self, run_id: str, callback: ProgressCallback) -> None:
        """Remove a previously registered callback for *run_id*."""
        listeners = self._listeners.get(run_id, [])
        if callback in listeners:
            listeners.remove(callback)
            self._logger.debug(
                "listener_unregistered",
                run_id=run_id,
                remaining_listeners=len(listeners),
            )
        if not listeners:
            self._listeners.pop(run_id, None)

    def get_status(self, run_id: str) -> ProgressEvent | None:
        """Return the last event recorded for *run_id*, or ``None`` if untracked."""
        return self._events.get(run_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _notify_listeners(self, run_id: str, event: ProgressEvent) -> None:
        """Invoke all listeners of *run_id*; a listener that raises is logged and skipped."""
        for callback in list(self._listeners.get(run_id, [])):
            try:
                result = callback(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    run_id=run_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )

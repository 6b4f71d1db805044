"""Progress tracking for batch runs.

Observable counters for long-running reconciliation batches, used by the
CLI to drive a progress bar and by the logs to summarize a run.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

from asaas_sync.logging import get_logger

logger = get_logger(__name__)


class ProgressState(StrEnum):
    """State of a tracked operation."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ProgressUpdate:
    """A progress update event."""

    total: int
    succeeded: int
    ignored: int
    failed: int
    state: ProgressState
    current_item: str | None = None
    error: str | None = None
    started_at: datetime | None = None
    elapsed_seconds: float = 0.0

    @property
    def processed(self) -> int:
        """Items settled so far, whatever their outcome."""
        return self.succeeded + self.ignored + self.failed

    @property
    def remaining(self) -> int:
        """Number of items remaining."""
        return max(0, self.total - self.processed)

    @property
    def progress_percent(self) -> float:
        """Completion percentage (0-100)."""
        if self.total == 0:
            return 100.0
        return (self.processed / self.total) * 100


ProgressCallback = Callable[[ProgressUpdate], None]


class ProgressTracker:
    """Observable progress tracker for batch runs.

    Usage:
        tracker = ProgressTracker(name="customers")
        tracker.on_progress(lambda update: print(f"{update.progress_percent:.0f}%"))

        orchestrator = BatchOrchestrator(batch_size=10, progress=tracker)
        await orchestrator.run(items, worker)
    """

    def __init__(self, total: int = 0, name: str = "batch") -> None:
        """Initialize the progress tracker.

        Args:
            total: Total number of items to process
            name: Name of the operation for logging
        """
        self._total = total
        self._name = name
        self._succeeded = 0
        self._ignored = 0
        self._failed = 0
        self._state = ProgressState.PENDING
        self._current_item: str | None = None
        self._error: str | None = None
        self._started_at: datetime | None = None
        self._start_time: float | None = None
        self._callbacks: list[ProgressCallback] = []

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------
    @property
    def name(self) -> str:
        """Name of the tracked operation."""
        return self._name

    @property
    def total(self) -> int:
        """Total number of items to process."""
        return self._total

    @total.setter
    def total(self, value: int) -> None:
        self._total = value
        self._notify()

    @property
    def succeeded(self) -> int:
        return self._succeeded

    @property
    def ignored(self) -> int:
        return self._ignored

    @property
    def failed(self) -> int:
        return self._failed

    @property
    def state(self) -> ProgressState:
        """Current state of the operation."""
        return self._state

    @property
    def is_done(self) -> bool:
        """Whether the operation has finished (completed or failed)."""
        return self._state in (ProgressState.COMPLETED, ProgressState.FAILED)

    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time since start in seconds."""
        if self._start_time is None:
            return 0.0
        return time.monotonic() - self._start_time

    # -------------------------------------------------------------------------
    # Callbacks
    # -------------------------------------------------------------------------
    def on_progress(self, callback: ProgressCallback) -> None:
        """Register a callback receiving a ProgressUpdate on every change."""
        self._callbacks.append(callback)

    def _notify(self) -> None:
        update = self.get_update()
        for callback in self._callbacks:
            try:
                callback(update)
            except Exception as e:
                logger.warning("Progress callback error: {}", e)

    # -------------------------------------------------------------------------
    # State Management
    # -------------------------------------------------------------------------
    def start(self) -> None:
        """Mark operation as started."""
        self._state = ProgressState.IN_PROGRESS
        self._started_at = datetime.now(UTC)
        self._start_time = time.monotonic()
        logger.info("Started {} (total={})", self._name, self._total)
        self._notify()

    def complete(self) -> None:
        """Mark operation as completed (individual items may still have failed)."""
        self._state = ProgressState.COMPLETED
        self._current_item = None
        logger.info(
            "Completed {}: {} succeeded, {} ignored, {} failed in {:.1f}s",
            self._name,
            self._succeeded,
            self._ignored,
            self._failed,
            self.elapsed_seconds,
        )
        self._notify()

    def fail(self, error: str) -> None:
        """Mark operation as aborted.

        Args:
            error: Error message describing the failure
        """
        self._state = ProgressState.FAILED
        self._error = error
        self._current_item = None
        logger.error("Failed {}: {}", self._name, error)
        self._notify()

    # -------------------------------------------------------------------------
    # Progress Updates
    # -------------------------------------------------------------------------
    def set_current(self, item: str) -> None:
        """Set the item currently being processed."""
        self._current_item = item
        self._notify()

    def increment(self, count: int = 1) -> None:
        """Count succeeded items."""
        self._succeeded += count
        self._notify()

    def increment_ignored(self, count: int = 1) -> None:
        """Count items skipped on purpose."""
        self._ignored += count
        self._notify()

    def increment_failed(self, count: int = 1, error: str | None = None) -> None:
        """Count failed items.

        Args:
            count: Number of items that failed (default 1)
            error: Optional error description
        """
        self._failed += count
        if error:
            logger.debug("{} item failed: {}", self._name, error)
        self._notify()

    def add_total(self, count: int) -> None:
        """Add to total count (for totals discovered while running)."""
        self._total += count
        self._notify()

    def get_update(self) -> ProgressUpdate:
        """Get current progress as an update object."""
        return ProgressUpdate(
            total=self._total,
            succeeded=self._succeeded,
            ignored=self._ignored,
            failed=self._failed,
            state=self._state,
            current_item=self._current_item,
            error=self._error,
            started_at=self._started_at,
            elapsed_seconds=self.elapsed_seconds,
        )

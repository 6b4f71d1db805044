"""Batch execution with bounded concurrency and progress tracking."""

from .orchestrator import (
    BatchItemOutcome,
    BatchOrchestrator,
    BatchResult,
    ItemIgnored,
    ItemState,
    run_batch,
)
from .progress import ProgressState, ProgressTracker, ProgressUpdate

__all__ = [
    "BatchItemOutcome",
    "BatchOrchestrator",
    "BatchResult",
    "ItemIgnored",
    "ItemState",
    "ProgressState",
    "ProgressTracker",
    "ProgressUpdate",
    "run_batch",
]

"""Bounded-concurrency batch orchestrator.

Runs independent units of work in consecutive chunks. Items inside a chunk
run concurrently; chunks run one after another, optionally separated by a
fixed pause. One item's failure never stops the others.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Generic, Self, TypeVar

from asaas_sync.logging import get_logger

from .progress import ProgressTracker

if TYPE_CHECKING:
    from asaas_sync.config import SyncConfig

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class ItemIgnored(Exception):
    """Raised by a worker to skip an item on purpose.

    Ignored items are counted separately from failures.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ItemState(StrEnum):
    """Bucket an item's outcome lands in."""

    SUCCEEDED = "succeeded"
    IGNORED = "ignored"
    FAILED = "failed"


@dataclass
class BatchItemOutcome(Generic[T, R]):
    """Settled outcome of one input item."""

    index: int
    """Position of the item in the input sequence."""

    item: T
    state: ItemState
    result: R | None = None
    error: Exception | None = None


@dataclass
class BatchResult(Generic[T, R]):
    """Result of a batch run, one outcome per input item in input order."""

    outcomes: list[BatchItemOutcome[T, R]] = field(default_factory=list)
    chunks: int = 0
    duration_seconds: float = 0.0

    def _in_state(self, state: ItemState) -> list[BatchItemOutcome[T, R]]:
        return [o for o in self.outcomes if o.state == state]

    @property
    def succeeded(self) -> list[BatchItemOutcome[T, R]]:
        return self._in_state(ItemState.SUCCEEDED)

    @property
    def ignored(self) -> list[BatchItemOutcome[T, R]]:
        return self._in_state(ItemState.IGNORED)

    @property
    def failed(self) -> list[BatchItemOutcome[T, R]]:
        return self._in_state(ItemState.FAILED)

    @property
    def results(self) -> list[R]:
        """Worker return values of every item that produced one, in input order."""
        return [o.result for o in self.outcomes if o.result is not None]

    @property
    def total_count(self) -> int:
        return len(self.outcomes)

    @property
    def all_succeeded(self) -> bool:
        return all(o.state == ItemState.SUCCEEDED for o in self.outcomes)


ChunkCallback = Callable[[int, Sequence[BatchItemOutcome[T, R]]], Awaitable[None]]


class BatchOrchestrator(Generic[T, R]):
    """Processes a list of items with bounded concurrency.

    Usage:
        orchestrator = BatchOrchestrator(batch_size=10, delay=0.1)

        async def fetch(payment_id: str) -> AsaasPayment:
            return await client.get_payment(payment_id)

        result = await orchestrator.run(payment_ids, fetch)
        print(f"{len(result.succeeded)} fetched, {len(result.failed)} failed")

    Outcome classification:
        - Worker returned: SUCCEEDED, unless ``classify`` maps the returned
          value to another state
        - Worker raised one of ``ignored_exceptions``: IGNORED
        - Worker raised any other Exception: FAILED
        - Worker raised one of ``fatal_exceptions``: the run stops after the
          current chunk settles and the error propagates
    """

    def __init__(
        self,
        batch_size: int = 10,
        delay: float = 0.0,
        *,
        ignored_exceptions: tuple[type[Exception], ...] = (ItemIgnored,),
        fatal_exceptions: tuple[type[Exception], ...] = (),
        classify: Callable[[R], ItemState] | None = None,
        progress: ProgressTracker | None = None,
        on_chunk_complete: ChunkCallback[T, R] | None = None,
        item_name: Callable[[T], str] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            batch_size: Items processed concurrently per chunk
            delay: Seconds to pause between chunks (0 to rely on the governor)
            ignored_exceptions: Exception types counted as IGNORED
            fatal_exceptions: Exception types that abort the whole run
            classify: Optional mapping from a worker's return value to a state
            progress: Optional ProgressTracker
            on_chunk_complete: Awaited after each chunk with its index and outcomes
            item_name: Optional function giving a display name for an item
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._batch_size = batch_size
        self._delay = delay
        self._ignored_exceptions = ignored_exceptions
        self._fatal_exceptions = fatal_exceptions
        self._classify = classify
        self._progress = progress
        self._on_chunk_complete = on_chunk_complete
        self._item_name = item_name

    @classmethod
    def from_config(cls, config: SyncConfig, **kwargs: object) -> Self:
        """Build an orchestrator from the sync section of the settings."""
        return cls(
            batch_size=config.batch_size,
            delay=config.inter_batch_delay_ms / 1000,
            **kwargs,  # type: ignore[arg-type]
        )

    @property
    def batch_size(self) -> int:
        return self._batch_size

    async def run(
        self,
        items: Sequence[T],
        worker: Callable[[T], Awaitable[R]],
    ) -> BatchResult[T, R]:
        """Run the worker over every item.

        Args:
            items: Items to process
            worker: Async function applied to each item

        Returns:
            BatchResult with exactly one outcome per input item
        """
        result: BatchResult[T, R] = BatchResult()
        if not items:
            return result

        start = time.monotonic()
        if self._progress:
            if self._progress.total == 0:
                self._progress.total = len(items)
            self._progress.start()

        try:
            for chunk_start in range(0, len(items), self._batch_size):
                if chunk_start and self._delay > 0:
                    await asyncio.sleep(self._delay)

                chunk = items[chunk_start : chunk_start + self._batch_size]
                outcomes = await self._run_chunk(chunk, worker, chunk_start)
                result.outcomes.extend(outcomes)
                result.chunks += 1

                fatal = next(
                    (o.error for o in outcomes if isinstance(o.error, self._fatal_exceptions)),
                    None,
                )
                if fatal is not None:
                    raise fatal

                if self._on_chunk_complete is not None:
                    await self._on_chunk_complete(result.chunks - 1, outcomes)
        except Exception as e:
            if self._progress:
                self._progress.fail(str(e))
            raise

        result.duration_seconds = time.monotonic() - start
        if self._progress:
            self._progress.complete()

        logger.debug(
            "Batch finished: {} item(s) in {} chunk(s), {} failed",
            result.total_count,
            result.chunks,
            len(result.failed),
        )
        return result

    async def _run_chunk(
        self,
        chunk: Sequence[T],
        worker: Callable[[T], Awaitable[R]],
        start_index: int,
    ) -> list[BatchItemOutcome[T, R]]:
        """Run one chunk concurrently and wait for every item to settle."""
        if self._progress and self._item_name:
            self._progress.set_current(", ".join(self._item_name(item) for item in chunk))

        settled = await asyncio.gather(
            *(worker(item) for item in chunk),
            return_exceptions=True,
        )

        outcomes: list[BatchItemOutcome[T, R]] = []
        for offset, (item, res) in enumerate(zip(chunk, settled, strict=True)):
            index = start_index + offset
            if isinstance(res, self._ignored_exceptions):
                outcome = BatchItemOutcome(index, item, ItemState.IGNORED, error=res)
            elif isinstance(res, Exception):
                outcome = BatchItemOutcome(index, item, ItemState.FAILED, error=res)
            elif isinstance(res, BaseException):
                # Cancellation and interpreter exits are not item failures
                raise res
            else:
                state = self._classify(res) if self._classify else ItemState.SUCCEEDED
                outcome = BatchItemOutcome(index, item, state, result=res)

            self._track(outcome)
            outcomes.append(outcome)
        return outcomes

    def _track(self, outcome: BatchItemOutcome[T, R]) -> None:
        if self._progress is None:
            return
        if outcome.state == ItemState.SUCCEEDED:
            self._progress.increment()
        elif outcome.state == ItemState.IGNORED:
            self._progress.increment_ignored()
        else:
            error = str(outcome.error) if outcome.error else None
            self._progress.increment_failed(error=error)


async def run_batch(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    *,
    batch_size: int = 10,
    delay: float = 0.0,
    progress: ProgressTracker | None = None,
) -> BatchResult[T, R]:
    """Convenience function for one-off batch runs.

    Args:
        items: Items to process
        worker: Async function applied to each item
        batch_size: Items processed concurrently per chunk
        delay: Seconds to pause between chunks
        progress: Optional ProgressTracker

    Returns:
        BatchResult with exactly one outcome per input item
    """
    orchestrator: BatchOrchestrator[T, R] = BatchOrchestrator(
        batch_size=batch_size, delay=delay, progress=progress
    )
    return await orchestrator.run(items, worker)

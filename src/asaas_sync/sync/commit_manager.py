"""Commit Manager - Chunked commit boundaries for long sync runs.

Instead of committing every reconciled record at session exit
(all-or-nothing), writes are committed every ``batch_size`` records, so a
crash mid-run loses at most the last uncommitted batch. Reruns are safe
because every write is an upsert.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from asaas_sync.logging import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class CommitManager:
    """Manages commit boundaries for batch operations.

    Shares the repositories' write lock so a commit never interleaves with
    a statement from a record still in flight.

    Usage:
        async with get_session(auto_commit=False) as session:
            write_lock = asyncio.Lock()
            commit_manager = CommitManager(session, write_lock, batch_size=25)

            # ... reconcile records ...
            await commit_manager.record_success()  # Auto-commits at batch_size

            await commit_manager.finalize()  # Commit remaining
    """

    def __init__(
        self,
        session: AsyncSession,
        write_lock: asyncio.Lock | None = None,
        batch_size: int = 25,
    ) -> None:
        """Initialize the commit manager.

        Args:
            session: Async SQLAlchemy session to commit on.
            write_lock: Lock shared with the repositories on this session.
            batch_size: Writes to accumulate before an automatic commit.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._session = session
        self._write_lock = write_lock
        self._batch_size = batch_size
        self._uncommitted_count = 0
        self._total_committed = 0

    @property
    def uncommitted_count(self) -> int:
        """Number of writes pending commit."""
        return self._uncommitted_count

    @property
    def total_committed(self) -> int:
        """Total writes committed across all batches."""
        return self._total_committed

    @property
    def batch_size(self) -> int:
        return self._batch_size

    async def record_success(self, count: int = 1) -> int:
        """Record completed writes, committing once batch_size is reached.

        Returns:
            Number of writes committed (0 if the batch is not full yet).
        """
        self._uncommitted_count += count
        if self._uncommitted_count >= self._batch_size:
            return await self.commit()
        return 0

    async def commit(self) -> int:
        """Commit pending writes now.

        Returns:
            Number of writes committed (0 if nothing to commit).
        """
        if self._uncommitted_count == 0:
            return 0

        if self._write_lock:
            async with self._write_lock:
                await self._session.commit()
        else:
            await self._session.commit()

        committed = self._uncommitted_count
        self._total_committed += committed
        self._uncommitted_count = 0

        logger.debug(
            "Committed batch of {} write(s) (total: {})",
            committed,
            self._total_committed,
        )
        return committed

    async def finalize(self) -> int:
        """Commit whatever is left at the end of a run.

        Returns:
            Number of writes committed (0 if nothing pending).
        """
        return await self.commit()

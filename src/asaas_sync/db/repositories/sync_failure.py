"""Repository for SyncFailure model CRUD operations."""

import asyncio
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Result, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable

from asaas_sync.db.exceptions import StoreError
from asaas_sync.db.models import RecordKind, SyncFailure, SyncFailureStatus

from .base import BaseRepository


class SyncFailureRepository(BaseRepository[SyncFailure]):
    """Repository for tracking failed record reconciliations.

    Manages the lifecycle of sync failures:
    - Recording new failures (or bumping the retry count of a pending one)
    - Querying pending failures for a retry pass
    - Marking failures as resolved or permanent
    """

    def __init__(
        self,
        session: AsyncSession,
        write_lock: asyncio.Lock | None = None,
    ) -> None:
        super().__init__(session, SyncFailure, write_lock)

    async def _execute(self, stmt: Executable, action: str) -> Result[Any]:
        try:
            return await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"{action} failed: {e}") from e

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    async def get_pending(
        self,
        record_kind: RecordKind | None = None,
        limit: int = 100,
    ) -> list[SyncFailure]:
        """Get pending failures ready for retry.

        Args:
            record_kind: Filter by record kind (optional)
            limit: Maximum number of failures to return

        Returns:
            Pending failures ordered by failed_at (oldest first)
        """
        stmt = select(SyncFailure).where(SyncFailure.status == SyncFailureStatus.PENDING)
        if record_kind is not None:
            stmt = stmt.where(SyncFailure.record_kind == record_kind)
        stmt = stmt.order_by(SyncFailure.failed_at).limit(limit)

        result = await self._execute(stmt, "Pending failure query")
        return list(result.scalars().all())

    async def get_pending_for(
        self,
        record_kind: RecordKind,
        asaas_id: str,
    ) -> SyncFailure | None:
        """Get the pending failure of one record, if any."""
        stmt = select(SyncFailure).where(
            SyncFailure.record_kind == record_kind,
            SyncFailure.asaas_id == asaas_id,
            SyncFailure.status == SyncFailureStatus.PENDING,
        )
        result = await self._execute(stmt, f"Failure lookup of {record_kind.value} {asaas_id}")
        return result.scalar_one_or_none()

    async def get_stats(self, record_kind: RecordKind | None = None) -> dict[str, Any]:
        """Get failure counts by status.

        Args:
            record_kind: Filter by record kind (optional)

        Returns:
            Dictionary with counts by status and total
        """
        stmt = select(SyncFailure.status, func.count(SyncFailure.id))
        if record_kind is not None:
            stmt = stmt.where(SyncFailure.record_kind == record_kind)
        result = await self._execute(stmt.group_by(SyncFailure.status), "Failure stats query")

        stats: dict[str, Any] = {
            "pending": 0,
            "resolved": 0,
            "permanent": 0,
            "total": 0,
        }
        for status, count in result.all():
            stats[status.value] = count
            stats["total"] += count
        return stats

    # -------------------------------------------------------------------------
    # Create/Update Methods
    # -------------------------------------------------------------------------

    async def record_failure(
        self,
        record_kind: RecordKind,
        asaas_id: str,
        error: Exception | str,
    ) -> SyncFailure:
        """Record a new failure or bump the retry count of the pending one.

        Args:
            record_kind: Kind of the record that failed
            asaas_id: Asaas ID of the record
            error: Exception or error message string

        Returns:
            The failure record (new or updated)

        Raises:
            StoreError: If the failure could not be written
        """
        error_message = str(error)
        error_type = type(error).__name__ if isinstance(error, Exception) else "Unknown"

        async with self._savepoint(f"Recording failure of {record_kind.value} {asaas_id}"):
            existing = await self.get_pending_for(record_kind, asaas_id)
            if existing is not None:
                existing.retry_count += 1
                existing.error_message = error_message
                existing.error_type = error_type
                existing.failed_at = datetime.now(UTC)
                await self._session.flush()
                return existing

            failure = SyncFailure(
                record_kind=record_kind,
                asaas_id=asaas_id,
                error_message=error_message,
                error_type=error_type,
                retry_count=0,
                status=SyncFailureStatus.PENDING,
                failed_at=datetime.now(UTC),
            )
            self._session.add(failure)
            await self._session.flush()
            return failure

    async def resolve_pending(self, record_kind: RecordKind, asaas_id: str) -> bool:
        """Mark the pending failure of a record as resolved, if there is one.

        Returns:
            True if a pending failure was resolved

        Raises:
            StoreError: If the failure could not be updated
        """
        async with self._savepoint(f"Resolving failure of {record_kind.value} {asaas_id}"):
            failure = await self.get_pending_for(record_kind, asaas_id)
            if failure is None:
                return False
            failure.status = SyncFailureStatus.RESOLVED
            failure.resolved_at = datetime.now(UTC)
            await self._session.flush()
            return True

    async def mark_resolved(self, failure_id: int) -> SyncFailure | None:
        """Mark a failure as resolved after a successful retry.

        Raises:
            StoreError: If the failure could not be updated
        """
        failure = await self.get_by_id(failure_id)
        if failure is None:
            return None

        async with self._savepoint(f"Resolving failure {failure_id}"):
            failure.status = SyncFailureStatus.RESOLVED
            failure.resolved_at = datetime.now(UTC)
            await self._session.flush()
        return failure

    async def mark_permanent(self, failure_id: int) -> SyncFailure | None:
        """Mark a failure as permanent (no more retries).

        Use when the record is gone upstream or max retries are exceeded.

        Raises:
            StoreError: If the failure could not be updated
        """
        failure = await self.get_by_id(failure_id)
        if failure is None:
            return None

        async with self._savepoint(f"Marking failure {failure_id} permanent"):
            failure.status = SyncFailureStatus.PERMANENT
            await self._session.flush()
        return failure

"""Failure Retry Service - Retry previously failed reconciliations.

Reads pending rows of ``sync_failures``, re-fetches each record from its
single-item endpoint and reconciles it again. The failure row is resolved
on success, marked permanent when the record is gone upstream, and
otherwise kept pending with a bumped retry count until the limit.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from asaas_sync.asaas.exceptions import AsaasAuthenticationError, AsaasNotFoundError
from asaas_sync.db.exceptions import StoreError
from asaas_sync.db.models import RecordKind
from asaas_sync.logging import bind_record, get_logger

from .entities import spec_for
from .enums import SyncOutcomeKind
from .results import SyncOutcome

if TYPE_CHECKING:
    from asaas_sync.asaas.client import AsaasClient
    from asaas_sync.db.models import SyncFailure
    from asaas_sync.db.repositories import SyncFailureRepository

    from .reconciler import ReconciliationEngine

logger = get_logger(__name__)


@dataclass
class RetryResult:
    """Result of a failure retry pass."""

    total_pending: int = 0
    """Pending failures picked up by this pass."""

    resolved: int = 0
    """Failures whose record reconciled successfully."""

    failed_again: int = 0
    """Failures that failed again and stay pending."""

    marked_permanent: int = 0
    """Failures given up on (gone upstream or retry limit reached)."""

    duration_seconds: float = 0.0

    outcomes: list[SyncOutcome] = field(default_factory=list)
    """Outcome of every attempted record, in retry order."""

    @property
    def total_attempted(self) -> int:
        return self.resolved + self.failed_again + self.marked_permanent

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_pending": self.total_pending,
            "resolved": self.resolved,
            "failed_again": self.failed_again,
            "marked_permanent": self.marked_permanent,
            "total_attempted": self.total_attempted,
            "duration_seconds": round(self.duration_seconds, 2),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


class FailureRetryService:
    """Service for retrying recorded reconciliation failures.

    Usage:
        async with AsaasClient() as client:
            async with get_session() as session:
                engine = ReconciliationEngine(client, session)
                service = FailureRetryService(client, engine, max_retries=3)

                result = await service.retry_pending()
                print(f"Resolved: {result.resolved}, permanent: {result.marked_permanent}")
    """

    def __init__(
        self,
        client: AsaasClient,
        engine: ReconciliationEngine,
        failure_repository: SyncFailureRepository | None = None,
        max_retries: int = 3,
    ) -> None:
        """Initialize the retry service.

        Args:
            client: Asaas API client
            engine: Reconciliation engine (must track failures)
            failure_repository: Defaults to the engine's failure repository
            max_retries: Failed retries before a failure is marked permanent
        """
        self._client = client
        self._engine = engine
        self._failures = failure_repository or engine.failure_repository
        self._max_retries = max_retries

    async def retry_pending(
        self,
        record_kind: RecordKind | None = None,
        limit: int = 100,
    ) -> RetryResult:
        """Retry pending failures, oldest first.

        Failures are retried one at a time; the governor still paces the
        underlying requests. A failure row that cannot be updated counts as
        failed again and does not stop the pass.

        Args:
            record_kind: Only retry failures of this kind (optional)
            limit: Maximum number of failures to retry

        Returns:
            RetryResult with aggregated statistics

        Raises:
            AsaasAuthenticationError: If Asaas rejected the API key
            StoreError: If the pending failures cannot be read
        """
        start_time = time.monotonic()
        result = RetryResult()

        pending = await self._failures.get_pending(record_kind=record_kind, limit=limit)
        result.total_pending = len(pending)
        if not pending:
            logger.info("No pending failures to retry")
            result.duration_seconds = time.monotonic() - start_time
            return result

        logger.info("Retrying {} pending failure(s)", len(pending))
        for failure in pending:
            kind, asaas_id = failure.record_kind, failure.asaas_id
            try:
                outcome = await self._retry_one(failure, result)
            except StoreError as e:
                # The failure row is left as it was and comes up again next pass
                result.failed_again += 1
                logger.error("Could not update failure of {} {}: {}", kind.value, asaas_id, e)
                outcome = SyncOutcome.from_error(kind, asaas_id, e)
            result.outcomes.append(outcome)

        result.duration_seconds = time.monotonic() - start_time
        logger.info(
            "Retry complete: resolved={}, failed_again={}, permanent={} ({:.1f}s)",
            result.resolved,
            result.failed_again,
            result.marked_permanent,
            result.duration_seconds,
        )
        return result

    async def _retry_one(self, failure: SyncFailure, result: RetryResult) -> SyncOutcome:
        spec = spec_for(failure.record_kind)
        failure_id, asaas_id = failure.id, failure.asaas_id
        record_logger = bind_record(spec.kind.value, asaas_id)
        record_logger.debug("Retrying (attempt {})", failure.retry_count + 1)

        try:
            remote = await spec.fetch_one(self._client, asaas_id)
        except AsaasAuthenticationError:
            raise
        except AsaasNotFoundError as e:
            await self._failures.mark_permanent(failure_id)
            result.marked_permanent += 1
            record_logger.warning("Gone upstream, marked permanent")
            return SyncOutcome.from_error(spec.kind, asaas_id, e)
        except Exception as e:
            await self._failures.record_failure(spec.kind, asaas_id, e)
            outcome = SyncOutcome.from_error(spec.kind, asaas_id, e)
            await self._after_failed_attempt(failure_id, result, outcome)
            return outcome

        outcome = await self._engine.reconcile_record(spec, remote)

        if outcome.outcome is SyncOutcomeKind.IGNORED:
            await self._failures.mark_permanent(failure_id)
            result.marked_permanent += 1
            record_logger.info("Ignored on retry ({}), marked permanent", outcome.reason)
        elif outcome.outcome is SyncOutcomeKind.FAILED:
            # reconcile_record already bumped the retry count
            await self._after_failed_attempt(failure_id, result, outcome)
        else:
            await self._failures.mark_resolved(failure_id)
            result.resolved += 1
            record_logger.info("Resolved ({})", outcome.outcome.value)
        return outcome

    async def _after_failed_attempt(
        self,
        failure_id: int,
        result: RetryResult,
        outcome: SyncOutcome,
    ) -> None:
        # A rolled-back savepoint leaves the instance expired
        failure = await self._failures.get_by_id(failure_id)
        retry_count = failure.retry_count if failure is not None else 0

        if retry_count >= self._max_retries:
            await self._failures.mark_permanent(failure_id)
            result.marked_permanent += 1
            logger.warning(
                "{} {} failed permanently after {} retries: {}",
                outcome.kind.value,
                outcome.asaas_id,
                retry_count,
                outcome.error,
            )
        else:
            result.failed_again += 1
            logger.warning(
                "{} {} failed again (retry {}/{}): {}",
                outcome.kind.value,
                outcome.asaas_id,
                retry_count,
                self._max_retries,
                outcome.error,
            )

    async def get_failure_stats(self, record_kind: RecordKind | None = None) -> dict[str, Any]:
        """Get failure counts by status."""
        return await self._failures.get_stats(record_kind)

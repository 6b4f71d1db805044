"""Bank slip backfill for installment plans.

The installment list endpoint omits the carnet URL, so plans mirrored by a
full sync start without one. This service fetches each such plan from the
single-item endpoint and stores the URL it reports.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from asaas_sync.asaas.exceptions import AsaasAuthenticationError, AsaasNotFoundError
from asaas_sync.batch import BatchItemOutcome, BatchOrchestrator, ItemIgnored, ProgressTracker
from asaas_sync.config import SyncConfig, get_settings
from asaas_sync.logging import get_logger

if TYPE_CHECKING:
    from asaas_sync.asaas.client import AsaasClient
    from asaas_sync.db.repositories import InstallmentRepository

    from .commit_manager import CommitManager

logger = get_logger(__name__)


@dataclass
class BackfillResult:
    """Result of a bank slip backfill run."""

    candidates: int = 0
    """Local plans without a bank slip URL."""

    filled: int = 0
    skipped: list[tuple[str, str]] = field(default_factory=list)
    """List of (installment_id, reason) for plans left untouched."""

    failures: list[tuple[str, str]] = field(default_factory=list)
    """List of (installment_id, error) for plans that failed."""

    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "candidates": self.candidates,
            "filled": self.filled,
            "skipped": [{"installment_id": i, "reason": r} for i, r in self.skipped],
            "failures": [{"installment_id": i, "error": e} for i, e in self.failures],
            "duration_seconds": round(self.duration_seconds, 2),
        }


class BankSlipBackfillService:
    """Fills ``bank_slip_url`` of installment plans that lack it.

    Usage:
        async with AsaasClient() as client:
            async with get_session() as session:
                service = BankSlipBackfillService(client, InstallmentRepository(session))
                result = await service.run(limit=500)
    """

    def __init__(
        self,
        client: AsaasClient,
        installment_repository: InstallmentRepository,
        config: SyncConfig | None = None,
        commit_manager: CommitManager | None = None,
        progress: ProgressTracker | None = None,
    ) -> None:
        self._client = client
        self._installments = installment_repository
        self._config = config or get_settings().sync
        self._commit_manager = commit_manager
        self._progress = progress

    async def run(self, limit: int | None = None) -> BackfillResult:
        """Backfill every plan missing its bank slip URL.

        Args:
            limit: Maximum number of plans to process (None for all)

        Returns:
            BackfillResult with per-plan details

        Raises:
            AsaasAuthenticationError: If Asaas rejected the API key
        """
        start_time = time.monotonic()
        result = BackfillResult()

        plans = await self._installments.get_missing_bank_slip(limit)
        plan_ids = [plan.id for plan in plans]
        result.candidates = len(plan_ids)
        if not plan_ids:
            logger.info("No installment plans missing a bank slip")
            return result

        orchestrator: BatchOrchestrator[str, str] = BatchOrchestrator.from_config(
            self._config,
            fatal_exceptions=(AsaasAuthenticationError,),
            progress=self._progress,
            on_chunk_complete=self._on_chunk_complete,
        )
        batch = await orchestrator.run(plan_ids, self._fill)

        result.filled = len(batch.succeeded)
        for outcome in batch.ignored:
            reason = outcome.error.reason if isinstance(outcome.error, ItemIgnored) else ""
            result.skipped.append((outcome.item, reason))
        for outcome in batch.failed:
            result.failures.append((outcome.item, f"{type(outcome.error).__name__}: {outcome.error}"))

        if self._commit_manager is not None:
            await self._commit_manager.finalize()

        result.duration_seconds = time.monotonic() - start_time
        logger.info(
            "Bank slip backfill: {} filled, {} skipped, {} failed of {}",
            result.filled,
            len(result.skipped),
            len(result.failures),
            result.candidates,
        )
        return result

    async def _fill(self, installment_id: str) -> str:
        try:
            installment = await self._client.get_installment(installment_id)
        except AsaasNotFoundError as e:
            raise ItemIgnored("not found upstream") from e

        if not installment.bank_slip_url:
            raise ItemIgnored("no bank slip upstream")

        await self._installments.set_bank_slip_url(installment_id, installment.bank_slip_url)
        return installment.bank_slip_url

    async def _on_chunk_complete(
        self,
        chunk_index: int,
        outcomes: Sequence[BatchItemOutcome[str, str]],
    ) -> None:
        if self._commit_manager is None:
            return
        filled = sum(1 for o in outcomes if o.result is not None)
        if filled:
            await self._commit_manager.record_success(filled)

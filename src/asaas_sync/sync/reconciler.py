"""Reconciliation Engine - Lookup → Compare → Write pipeline.

For every upstream record the engine loads the local row, compares the
tracked fields and writes only when something changed:

    Fetched → Looked-up → {Insert | Compare} → {Created | Updated | Unchanged}
                                              | Failed | Ignored

Per-record errors never escape reconcile_record(); they become FAILED
outcomes and are recorded in ``sync_failures`` for a later retry pass.
Repositories write each statement in its own savepoint, so a failed
record never spoils the transaction shared with the rest of its chunk.
An authentication error is the exception: it means the whole run cannot
succeed and is raised to the caller.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from asaas_sync.asaas.exceptions import AsaasAuthenticationError, AsaasNotFoundError
from asaas_sync.batch import BatchItemOutcome, BatchOrchestrator, ProgressTracker
from asaas_sync.config import SyncConfig, get_settings
from asaas_sync.db.exceptions import StoreError
from asaas_sync.db.models import RecordKind
from asaas_sync.db.repositories import (
    BaseRepository,
    CustomerRepository,
    InstallmentRepository,
    PaymentRepository,
    SyncFailureRepository,
)
from asaas_sync.logging import bind_record, bind_sync, get_logger

from .diff import compute_diff
from .entities import CUSTOMER_SPEC, EntitySpec
from .enums import SyncOutcomeKind
from .results import SyncOutcome, SyncReport

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from asaas_sync.asaas.client import AsaasClient

    from .commit_manager import CommitManager

logger = get_logger(__name__)


class ParentSyncError(Exception):
    """The customer owning a record could not be reconciled first."""


class ReconciliationEngine:
    """Mirrors upstream records into the local store.

    Usage:
        async with AsaasClient() as client:
            async with get_session(auto_commit=False) as session:
                write_lock = asyncio.Lock()
                engine = ReconciliationEngine(
                    client,
                    session,
                    write_lock=write_lock,
                    commit_manager=CommitManager(session, write_lock),
                )

                report = await engine.reconcile_all(PAYMENT_SPEC, payments)
                print(f"{report.created} created, {report.updated} updated")

    Concurrency:
        All repositories share one session and one write lock. Records of a
        chunk run concurrently; each statement on the session is serialized
        by the lock.
    """

    def __init__(
        self,
        client: AsaasClient,
        session: AsyncSession,
        *,
        write_lock: asyncio.Lock | None = None,
        config: SyncConfig | None = None,
        commit_manager: CommitManager | None = None,
        track_failures: bool = True,
        dry_run: bool = False,
    ) -> None:
        """Initialize the engine.

        Args:
            client: Asaas client used for parent lookups
            session: Async SQLAlchemy session (caller manages lifecycle)
            write_lock: Lock serializing statements on the session
            config: Sync settings (batch width, delays)
            commit_manager: Optional CommitManager for chunked commits
            track_failures: Record failures in ``sync_failures`` and resolve
                            them when the record later succeeds
            dry_run: Compute outcomes without writing anything
        """
        self._client = client
        self._session = session
        self._write_lock = write_lock or asyncio.Lock()
        self._config = config or get_settings().sync
        self._commit_manager = commit_manager
        self._track_failures = track_failures and not dry_run
        self._dry_run = dry_run

        self._customers = CustomerRepository(session, self._write_lock)
        self._repositories: dict[RecordKind, BaseRepository[Any]] = {
            RecordKind.CUSTOMER: self._customers,
            RecordKind.PAYMENT: PaymentRepository(session, self._write_lock),
            RecordKind.INSTALLMENT: InstallmentRepository(session, self._write_lock),
        }
        self._failures = SyncFailureRepository(session, self._write_lock)

        # In-flight parent resolutions, so a chunk of charges sharing a
        # missing customer fetches it once
        self._parent_tasks: dict[str, asyncio.Task[str | None]] = {}

    @property
    def write_lock(self) -> asyncio.Lock:
        return self._write_lock

    @property
    def failure_repository(self) -> SyncFailureRepository:
        return self._failures

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def repository(self, kind: RecordKind) -> BaseRepository[Any]:
        """Repository of one record kind."""
        return self._repositories[kind]

    # -------------------------------------------------------------------------
    # Single Record
    # -------------------------------------------------------------------------

    async def reconcile_record(self, spec: EntitySpec, remote: Any) -> SyncOutcome:
        """Reconcile one upstream record against the local store.

        Args:
            spec: Record kind description
            remote: Upstream record (an instance of ``spec.schema``)

        Returns:
            SyncOutcome describing what happened

        Raises:
            AsaasAuthenticationError: If a parent lookup was rejected for
                                      the API key (fatal to the run)
        """
        record_logger = bind_record(spec.kind.value, remote.id)

        try:
            row = spec.project(remote)

            if spec.parent_field is not None:
                reason = await self._check_parent(row[spec.parent_field])
                if reason is not None:
                    record_logger.debug("Ignored: {}", reason)
                    return SyncOutcome.ignored(spec.kind, remote.id, reason)

            repository = self._repositories[spec.kind]
            local = await repository.get_by_id(remote.id)

            if local is None:
                if not self._dry_run:
                    await repository.upsert(row)
                record_logger.debug("Created")
                outcome = SyncOutcome.created(spec.kind, remote.id)
            else:
                diffs = compute_diff(row, local, spec.tracked_fields)
                if not diffs:
                    outcome = SyncOutcome.unchanged(spec.kind, remote.id)
                else:
                    if not self._dry_run:
                        await repository.upsert(row)
                    record_logger.debug(
                        "Updated: {}", ", ".join(d.field for d in diffs)
                    )
                    outcome = SyncOutcome.updated(spec.kind, remote.id, diffs)

            await self._resolve_failure(spec.kind, remote.id)
            return outcome

        except AsaasAuthenticationError:
            raise
        except Exception as e:
            record_logger.warning("Reconciliation failed: {}: {}", type(e).__name__, e)
            await self._record_failure(spec.kind, remote.id, e)
            return SyncOutcome.from_error(spec.kind, remote.id, e)

    async def _record_failure(self, kind: RecordKind, asaas_id: str, error: Exception) -> None:
        if not self._track_failures:
            return
        try:
            await self._failures.record_failure(kind, asaas_id, error)
        except StoreError as e:
            # The outcome is still reported as failed; only the retry bookkeeping is lost
            logger.error("Could not record failure of {} {}: {}", kind.value, asaas_id, e)

    async def _resolve_failure(self, kind: RecordKind, asaas_id: str) -> None:
        if not self._track_failures:
            return
        try:
            await self._failures.resolve_pending(kind, asaas_id)
        except StoreError as e:
            # Stays pending until the next successful reconciliation
            logger.error("Could not resolve failure of {} {}: {}", kind.value, asaas_id, e)

    # -------------------------------------------------------------------------
    # Parent Customer
    # -------------------------------------------------------------------------

    async def _check_parent(self, customer_id: str) -> str | None:
        """Make sure the owning customer exists locally.

        Returns:
            Reason to ignore the dependent record, or None to proceed

        Raises:
            ParentSyncError: If the customer had to be reconciled and failed
        """
        local = await self._customers.get_by_id(customer_id)
        if local is not None:
            return f"customer {customer_id} is deleted" if local.deleted else None

        task = self._parent_tasks.get(customer_id)
        if task is None:
            task = asyncio.ensure_future(self._resolve_missing_parent(customer_id))
            self._parent_tasks[customer_id] = task
        try:
            return await asyncio.shield(task)
        except Exception:
            # Let a later record try again
            self._parent_tasks.pop(customer_id, None)
            raise

    async def _resolve_missing_parent(self, customer_id: str) -> str | None:
        try:
            customer = await self._client.get_customer(customer_id)
        except AsaasNotFoundError:
            return f"customer {customer_id} not found upstream"

        if customer.deleted:
            return f"customer {customer_id} is deleted upstream"

        logger.info("Reconciling missing customer {} first", customer_id)
        outcome = await self.reconcile_record(CUSTOMER_SPEC, customer)
        if outcome.outcome is SyncOutcomeKind.FAILED:
            raise ParentSyncError(f"customer {customer_id}: {outcome.error}")
        return None

    # -------------------------------------------------------------------------
    # Collections
    # -------------------------------------------------------------------------

    async def reconcile_all(
        self,
        spec: EntitySpec,
        records: Sequence[Any],
        *,
        progress: ProgressTracker | None = None,
    ) -> SyncReport:
        """Reconcile a whole collection through the batch orchestrator.

        Args:
            spec: Record kind description
            records: Upstream records, in provider order
            progress: Optional ProgressTracker

        Returns:
            SyncReport with one counted outcome per input record

        Raises:
            AsaasAuthenticationError: If Asaas rejected the API key mid-run
        """
        start_time = time.monotonic()
        sync_logger = bind_sync(spec.kind.value)
        report = SyncReport(kind=spec.kind, fetched=len(records))

        async def reconcile(remote: Any) -> SyncOutcome:
            return await self.reconcile_record(spec, remote)

        orchestrator: BatchOrchestrator[Any, SyncOutcome] = BatchOrchestrator.from_config(
            self._config,
            fatal_exceptions=(AsaasAuthenticationError,),
            classify=lambda outcome: outcome.item_state,
            progress=progress,
            on_chunk_complete=self._on_chunk_complete,
            item_name=lambda remote: remote.id,
        )
        batch = await orchestrator.run(records, reconcile)

        for item in batch.outcomes:
            if item.result is not None:
                report.record(item.result)
            else:
                # Worker raised past reconcile_record's own handling
                error = item.error or RuntimeError("no outcome")
                report.record(SyncOutcome.from_error(spec.kind, item.item.id, error))

        if self._commit_manager is not None:
            await self._commit_manager.finalize()

        report.duration_seconds = time.monotonic() - start_time
        sync_logger.info(
            "Reconciled {} {}(s): {} created, {} updated, {} unchanged, {} ignored, {} failed",
            report.total,
            spec.kind.value,
            report.created,
            report.updated,
            report.unchanged,
            report.ignored,
            report.failed,
        )
        return report

    async def _on_chunk_complete(
        self,
        chunk_index: int,
        outcomes: Sequence[BatchItemOutcome[Any, SyncOutcome]],
    ) -> None:
        if self._commit_manager is None or self._dry_run:
            return
        writes = sum(
            1
            for o in outcomes
            if o.result is not None
            and (o.result.wrote or o.result.outcome is SyncOutcomeKind.FAILED)
        )
        if writes:
            await self._commit_manager.record_success(writes)

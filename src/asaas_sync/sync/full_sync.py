"""Full Sync Service - Fetch every collection and reconcile it.

Phases run customers → payments → installments so dependent records
usually find their customer already mirrored. Each phase enumerates the
complete collection from offset 0; there is no persisted cursor.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from asaas_sync.asaas.pagination import PaginatedFetcher
from asaas_sync.batch import ProgressTracker
from asaas_sync.config import SyncConfig, get_settings
from asaas_sync.db.models import RecordKind
from asaas_sync.logging import bind_sync, get_logger

from .entities import SYNC_ORDER, spec_for
from .results import FullSyncReport, SyncReport

if TYPE_CHECKING:
    from asaas_sync.asaas.client import AsaasClient

    from .reconciler import ReconciliationEngine

logger = get_logger(__name__)

ProgressFactory = Callable[[RecordKind], ProgressTracker | None]


class FullSyncService:
    """Service for syncing whole Asaas collections into the local store.

    Usage:
        async with AsaasClient(governor=governor) as client:
            async with get_session(auto_commit=False) as session:
                engine = ReconciliationEngine(client, session, commit_manager=...)
                service = FullSyncService(client, engine)

                report = await service.run()
                print(f"{report.total} records, {report.failed} failed")
    """

    def __init__(
        self,
        client: AsaasClient,
        engine: ReconciliationEngine,
        config: SyncConfig | None = None,
        progress_factory: ProgressFactory | None = None,
    ) -> None:
        """Initialize the full sync service.

        Args:
            client: Asaas API client
            engine: Reconciliation engine bound to the target session
            config: Sync settings (page size, delays)
            progress_factory: Optional callable building a ProgressTracker per phase
        """
        self._client = client
        self._engine = engine
        self._config = config or get_settings().sync
        self._progress_factory = progress_factory

    async def sync_kind(
        self,
        kind: RecordKind,
        *,
        filters: Mapping[str, Any] | None = None,
        max_items: int | None = None,
    ) -> SyncReport:
        """Fetch and reconcile one whole collection.

        Args:
            kind: Record kind to sync
            filters: Provider filters for the collection endpoint
            max_items: Stop after this many records (None for all)

        Returns:
            SyncReport of the phase

        Raises:
            AsaasClientError: If a page could not be fetched after retries
        """
        start_time = time.monotonic()
        spec = spec_for(kind)
        sync_logger = bind_sync(kind.value)

        fetcher: PaginatedFetcher[Any] = PaginatedFetcher(
            spec.page_function(self._client),
            page_size=self._config.page_size,
            filters=filters,
            max_items=max_items,
            page_delay=self._config.inter_page_delay_ms / 1000,
        )
        sync_logger.info("Fetching {} collection", kind.value)
        records = await fetcher.fetch_all()

        progress = self._progress_factory(kind) if self._progress_factory else None
        if progress is not None:
            progress.total = len(records)

        report = await self._engine.reconcile_all(spec, records, progress=progress)
        report.duration_seconds = time.monotonic() - start_time
        return report

    async def sync_customers(self, *, max_items: int | None = None) -> SyncReport:
        return await self.sync_kind(RecordKind.CUSTOMER, max_items=max_items)

    async def sync_payments(
        self,
        *,
        filters: Mapping[str, Any] | None = None,
        max_items: int | None = None,
    ) -> SyncReport:
        """Sync charges, optionally narrowed by provider filters.

        Args:
            filters: e.g. ``{"status": "OVERDUE"}`` or ``{"dueDate[ge]": "2024-01-01"}``
            max_items: Stop after this many records (None for all)
        """
        return await self.sync_kind(RecordKind.PAYMENT, filters=filters, max_items=max_items)

    async def sync_installments(self, *, max_items: int | None = None) -> SyncReport:
        return await self.sync_kind(RecordKind.INSTALLMENT, max_items=max_items)

    async def run(
        self,
        *,
        payment_filters: Mapping[str, Any] | None = None,
        max_items: int | None = None,
    ) -> FullSyncReport:
        """Run every phase in dependency order.

        Args:
            payment_filters: Provider filters for the payment phase
            max_items: Per-phase record cap (None for all)

        Returns:
            FullSyncReport with one SyncReport per phase
        """
        start_time = time.monotonic()
        result = FullSyncReport()

        for kind in SYNC_ORDER:
            filters = payment_filters if kind is RecordKind.PAYMENT else None
            report = await self.sync_kind(kind, filters=filters, max_items=max_items)
            result.reports.append(report)

        result.duration_seconds = time.monotonic() - start_time
        logger.info(
            "Full sync complete: {} record(s), {} failed ({:.1f}s)",
            result.total,
            result.failed,
            result.duration_seconds,
        )
        return result

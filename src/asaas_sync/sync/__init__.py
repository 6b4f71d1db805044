"""Sync services for mirroring Asaas records into the local store.

This module provides:
- ReconciliationEngine: Per-record lookup, diff and idempotent write
- FullSyncService: Whole-collection sync in dependency order
- FailureRetryService: Second pass over recorded failures
- BankSlipBackfillService: Fills installment carnet URLs
- CommitManager: Chunked commit boundaries
"""

from .bank_slips import BackfillResult, BankSlipBackfillService
from .commit_manager import CommitManager
from .diff import FieldDiff, compute_diff, normalize_value, values_equal
from .entities import (
    CUSTOMER_SPEC,
    ENTITY_SPECS,
    INSTALLMENT_SPEC,
    PAYMENT_SPEC,
    SYNC_ORDER,
    EntitySpec,
    spec_for,
)
from .enums import OutputFormat, SyncOutcomeKind
from .full_sync import FullSyncService
from .reconciler import ParentSyncError, ReconciliationEngine
from .results import FullSyncReport, SyncOutcome, SyncReport
from .retry_service import FailureRetryService, RetryResult

__all__ = [
    # Engine
    "ParentSyncError",
    "ReconciliationEngine",
    # Services
    "BackfillResult",
    "BankSlipBackfillService",
    "CommitManager",
    "FailureRetryService",
    "FullSyncService",
    "RetryResult",
    # Entities
    "CUSTOMER_SPEC",
    "ENTITY_SPECS",
    "INSTALLMENT_SPEC",
    "PAYMENT_SPEC",
    "SYNC_ORDER",
    "EntitySpec",
    "spec_for",
    # Diff
    "FieldDiff",
    "compute_diff",
    "normalize_value",
    "values_equal",
    # Results
    "FullSyncReport",
    "OutputFormat",
    "SyncOutcome",
    "SyncOutcomeKind",
    "SyncReport",
]

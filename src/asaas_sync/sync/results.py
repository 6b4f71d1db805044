"""Result objects for sync operations.

Structured results provide consistent interfaces for monitoring,
error handling, and CLI output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from asaas_sync.batch import ItemState
from asaas_sync.db.models import RecordKind

from .diff import FieldDiff
from .enums import SyncOutcomeKind

_ITEM_STATES = {
    SyncOutcomeKind.FAILED: ItemState.FAILED,
    SyncOutcomeKind.IGNORED: ItemState.IGNORED,
}


@dataclass
class SyncOutcome:
    """Outcome of reconciling a single upstream record."""

    asaas_id: str
    kind: RecordKind
    outcome: SyncOutcomeKind

    diffs: list[FieldDiff] = field(default_factory=list)
    """Changed tracked fields (only for UPDATED)."""

    error: str | None = None
    """``"<ErrorType>: <message>"`` when FAILED."""

    reason: str | None = None
    """Why the record was skipped when IGNORED."""

    @property
    def success(self) -> bool:
        """Check if the record settled without errors."""
        return self.outcome is not SyncOutcomeKind.FAILED

    @property
    def wrote(self) -> bool:
        """Whether reconciliation issued a write for this record."""
        return self.outcome in (SyncOutcomeKind.CREATED, SyncOutcomeKind.UPDATED)

    @property
    def item_state(self) -> ItemState:
        """Batch bucket this outcome belongs to."""
        return _ITEM_STATES.get(self.outcome, ItemState.SUCCEEDED)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "asaas_id": self.asaas_id,
            "kind": self.kind.value,
            "outcome": self.outcome.value,
        }
        if self.diffs:
            result["diffs"] = [d.to_dict() for d in self.diffs]
        if self.error:
            result["error"] = self.error
        if self.reason:
            result["reason"] = self.reason
        return result

    @classmethod
    def created(cls, kind: RecordKind, asaas_id: str) -> SyncOutcome:
        return cls(asaas_id=asaas_id, kind=kind, outcome=SyncOutcomeKind.CREATED)

    @classmethod
    def updated(cls, kind: RecordKind, asaas_id: str, diffs: list[FieldDiff]) -> SyncOutcome:
        return cls(asaas_id=asaas_id, kind=kind, outcome=SyncOutcomeKind.UPDATED, diffs=diffs)

    @classmethod
    def unchanged(cls, kind: RecordKind, asaas_id: str) -> SyncOutcome:
        return cls(asaas_id=asaas_id, kind=kind, outcome=SyncOutcomeKind.UNCHANGED)

    @classmethod
    def ignored(cls, kind: RecordKind, asaas_id: str, reason: str) -> SyncOutcome:
        return cls(asaas_id=asaas_id, kind=kind, outcome=SyncOutcomeKind.IGNORED, reason=reason)

    @classmethod
    def from_error(cls, kind: RecordKind, asaas_id: str, error: BaseException) -> SyncOutcome:
        """Create an outcome representing a failed reconciliation."""
        return cls(
            asaas_id=asaas_id,
            kind=kind,
            outcome=SyncOutcomeKind.FAILED,
            error=f"{type(error).__name__}: {error}",
        )


@dataclass
class SyncReport:
    """Aggregate outcome of reconciling one collection.

    ``created + updated + unchanged + failed + ignored`` always equals
    the number of records handed to the reconciler.
    """

    kind: RecordKind

    fetched: int = 0
    """Records fetched from Asaas for this run."""

    created: int = 0
    updated: int = 0
    unchanged: int = 0
    failed: int = 0
    ignored: int = 0

    diffs: dict[str, list[FieldDiff]] = field(default_factory=dict)
    """FieldDiff list per updated record ID, in input order."""

    failures: list[tuple[str, str]] = field(default_factory=list)
    """List of (asaas_id, error) for failed records."""

    skipped: list[tuple[str, str]] = field(default_factory=list)
    """List of (asaas_id, reason) for ignored records."""

    duration_seconds: float = 0.0
    """Total time taken for the operation."""

    @property
    def total(self) -> int:
        """Records reconciled, whatever their outcome."""
        return self.created + self.updated + self.unchanged + self.failed + self.ignored

    @property
    def written(self) -> int:
        """Records that required a write."""
        return self.created + self.updated

    def record(self, outcome: SyncOutcome) -> None:
        """Fold one record outcome into the counts."""
        match outcome.outcome:
            case SyncOutcomeKind.CREATED:
                self.created += 1
            case SyncOutcomeKind.UPDATED:
                self.updated += 1
                self.diffs[outcome.asaas_id] = list(outcome.diffs)
            case SyncOutcomeKind.UNCHANGED:
                self.unchanged += 1
            case SyncOutcomeKind.IGNORED:
                self.ignored += 1
                self.skipped.append((outcome.asaas_id, outcome.reason or ""))
            case SyncOutcomeKind.FAILED:
                self.failed += 1
                self.failures.append((outcome.asaas_id, outcome.error or ""))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "fetched": self.fetched,
            "created": self.created,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "failed": self.failed,
            "ignored": self.ignored,
            "diffs": {
                asaas_id: [d.to_dict() for d in diffs] for asaas_id, diffs in self.diffs.items()
            },
            "failures": [{"asaas_id": i, "error": e} for i, e in self.failures],
            "ignored_records": [{"asaas_id": i, "reason": r} for i, r in self.skipped],
            "duration_seconds": round(self.duration_seconds, 2),
        }


@dataclass
class FullSyncReport:
    """Reports of every phase of a full sync, in run order."""

    reports: list[SyncReport] = field(default_factory=list)
    duration_seconds: float = 0.0

    def get(self, kind: RecordKind) -> SyncReport | None:
        """Report of one record kind, if that phase ran."""
        return next((r for r in self.reports if r.kind == kind), None)

    @property
    def failed(self) -> int:
        return sum(r.failed for r in self.reports)

    @property
    def total(self) -> int:
        return sum(r.total for r in self.reports)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "phases": [r.to_dict() for r in self.reports],
            "total": self.total,
            "failed": self.failed,
            "duration_seconds": round(self.duration_seconds, 2),
        }

"""Enums for sync operations."""

from enum import Enum


class SyncOutcomeKind(str, Enum):
    """What reconciliation did with one upstream record."""

    CREATED = "created"
    """Record was absent locally and has been inserted."""

    UPDATED = "updated"
    """At least one tracked field differed; the full projection was written."""

    UNCHANGED = "unchanged"
    """Every tracked field matched. Nothing was written."""

    FAILED = "failed"
    """Lookup, compare or write raised. Recorded for a retry pass."""

    IGNORED = "ignored"
    """Skipped on purpose (e.g. the owning customer is deleted)."""


class OutputFormat(str, Enum):
    """Output format for CLI commands."""

    TEXT = "text"
    """Human-readable text output."""

    JSON = "json"
    """Machine-readable JSON output."""

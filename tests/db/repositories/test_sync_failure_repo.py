"""Tests for SyncFailureRepository."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from asaas_sync.asaas import AsaasTransportError
from asaas_sync.db.exceptions import StoreError
from asaas_sync.db.models import RecordKind, SyncFailureStatus
from asaas_sync.db.repositories import SyncFailureRepository
from tests.factories import make_sync_failure


class TestSyncFailureRepositoryQuery:
    """Query method tests for SyncFailureRepository."""

    async def test_get_by_id(self, db_session):
        """Get failure by ID."""
        failure = make_sync_failure(db_session, asaas_id="pay_123")
        await db_session.flush()

        repository = SyncFailureRepository(db_session)
        result = await repository.get_by_id(failure.id)

        assert result is not None
        assert result.asaas_id == "pay_123"
        assert result.status == SyncFailureStatus.PENDING

    async def test_get_by_id_not_found(self, db_session):
        """Get failure by ID returns None if not found."""
        repository = SyncFailureRepository(db_session)
        assert await repository.get_by_id(9999) is None

    async def test_get_pending_returns_only_pending(self, db_session):
        """Get pending failures excludes resolved and permanent."""
        make_sync_failure(db_session, asaas_id="pay_1")
        make_sync_failure(db_session, asaas_id="pay_2")
        make_sync_failure(db_session, asaas_id="pay_3", status=SyncFailureStatus.RESOLVED)
        make_sync_failure(db_session, asaas_id="pay_4", status=SyncFailureStatus.PERMANENT)
        await db_session.flush()

        results = await SyncFailureRepository(db_session).get_pending()

        assert {f.asaas_id for f in results} == {"pay_1", "pay_2"}

    async def test_get_pending_oldest_first(self, db_session):
        now = datetime.now(UTC)
        make_sync_failure(db_session, asaas_id="pay_new", failed_at=now)
        make_sync_failure(db_session, asaas_id="pay_old", failed_at=now - timedelta(hours=2))
        await db_session.flush()

        results = await SyncFailureRepository(db_session).get_pending()

        assert [f.asaas_id for f in results] == ["pay_old", "pay_new"]

    async def test_get_pending_filters_by_kind_and_limit(self, db_session):
        make_sync_failure(db_session, record_kind=RecordKind.CUSTOMER, asaas_id="cus_1")
        make_sync_failure(db_session, record_kind=RecordKind.PAYMENT, asaas_id="pay_1")
        make_sync_failure(db_session, record_kind=RecordKind.PAYMENT, asaas_id="pay_2")
        await db_session.flush()

        repository = SyncFailureRepository(db_session)
        customers = await repository.get_pending(record_kind=RecordKind.CUSTOMER)
        limited = await repository.get_pending(limit=1)

        assert [f.asaas_id for f in customers] == ["cus_1"]
        assert len(limited) == 1

    async def test_get_stats(self, db_session):
        make_sync_failure(db_session, asaas_id="pay_1")
        make_sync_failure(db_session, asaas_id="pay_2", status=SyncFailureStatus.RESOLVED)
        make_sync_failure(db_session, asaas_id="pay_3", status=SyncFailureStatus.RESOLVED)
        make_sync_failure(
            db_session,
            record_kind=RecordKind.CUSTOMER,
            asaas_id="cus_1",
            status=SyncFailureStatus.PERMANENT,
        )
        await db_session.flush()

        repository = SyncFailureRepository(db_session)
        stats = await repository.get_stats()
        payment_stats = await repository.get_stats(RecordKind.PAYMENT)

        assert stats == {"pending": 1, "resolved": 2, "permanent": 1, "total": 4}
        assert payment_stats["permanent"] == 0
        assert payment_stats["total"] == 3

    async def test_get_stats_empty(self, db_session):
        stats = await SyncFailureRepository(db_session).get_stats()
        assert stats == {"pending": 0, "resolved": 0, "permanent": 0, "total": 0}


class TestSyncFailureRepositoryWrite:
    """Write method tests for SyncFailureRepository."""

    async def test_record_failure_creates_pending(self, db_session):
        repository = SyncFailureRepository(db_session)

        failure = await repository.record_failure(
            RecordKind.PAYMENT, "pay_1", AsaasTransportError("connection reset")
        )

        assert failure.id is not None
        assert failure.status == SyncFailureStatus.PENDING
        assert failure.retry_count == 0
        assert failure.error_type == "AsaasTransportError"
        assert failure.error_message == "connection reset"

    async def test_record_failure_bumps_existing(self, db_session):
        """A second failure of the same record updates the pending row."""
        repository = SyncFailureRepository(db_session)
        first = await repository.record_failure(RecordKind.PAYMENT, "pay_1", "first error")

        second = await repository.record_failure(
            RecordKind.PAYMENT, "pay_1", ValueError("second error")
        )

        assert second.id == first.id
        assert second.retry_count == 1
        assert second.error_type == "ValueError"
        assert second.error_message == "second error"
        assert (await repository.get_stats())["total"] == 1

    async def test_record_failure_string_error(self, db_session):
        failure = await SyncFailureRepository(db_session).record_failure(
            RecordKind.CUSTOMER, "cus_1", "something broke"
        )
        assert failure.error_type == "Unknown"

    async def test_record_failure_after_resolution_starts_fresh(self, db_session):
        make_sync_failure(db_session, asaas_id="pay_1", status=SyncFailureStatus.RESOLVED)
        await db_session.flush()

        failure = await SyncFailureRepository(db_session).record_failure(
            RecordKind.PAYMENT, "pay_1", "again"
        )

        assert failure.retry_count == 0
        assert failure.status == SyncFailureStatus.PENDING

    async def test_resolve_pending(self, db_session):
        repository = SyncFailureRepository(db_session)
        await repository.record_failure(RecordKind.PAYMENT, "pay_1", "boom")

        assert await repository.resolve_pending(RecordKind.PAYMENT, "pay_1") is True
        assert await repository.resolve_pending(RecordKind.PAYMENT, "pay_1") is False
        assert await repository.get_pending_for(RecordKind.PAYMENT, "pay_1") is None

    async def test_resolve_pending_matches_kind(self, db_session):
        repository = SyncFailureRepository(db_session)
        await repository.record_failure(RecordKind.CUSTOMER, "shared_id", "boom")

        assert await repository.resolve_pending(RecordKind.PAYMENT, "shared_id") is False

    async def test_mark_resolved(self, db_session):
        failure = make_sync_failure(db_session)
        await db_session.flush()

        result = await SyncFailureRepository(db_session).mark_resolved(failure.id)

        assert result.status == SyncFailureStatus.RESOLVED
        assert result.resolved_at is not None

    async def test_mark_permanent(self, db_session):
        failure = make_sync_failure(db_session)
        await db_session.flush()

        result = await SyncFailureRepository(db_session).mark_permanent(failure.id)

        assert result.status == SyncFailureStatus.PERMANENT
        assert result.resolved_at is None

    async def test_mark_missing_returns_none(self, db_session):
        repository = SyncFailureRepository(db_session)

        assert await repository.mark_resolved(404) is None
        assert await repository.mark_permanent(404) is None


def _disk_error() -> OperationalError:
    return OperationalError("UPDATE sync_failures", {}, Exception("disk I/O error"))


class TestSyncFailureRepositoryErrors:
    """Database errors surface as StoreError and leave the session usable."""

    async def test_record_failure_error(self, db_session):
        repository = SyncFailureRepository(db_session)

        with (
            patch.object(db_session, "flush", side_effect=_disk_error()),
            pytest.raises(StoreError, match="Recording failure of payment pay_1 failed"),
        ):
            await repository.record_failure(RecordKind.PAYMENT, "pay_1", "boom")

        assert (await repository.get_stats())["total"] == 0
        await repository.record_failure(RecordKind.PAYMENT, "pay_2", "boom")
        assert (await repository.get_stats())["pending"] == 1

    async def test_resolve_pending_error_keeps_failure_pending(self, db_session):
        repository = SyncFailureRepository(db_session)
        await repository.record_failure(RecordKind.PAYMENT, "pay_1", "boom")

        with (
            patch.object(db_session, "flush", side_effect=_disk_error()),
            pytest.raises(StoreError, match="Resolving failure of payment pay_1 failed"),
        ):
            await repository.resolve_pending(RecordKind.PAYMENT, "pay_1")

        assert await repository.get_pending_for(RecordKind.PAYMENT, "pay_1") is not None

    async def test_mark_permanent_error(self, db_session):
        failure = make_sync_failure(db_session)
        await db_session.flush()
        repository = SyncFailureRepository(db_session)

        with (
            patch.object(db_session, "flush", side_effect=_disk_error()),
            pytest.raises(StoreError, match=r"Marking failure \d+ permanent failed"),
        ):
            await repository.mark_permanent(failure.id)

        assert (await repository.get_stats())["pending"] == 1

    async def test_query_error(self, db_session):
        repository = SyncFailureRepository(db_session)

        with (
            patch.object(db_session, "execute", side_effect=_disk_error()),
            pytest.raises(StoreError, match="Pending failure query failed"),
        ):
            await repository.get_pending()

"""Tests for SQLAlchemy ORM models."""

from decimal import Decimal

import pytest
from sqlalchemy import inspect, select, text
from sqlalchemy.exc import IntegrityError

from asaas_sync.db.models import (
    Customer,
    Payment,
    RecordKind,
    SyncFailure,
    SyncFailureStatus,
)
from tests.factories import make_customer, make_installment, make_payment, make_sync_failure


class TestTableNames:
    """Local reporting schema names."""

    def test_tables(self, test_engine):
        from asaas_sync.db.models import Base

        assert set(Base.metadata.tables) == {
            "clientes",
            "cobrancas",
            "parcelamentos",
            "sync_failures",
        }

    def test_column_names_differ_from_attributes(self):
        columns = inspect(Payment).columns
        assert columns["value"].name == "valor"
        assert columns["due_date"].name == "data_vencimento"
        assert columns["customer_id"].name == "cliente_id"


class TestCustomerModel:
    """Tests for the Customer model."""

    async def test_create_and_read(self, db_session):
        make_customer(db_session, id="cus_1", name="Ana")
        await db_session.flush()

        customer = await db_session.get(Customer, "cus_1")

        assert customer is not None
        assert customer.name == "Ana"
        assert customer.deleted is False
        assert customer.created_at is not None

    async def test_repr(self, db_session):
        customer = make_customer(db_session, id="cus_1", name="Ana")
        assert repr(customer) == "<Customer(id='cus_1', name='Ana')>"


class TestPaymentModel:
    """Tests for the Payment model."""

    async def test_money_round_trips_as_decimal(self, db_session):
        make_customer(db_session)
        make_payment(db_session, id="pay_1", value=Decimal("99.90"))
        await db_session.flush()

        result = await db_session.execute(select(Payment.value).where(Payment.id == "pay_1"))

        assert result.scalar_one() == Decimal("99.90")

    async def test_json_sub_objects(self, db_session):
        make_customer(db_session)
        make_payment(db_session, id="pay_1", fine={"value": 2, "type": "PERCENTAGE"})
        await db_session.flush()
        db_session.expunge_all()

        payment = await db_session.get(Payment, "pay_1")
        assert payment.fine == {"value": 2, "type": "PERCENTAGE"}


class TestInstallmentModel:
    """Tests for the Installment model."""

    async def test_bank_slip_nullable(self, db_session):
        make_customer(db_session)
        installment = make_installment(db_session, id="inst_1")
        await db_session.flush()

        assert installment.bank_slip_url is None


class TestSyncFailureModel:
    """Tests for the SyncFailure model."""

    async def test_enums_stored_by_name(self, db_session):
        make_sync_failure(db_session, record_kind=RecordKind.CUSTOMER, asaas_id="cus_1")
        await db_session.flush()

        result = await db_session.execute(text("SELECT record_kind, status FROM sync_failures"))

        assert result.one() == ("CUSTOMER", "PENDING")

    async def test_one_pending_failure_per_record(self, db_session):
        make_sync_failure(db_session, asaas_id="pay_1")
        make_sync_failure(db_session, asaas_id="pay_1")

        with pytest.raises(IntegrityError):
            await db_session.flush()

    async def test_history_rows_allowed(self, db_session):
        """Resolved and permanent rows don't block a new pending one."""
        make_sync_failure(db_session, asaas_id="pay_1", status=SyncFailureStatus.RESOLVED)
        make_sync_failure(db_session, asaas_id="pay_1", status=SyncFailureStatus.PERMANENT)
        make_sync_failure(db_session, asaas_id="pay_1")
        await db_session.flush()

        result = await db_session.execute(select(SyncFailure))
        assert len(result.scalars().all()) == 3

    async def test_repr(self, db_session):
        failure = make_sync_failure(db_session, asaas_id="pay_1")
        await db_session.flush()

        assert "asaas_id='pay_1'" in repr(failure)
        assert "status=pending" in repr(failure)

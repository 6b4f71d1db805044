"""Factory functions for creating test data.

This module provides factory functions for:
- SQLAlchemy ORM models (Customer, Payment, Installment, SyncFailure)
- Pydantic schemas (parsed Asaas records)

Design principles:
- Factories provide sensible defaults that can be overridden
- Model factories add to session but don't flush (tests control flush timing)
- Schema factories go through the camelCase payloads, like the client does
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from asaas_sync.db.models import (
    Customer,
    Installment,
    Payment,
    RecordKind,
    SyncFailure,
    SyncFailureStatus,
)
from asaas_sync.schemas.asaas_api import AsaasCustomer, AsaasInstallment, AsaasPayment
from tests.conftest import FEB_01, JAN_10, MAR_20
from tests.fixtures.asaas_responses import (
    customer_payload,
    installment_payload,
    payment_payload,
)


# -----------------------------------------------------------------------------
# Model Factories
# -----------------------------------------------------------------------------
def make_customer(
    session: AsyncSession,
    *,
    id: str = "cus_000005219613",
    name: str = "Maria Silva",
    deleted: bool = False,
    **overrides: Any,
) -> Customer:
    """Create a Customer model instance matching ``customer_payload`` defaults."""
    customer = Customer(
        id=id,
        name=name,
        email=overrides.pop("email", "maria.silva@example.com"),
        cpf_cnpj=overrides.pop("cpf_cnpj", "24971563792"),
        phone=overrides.pop("phone", "4738010919"),
        mobile_phone=overrides.pop("mobile_phone", "47999376637"),
        address=overrides.pop("address", "Av. Paulista"),
        address_number=overrides.pop("address_number", "150"),
        complement=overrides.pop("complement", "Sala 201"),
        province=overrides.pop("province", "Centro"),
        city_name=overrides.pop("city_name", "São Paulo"),
        state=overrides.pop("state", "SP"),
        postal_code=overrides.pop("postal_code", "01310000"),
        deleted=deleted,
        date_created=overrides.pop("date_created", JAN_10),
        **overrides,
    )
    session.add(customer)
    return customer


def make_payment(
    session: AsyncSession,
    *,
    id: str = "pay_080225913252",
    customer_id: str = "cus_000005219613",
    status: str = "PENDING",
    value: Decimal = Decimal("129.90"),
    due_date: date = MAR_20,
    **overrides: Any,
) -> Payment:
    """Create a Payment model instance."""
    payment = Payment(
        id=id,
        customer_id=customer_id,
        status=status,
        value=value,
        due_date=due_date,
        billing_type=overrides.pop("billing_type", "BOLETO"),
        date_created=overrides.pop("date_created", FEB_01),
        deleted=overrides.pop("deleted", False),
        **overrides,
    )
    session.add(payment)
    return payment


def make_installment(
    session: AsyncSession,
    *,
    id: str = "2765d086-c7c5-4ee5-8b41-6bb1fc0c4f5d",
    customer_id: str = "cus_000005219613",
    installment_count: int = 3,
    bank_slip_url: str | None = None,
    **overrides: Any,
) -> Installment:
    """Create an Installment model instance."""
    installment = Installment(
        id=id,
        customer_id=customer_id,
        value=overrides.pop("value", Decimal("300.00")),
        payment_value=overrides.pop("payment_value", Decimal("100.00")),
        installment_count=installment_count,
        bank_slip_url=bank_slip_url,
        date_created=overrides.pop("date_created", FEB_01),
        deleted=overrides.pop("deleted", False),
        **overrides,
    )
    session.add(installment)
    return installment


def make_sync_failure(
    session: AsyncSession,
    *,
    record_kind: RecordKind = RecordKind.PAYMENT,
    asaas_id: str = "pay_080225913252",
    error_message: str = "Simulated failure",
    error_type: str = "AsaasTransportError",
    retry_count: int = 0,
    status: SyncFailureStatus = SyncFailureStatus.PENDING,
    failed_at: datetime | None = None,
) -> SyncFailure:
    """Create a SyncFailure model instance."""
    failure = SyncFailure(
        record_kind=record_kind,
        asaas_id=asaas_id,
        error_message=error_message,
        error_type=error_type,
        retry_count=retry_count,
        status=status,
        failed_at=failed_at or datetime.now(UTC),
    )
    session.add(failure)
    return failure


# -----------------------------------------------------------------------------
# Schema Factories
# -----------------------------------------------------------------------------
def make_asaas_customer(customer_id: str = "cus_000005219613", **overrides: Any) -> AsaasCustomer:
    """Parse a customer payload into the client schema."""
    return AsaasCustomer.model_validate(customer_payload(customer_id, **overrides))


def make_asaas_payment(payment_id: str = "pay_080225913252", **overrides: Any) -> AsaasPayment:
    """Parse a payment payload into the client schema."""
    return AsaasPayment.model_validate(payment_payload(payment_id, **overrides))


def make_asaas_installment(
    installment_id: str = "2765d086-c7c5-4ee5-8b41-6bb1fc0c4f5d",
    **overrides: Any,
) -> AsaasInstallment:
    """Parse an installment payload into the client schema."""
    return AsaasInstallment.model_validate(installment_payload(installment_id, **overrides))

"""SQLAlchemy ORM models for Asaas Sync.

Record tables mirror Asaas records keyed by the Asaas ID. Table and column
names follow the local reporting schema (``clientes``, ``cobrancas``,
``parcelamentos``); Python attribute names follow the Asaas field names.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON

Money = Numeric(12, 2)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""


class RecordKind(str, Enum):
    """Kinds of Asaas records mirrored locally."""

    CUSTOMER = "customer"
    PAYMENT = "payment"
    INSTALLMENT = "installment"


class SyncFailureStatus(str, Enum):
    """Status of a sync failure for retry tracking."""

    PENDING = "pending"  # Waiting for retry
    RESOLVED = "resolved"  # Successfully retried
    PERMANENT = "permanent"  # Gone upstream or max retries exceeded


class TimestampMixin:
    """Local bookkeeping columns, never compared against Asaas."""

    created_at: Mapped[datetime] = mapped_column("criado_em", DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        "atualizado_em", DateTime, default=func.now(), onupdate=func.now()
    )


# ------------------------------------------------------------------------------
# Customer model
# ------------------------------------------------------------------------------
class Customer(TimestampMixin, Base):
    """Asaas customer (cliente)."""

    __tablename__ = "clientes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # cus_...
    name: Mapped[str] = mapped_column("nome", String(255))
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    cpf_cnpj: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    phone: Mapped[str | None] = mapped_column("telefone", String(30), nullable=True)
    mobile_phone: Mapped[str | None] = mapped_column("celular", String(30), nullable=True)

    # Address
    address: Mapped[str | None] = mapped_column("endereco", String(255), nullable=True)
    address_number: Mapped[str | None] = mapped_column("numero_endereco", String(30), nullable=True)
    complement: Mapped[str | None] = mapped_column("complemento", String(255), nullable=True)
    province: Mapped[str | None] = mapped_column("bairro", String(255), nullable=True)
    city_name: Mapped[str | None] = mapped_column("cidade_nome", String(255), nullable=True)
    state: Mapped[str | None] = mapped_column("estado", String(2), nullable=True)
    postal_code: Mapped[str | None] = mapped_column("cep", String(10), nullable=True)
    country: Mapped[str | None] = mapped_column("pais", String(100), nullable=True)

    person_type: Mapped[str | None] = mapped_column("tipo_pessoa", String(20), nullable=True)
    additional_emails: Mapped[str | None] = mapped_column(
        "emails_adicionais", Text, nullable=True
    )
    external_reference: Mapped[str | None] = mapped_column(
        "referencia_externa", String(255), nullable=True
    )
    notification_disabled: Mapped[bool] = mapped_column(
        "notificacao_desativada", Boolean, default=False
    )
    observations: Mapped[str | None] = mapped_column("observacoes", Text, nullable=True)
    foreign_customer: Mapped[bool] = mapped_column("estrangeiro", Boolean, default=False)

    # Soft delete upstream; the row itself is never removed
    deleted: Mapped[bool] = mapped_column("deletado", Boolean, default=False)
    date_created: Mapped[date | None] = mapped_column("data_criacao", Date, nullable=True)

    def __repr__(self) -> str:
        return f"<Customer(id='{self.id}', name='{self.name}')>"


# ------------------------------------------------------------------------------
# Payment model
# ------------------------------------------------------------------------------
class Payment(TimestampMixin, Base):
    """Asaas charge (cobranca)."""

    __tablename__ = "cobrancas"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # pay_...
    customer_id: Mapped[str] = mapped_column(
        "cliente_id", String(64), ForeignKey("clientes.id"), index=True
    )
    installment_id: Mapped[str | None] = mapped_column(
        "parcelamento_id", String(64), nullable=True, index=True
    )
    installment_number: Mapped[int | None] = mapped_column("numero_parcela", Integer, nullable=True)

    value: Mapped[Decimal] = mapped_column("valor", Money)
    net_value: Mapped[Decimal | None] = mapped_column("valor_liquido", Money, nullable=True)
    status: Mapped[str] = mapped_column(String(40), index=True)
    billing_type: Mapped[str | None] = mapped_column("forma_cobranca", String(30), nullable=True)

    due_date: Mapped[date] = mapped_column("data_vencimento", Date, index=True)
    original_due_date: Mapped[date | None] = mapped_column(
        "data_vencimento_original", Date, nullable=True
    )
    payment_date: Mapped[date | None] = mapped_column("data_pagamento", Date, nullable=True)

    description: Mapped[str | None] = mapped_column("descricao", Text, nullable=True)
    invoice_url: Mapped[str | None] = mapped_column("url_fatura", String(500), nullable=True)
    bank_slip_url: Mapped[str | None] = mapped_column("url_boleto", String(500), nullable=True)
    external_reference: Mapped[str | None] = mapped_column(
        "referencia_externa", String(255), nullable=True
    )

    # Provider sub-objects stored as-is
    discount: Mapped[dict[str, Any] | None] = mapped_column("desconto", JSON, nullable=True)
    fine: Mapped[dict[str, Any] | None] = mapped_column("multa", JSON, nullable=True)
    interest: Mapped[dict[str, Any] | None] = mapped_column("juros", JSON, nullable=True)

    deleted: Mapped[bool] = mapped_column("deletado", Boolean, default=False)
    date_created: Mapped[date | None] = mapped_column("data_criacao", Date, nullable=True)

    def __repr__(self) -> str:
        return f"<Payment(id='{self.id}', status='{self.status}', value={self.value})>"


# ------------------------------------------------------------------------------
# Installment model
# ------------------------------------------------------------------------------
class Installment(TimestampMixin, Base):
    """Asaas installment plan (parcelamento)."""

    __tablename__ = "parcelamentos"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    customer_id: Mapped[str] = mapped_column(
        "cliente_id", String(64), ForeignKey("clientes.id"), index=True
    )
    value: Mapped[Decimal] = mapped_column("valor", Money)
    net_value: Mapped[Decimal | None] = mapped_column("valor_liquido", Money, nullable=True)
    payment_value: Mapped[Decimal | None] = mapped_column("valor_parcela", Money, nullable=True)
    installment_count: Mapped[int | None] = mapped_column(
        "quantidade_parcelas", Integer, nullable=True
    )
    billing_type: Mapped[str | None] = mapped_column("forma_cobranca", String(30), nullable=True)
    payment_date: Mapped[date | None] = mapped_column("data_pagamento", Date, nullable=True)
    description: Mapped[str | None] = mapped_column("descricao", Text, nullable=True)
    expiration_day: Mapped[int | None] = mapped_column("dia_vencimento", Integer, nullable=True)

    # Only returned by the single-item endpoint, filled by the backfill
    bank_slip_url: Mapped[str | None] = mapped_column("url_boleto", String(500), nullable=True)

    deleted: Mapped[bool] = mapped_column("deletado", Boolean, default=False)
    date_created: Mapped[date | None] = mapped_column("data_criacao", Date, nullable=True)

    def __repr__(self) -> str:
        return f"<Installment(id='{self.id}', count={self.installment_count})>"


# ------------------------------------------------------------------------------
# SyncFailure model
# ------------------------------------------------------------------------------
class SyncFailure(Base):
    """Track failed record reconciliations for retry.

    Records failures during sync runs, enabling:
    - Manual retry via `asaas-sync sync retry`
    - Failure analysis across runs
    """

    __tablename__ = "sync_failures"

    id: Mapped[int] = mapped_column(primary_key=True)

    record_kind: Mapped[RecordKind] = mapped_column()
    asaas_id: Mapped[str] = mapped_column(String(64))

    # Error details
    error_message: Mapped[str] = mapped_column(Text)
    error_type: Mapped[str] = mapped_column(String(100))  # e.g., "AsaasThrottleError"

    # Retry tracking
    retry_count: Mapped[int] = mapped_column(default=0)
    status: Mapped[SyncFailureStatus] = mapped_column(default=SyncFailureStatus.PENDING)

    # Timestamps
    failed_at: Mapped[datetime] = mapped_column(DateTime)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    # Only one pending failure per record; resolved/permanent rows keep history
    __table_args__ = (
        Index(
            "uq_sync_failures_pending",
            "record_kind",
            "asaas_id",
            unique=True,
            sqlite_where=text("status = 'PENDING'"),
            postgresql_where=text("status = 'PENDING'"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<SyncFailure(id={self.id}, kind={self.record_kind.value}, "
            f"asaas_id='{self.asaas_id}', status={self.status.value})>"
        )

"""Pydantic schemas for parsing Asaas API responses.

These schemas map directly to the Asaas REST v3 response structure
(camelCase keys, exposed here as snake_case attributes).
See: https://docs.asaas.com/reference

Each record schema is an immutable snapshot of the upstream record and
knows how to project itself onto the columns of its local table.
Money is projected rounded to the cent, so a re-read row compares equal.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CENT = Decimal("0.01")


def to_cents(value: Decimal | None) -> Decimal | None:
    """Round a money value to the cent, the precision of the local money columns."""
    if value is None:
        return None
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class AsaasModel(BaseModel):
    """Base for Asaas payloads: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
        str_strip_whitespace=True,
    )


RecordT = TypeVar("RecordT", bound=AsaasModel)


class AsaasPage(AsaasModel, Generic[RecordT]):
    """List envelope returned by every Asaas collection endpoint.

    Maps to: GET /customers, /payments, /installments
    """

    object: str = Field(default="list")
    has_more: bool = Field(description="Whether another page exists after this one")
    total_count: int = Field(default=0, description="Provider's count of matching records")
    limit: int = Field(default=0)
    offset: int = Field(default=0)
    data: list[RecordT] = Field(default_factory=list)


class AsaasAccount(AsaasModel):
    """Account owning the API key.

    Maps to: GET /myAccount
    """

    name: str | None = None
    email: str | None = None
    cpf_cnpj: str | None = None
    person_type: str | None = None
    wallet_id: str | None = None


class AsaasCustomer(AsaasModel):
    """Asaas customer.

    Maps to: GET /customers/{id}
    """

    id: str = Field(description="Asaas customer ID (cus_...)")
    name: str = Field(description="Customer name")
    date_created: date | None = None
    email: str | None = None
    phone: str | None = None
    mobile_phone: str | None = None
    cpf_cnpj: str | None = None
    person_type: str | None = None
    address: str | None = None
    address_number: str | None = None
    complement: str | None = None
    province: str | None = None
    postal_code: str | None = None
    city_name: str | None = None
    state: str | None = None
    country: str | None = None
    additional_emails: str | None = None
    external_reference: str | None = None
    notification_disabled: bool = False
    observations: str | None = None
    foreign_customer: bool = False
    deleted: bool = False

    def to_row(self) -> dict[str, Any]:
        """Project onto the columns of the ``clientes`` table."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "cpf_cnpj": self.cpf_cnpj,
            "phone": self.phone,
            "mobile_phone": self.mobile_phone,
            "address": self.address,
            "address_number": self.address_number,
            "complement": self.complement,
            "province": self.province,
            "city_name": self.city_name,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
            "person_type": self.person_type,
            "additional_emails": self.additional_emails,
            "external_reference": self.external_reference,
            "notification_disabled": self.notification_disabled,
            "observations": self.observations,
            "foreign_customer": self.foreign_customer,
            "deleted": self.deleted,
            "date_created": self.date_created,
        }


class AsaasPayment(AsaasModel):
    """Asaas charge (cobranca).

    Maps to: GET /payments/{id}
    """

    id: str = Field(description="Asaas payment ID (pay_...)")
    customer: str = Field(description="Asaas customer ID")
    installment: str | None = Field(default=None, description="Installment plan ID")
    date_created: date | None = None
    value: Decimal
    net_value: Decimal | None = None
    description: str | None = None
    billing_type: str | None = Field(default=None, description="BOLETO, CREDIT_CARD, PIX...")
    status: str
    due_date: date
    original_due_date: date | None = None
    payment_date: date | None = None
    client_payment_date: date | None = None
    installment_number: int | None = None
    invoice_url: str | None = None
    bank_slip_url: str | None = None
    external_reference: str | None = None
    deleted: bool = False
    discount: dict[str, Any] | None = None
    fine: dict[str, Any] | None = None
    interest: dict[str, Any] | None = None

    @property
    def settled_on(self) -> date | None:
        """Date the charge was paid, as confirmed by Asaas or informed by the customer."""
        return self.payment_date or self.client_payment_date

    def to_row(self) -> dict[str, Any]:
        """Project onto the columns of the ``cobrancas`` table."""
        return {
            "id": self.id,
            "customer_id": self.customer,
            "value": to_cents(self.value),
            "net_value": to_cents(self.net_value),
            "status": self.status,
            "billing_type": self.billing_type,
            "due_date": self.due_date,
            "original_due_date": self.original_due_date,
            "payment_date": self.settled_on,
            "description": self.description,
            "invoice_url": self.invoice_url,
            "bank_slip_url": self.bank_slip_url,
            "installment_id": self.installment,
            "installment_number": self.installment_number,
            "external_reference": self.external_reference,
            "deleted": self.deleted,
            "discount": self.discount,
            "fine": self.fine,
            "interest": self.interest,
            "date_created": self.date_created,
        }


class AsaasInstallment(AsaasModel):
    """Asaas installment plan (parcelamento).

    Maps to: GET /installments/{id}
    """

    id: str = Field(description="Asaas installment ID")
    customer: str = Field(description="Asaas customer ID")
    date_created: date | None = None
    value: Decimal = Field(description="Total value of the plan")
    net_value: Decimal | None = None
    payment_value: Decimal | None = Field(default=None, description="Value of each charge")
    installment_count: int | None = None
    billing_type: str | None = None
    payment_date: date | None = None
    description: str | None = None
    expiration_day: int | None = None
    bank_slip_url: str | None = Field(
        default=None, description="Carnet with every bank slip (single-item endpoint only)"
    )
    deleted: bool = False

    def to_row(self) -> dict[str, Any]:
        """Project onto the columns of the ``parcelamentos`` table.

        ``bank_slip_url`` is only included when present, since the list
        endpoint omits it and a backfilled value must not be cleared.
        """
        row: dict[str, Any] = {
            "id": self.id,
            "customer_id": self.customer,
            "value": to_cents(self.value),
            "net_value": to_cents(self.net_value),
            "payment_value": to_cents(self.payment_value),
            "installment_count": self.installment_count,
            "billing_type": self.billing_type,
            "payment_date": self.payment_date,
            "description": self.description,
            "expiration_day": self.expiration_day,
            "deleted": self.deleted,
            "date_created": self.date_created,
        }
        if self.bank_slip_url:
            row["bank_slip_url"] = self.bank_slip_url
        return row

"""Record kinds the reconciler knows how to mirror.

Each EntitySpec ties an Asaas record schema to its local model, the
client methods that fetch it and the fields compared during
reconciliation. Bookkeeping columns and provider sub-objects are not
tracked.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from asaas_sync.db.models import Base, Customer, Installment, Payment, RecordKind
from asaas_sync.schemas.asaas_api import (
    AsaasCustomer,
    AsaasInstallment,
    AsaasModel,
    AsaasPayment,
)

if TYPE_CHECKING:
    from asaas_sync.asaas.client import AsaasClient
    from asaas_sync.asaas.pagination import PageFunction


@dataclass(frozen=True)
class EntitySpec:
    """How one record kind is fetched, projected and compared."""

    kind: RecordKind
    model: type[Base]
    schema: type[AsaasModel]

    tracked_fields: tuple[str, ...]
    """Local attributes compared against the upstream projection."""

    list_method: str
    """AsaasClient method returning one page of the collection."""

    get_method: str
    """AsaasClient method returning one record by ID."""

    parent_field: str | None = None
    """Projected attribute holding the owning customer ID, if any."""

    def project(self, record: Any) -> dict[str, Any]:
        """Project an upstream record onto local attribute names."""
        row: dict[str, Any] = record.to_row()
        return row

    def page_function(self, client: AsaasClient) -> PageFunction[Any]:
        page_function: PageFunction[Any] = getattr(client, self.list_method)
        return page_function

    def fetch_one(self, client: AsaasClient, asaas_id: str) -> Awaitable[Any]:
        """Fetch a single record from its single-item endpoint."""
        getter: Callable[[str], Awaitable[Any]] = getattr(client, self.get_method)
        return getter(asaas_id)


CUSTOMER_SPEC = EntitySpec(
    kind=RecordKind.CUSTOMER,
    model=Customer,
    schema=AsaasCustomer,
    tracked_fields=(
        "name",
        "email",
        "cpf_cnpj",
        "phone",
        "mobile_phone",
        "address",
        "address_number",
        "complement",
        "province",
        "city_name",
        "state",
        "postal_code",
        "deleted",
    ),
    list_method="list_customers",
    get_method="get_customer",
)

PAYMENT_SPEC = EntitySpec(
    kind=RecordKind.PAYMENT,
    model=Payment,
    schema=AsaasPayment,
    tracked_fields=(
        "customer_id",
        "value",
        "net_value",
        "status",
        "billing_type",
        "due_date",
        "payment_date",
        "description",
        "invoice_url",
        "installment_id",
        "installment_number",
        "deleted",
    ),
    list_method="list_payments",
    get_method="get_payment",
    parent_field="customer_id",
)

INSTALLMENT_SPEC = EntitySpec(
    kind=RecordKind.INSTALLMENT,
    model=Installment,
    schema=AsaasInstallment,
    tracked_fields=(
        "customer_id",
        "value",
        "net_value",
        "payment_value",
        "installment_count",
        "billing_type",
        "description",
        "expiration_day",
        "deleted",
    ),
    list_method="list_installments",
    get_method="get_installment",
    parent_field="customer_id",
)

ENTITY_SPECS: dict[RecordKind, EntitySpec] = {
    spec.kind: spec for spec in (CUSTOMER_SPEC, PAYMENT_SPEC, INSTALLMENT_SPEC)
}

# Parents before dependents
SYNC_ORDER: tuple[RecordKind, ...] = (
    RecordKind.CUSTOMER,
    RecordKind.PAYMENT,
    RecordKind.INSTALLMENT,
)


def spec_for(kind: RecordKind | str) -> EntitySpec:
    """Look up the spec of a record kind.

    Raises:
        ValueError: If the kind is unknown
    """
    return ENTITY_SPECS[RecordKind(kind)]

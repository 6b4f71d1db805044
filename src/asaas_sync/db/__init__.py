"""Database module for Asaas Sync."""

from asaas_sync.db.engine import (
    create_tables,
    dispose_engine,
    drop_tables,
    enable_sqlite_savepoints,
    get_engine,
    get_session,
    get_session_factory,
)
from asaas_sync.db.exceptions import StoreError
from asaas_sync.db.models import (
    Base,
    Customer,
    Installment,
    Payment,
    RecordKind,
    SyncFailure,
    SyncFailureStatus,
)
from asaas_sync.db.repositories import (
    BaseRepository,
    CustomerRepository,
    InstallmentRepository,
    PaymentRepository,
    SyncFailureRepository,
)

__all__ = [
    # Models
    "Base",
    "Customer",
    "Installment",
    "Payment",
    "RecordKind",
    "SyncFailure",
    "SyncFailureStatus",
    # Engine
    "create_tables",
    "dispose_engine",
    "drop_tables",
    "enable_sqlite_savepoints",
    "get_engine",
    "get_session",
    "get_session_factory",
    # Errors
    "StoreError",
    # Repositories
    "BaseRepository",
    "CustomerRepository",
    "InstallmentRepository",
    "PaymentRepository",
    "SyncFailureRepository",
]

"""Repository pattern implementation for database access.

This module provides repository classes that encapsulate all database
access logic, providing a clean abstraction over SQLAlchemy models.
"""

from .base import BaseRepository
from .customer import CustomerRepository
from .installment import InstallmentRepository
from .payment import PaymentRepository
from .sync_failure import SyncFailureRepository

__all__ = [
    "BaseRepository",
    "CustomerRepository",
    "InstallmentRepository",
    "PaymentRepository",
    "SyncFailureRepository",
]

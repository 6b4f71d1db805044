"""Repository for Payment model operations."""

import asyncio
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from asaas_sync.db.models import Payment
from asaas_sync.schemas.status import PaymentClass, classify_payment

from .base import BaseRepository


class PaymentRepository(BaseRepository[Payment]):
    """Repository for mirrored Asaas charges."""

    def __init__(
        self,
        session: AsyncSession,
        write_lock: asyncio.Lock | None = None,
    ) -> None:
        super().__init__(session, Payment, write_lock)

    async def list_by_customer(self, customer_id: str) -> list[Payment]:
        """Charges of a customer, oldest due date first."""
        stmt = (
            select(Payment)
            .where(Payment.customer_id == customer_id, Payment.deleted.is_(False))
            .order_by(Payment.due_date)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_installment(self, installment_id: str) -> list[Payment]:
        """Charges of an installment plan, in installment order."""
        stmt = (
            select(Payment)
            .where(Payment.installment_id == installment_id, Payment.deleted.is_(False))
            .order_by(Payment.installment_number, Payment.due_date)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count_by_class(self, today: date | None = None) -> dict[PaymentClass, int]:
        """Count non-deleted charges per settlement class.

        Args:
            today: Reference date for the overdue check (defaults to today)

        Returns:
            Count for every PaymentClass (zero when absent)
        """
        stmt = select(Payment.status, Payment.due_date).where(Payment.deleted.is_(False))
        result = await self._session.execute(stmt)

        counts = dict.fromkeys(PaymentClass, 0)
        for status, due_date in result.all():
            counts[classify_payment(status, due_date, today)] += 1
        return counts

"""Repository for Installment model operations."""

import asyncio

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from asaas_sync.db.models import Installment

from .base import BaseRepository


class InstallmentRepository(BaseRepository[Installment]):
    """Repository for mirrored Asaas installment plans."""

    def __init__(
        self,
        session: AsyncSession,
        write_lock: asyncio.Lock | None = None,
    ) -> None:
        super().__init__(session, Installment, write_lock)

    async def get_missing_bank_slip(self, limit: int | None = None) -> list[Installment]:
        """Installment plans with no bank slip URL stored yet.

        Args:
            limit: Maximum number of plans to return

        Returns:
            Plans ordered by creation date, soft-deleted ones excluded
        """
        stmt = (
            select(Installment)
            .where(Installment.bank_slip_url.is_(None), Installment.deleted.is_(False))
            .order_by(Installment.date_created, Installment.id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def set_bank_slip_url(self, installment_id: str, url: str) -> None:
        """Store the bank slip URL of one plan.

        Raises:
            StoreError: If the write fails
        """
        stmt = (
            update(Installment)
            .where(Installment.id == installment_id)
            .values(bank_slip_url=url)
            .execution_options(synchronize_session=False)
        )
        async with self._savepoint(f"Bank slip update of installment {installment_id}"):
            await self._session.execute(stmt)

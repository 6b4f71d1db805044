"""Repository for Customer model operations."""

import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from asaas_sync.db.models import Customer

from .base import BaseRepository


class CustomerRepository(BaseRepository[Customer]):
    """Repository for mirrored Asaas customers."""

    def __init__(
        self,
        session: AsyncSession,
        write_lock: asyncio.Lock | None = None,
    ) -> None:
        super().__init__(session, Customer, write_lock)

    async def get_by_cpf_cnpj(self, cpf_cnpj: str) -> Customer | None:
        """Get the first customer with the given CPF/CNPJ (digits only)."""
        return await self._get_by_field("cpf_cnpj", cpf_cnpj)

    async def list_active(self, limit: int | None = None) -> list[Customer]:
        """Customers not soft-deleted upstream, ordered by name."""
        stmt = select(Customer).where(Customer.deleted.is_(False)).order_by(Customer.name)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

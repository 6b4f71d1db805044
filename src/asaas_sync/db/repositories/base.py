"""Base repository pattern implementation for async SQLAlchemy.

Provides common session handling, point lookups and the dialect-aware
upsert every record repository relies on.
"""

import asyncio
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any, Generic, TypeVar

from sqlalchemy import Column, func, inspect, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from asaas_sync.db.exceptions import StoreError
from asaas_sync.db.models import Base

ModelT = TypeVar("ModelT", bound=Base)

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}

# Bookkeeping attribute the upsert refreshes on every update
_UPDATED_ATTR = "updated_at"


class BaseRepository(Generic[ModelT]):
    """Base repository with common async session handling.

    Usage:
        class CustomerRepository(BaseRepository[Customer]):
            def __init__(self, session: AsyncSession) -> None:
                super().__init__(session, Customer)

            async def get_by_cpf_cnpj(self, cpf_cnpj: str) -> Customer | None:
                return await self._get_by_field("cpf_cnpj", cpf_cnpj)

    Concurrency:
        Records of a batch are reconciled concurrently on one session.
        Pass a shared write_lock to serialize statements on that session.
        Every write runs in its own savepoint, so a failed statement rolls
        back alone and the surrounding transaction stays usable.
    """

    def __init__(
        self,
        session: AsyncSession,
        model_class: type[ModelT],
        write_lock: asyncio.Lock | None = None,
    ) -> None:
        """Initialize the repository with a session.

        Args:
            session: Async SQLAlchemy session (caller manages lifecycle)
            model_class: The SQLAlchemy model class this repository manages
            write_lock: Optional lock to serialize session access (shared across repos)
        """
        self._session = session
        self._model_class = model_class
        self._write_lock = write_lock or asyncio.Lock()

    @property
    def session(self) -> AsyncSession:
        """Access the underlying session."""
        return self._session

    @property
    def model_class(self) -> type[ModelT]:
        return self._model_class

    # -------------------------------------------------------------------------
    # Common Read Operations
    # -------------------------------------------------------------------------

    async def get_by_id(self, id: str | int) -> ModelT | None:
        """Get an entity by its primary key.

        The row is always re-read from the database so values written by a
        previous upsert are never served from the identity map.

        Args:
            id: Primary key (the Asaas ID for record tables)

        Returns:
            Entity or None if not found

        Raises:
            StoreError: If the lookup fails
        """
        try:
            async with self._write_lock:
                return await self._session.get(self._model_class, id, populate_existing=True)
        except SQLAlchemyError as e:
            raise StoreError(f"Lookup of {self._model_class.__name__} {id} failed: {e}") from e

    async def _get_by_field(self, field_name: str, value: object) -> ModelT | None:
        stmt = select(self._model_class).where(getattr(self._model_class, field_name) == value)
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def count(self) -> int:
        """Count total entities of this type."""
        stmt = select(func.count()).select_from(self._model_class)
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    # -------------------------------------------------------------------------
    # Common Write Operations
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def _savepoint(self, action: str) -> AsyncIterator[None]:
        """Hold the write lock and run the block inside a savepoint.

        On PostgreSQL a failed statement aborts the whole transaction; the
        savepoint confines the rollback to this block, so earlier writes of
        the commit window and later records keep working.

        ORM changes belong inside the block: entering it flushes whatever is
        already pending into the outer transaction.

        Raises:
            StoreError: If a statement (or the savepoint itself) fails
        """
        async with self._write_lock:
            try:
                async with self._session.begin_nested():
                    yield
            except SQLAlchemyError as e:
                raise StoreError(f"{action} failed: {e}") from e

    def _columns_for(self, values: Mapping[str, Any]) -> dict[Column[Any], Any]:
        """Translate attribute-keyed values to table columns."""
        mapper_columns = inspect(self._model_class).columns
        try:
            return {mapper_columns[key]: value for key, value in values.items()}
        except KeyError as e:
            raise StoreError(
                f"{self._model_class.__name__} has no column for attribute {e.args[0]!r}"
            ) from e

    async def upsert(self, values: Mapping[str, Any]) -> None:
        """Insert a row, or update every given non-key column on conflict.

        Only the columns present in ``values`` are written on update, plus
        the update timestamp; the creation timestamp is preserved.

        Args:
            values: Attribute-keyed values including the primary key

        Raises:
            StoreError: If the dialect has no upsert or the write fails
        """
        dialect = self._session.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise StoreError(f"Upsert is not supported on {dialect}")

        table = self._model_class.__table__
        primary_key = list(table.primary_key.columns)
        row = self._columns_for(values)

        stmt = insert(table).values(row)
        updates: dict[Any, Any] = {
            column: stmt.excluded[column.key]
            for column in row
            if column not in primary_key
        }
        mapper_columns = inspect(self._model_class).columns
        if _UPDATED_ATTR in mapper_columns:
            updates[mapper_columns[_UPDATED_ATTR]] = func.now()
        stmt = stmt.on_conflict_do_update(index_elements=primary_key, set_=updates)

        async with self._savepoint(f"Upsert of {self._model_class.__name__} {values.get('id')}"):
            await self._session.execute(stmt)

"""Paginated fetching of Asaas collections.

Asaas collections are paged with offset/limit and report ``hasMore`` and
``totalCount`` on every page. The fetcher walks the pages until the
provider says there are no more (or returns an empty page).
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Mapping
from typing import Any, Generic, Protocol, TypeVar

from asaas_sync.logging import get_logger
from asaas_sync.schemas.asaas_api import AsaasModel, AsaasPage

logger = get_logger(__name__)

RecordT = TypeVar("RecordT", bound=AsaasModel)
RecordT_co = TypeVar("RecordT_co", bound=AsaasModel, covariant=True)


class PageFunction(Protocol[RecordT_co]):
    """Client method fetching one page (e.g. AsaasClient.list_customers)."""

    def __call__(
        self,
        offset: int = 0,
        limit: int = 100,
        filters: Mapping[str, Any] | None = None,
    ) -> Awaitable[AsaasPage[RecordT_co]]: ...


class PaginatedFetcher(Generic[RecordT]):
    """Materializes a full Asaas collection page by page.

    Each call to iter_pages(), iter_items() or fetch_all() starts a fresh
    enumeration from offset 0; nothing is persisted between runs.

    Usage:
        fetcher = PaginatedFetcher(client.list_payments, page_size=100,
                                   filters={"status": "PENDING"})
        payments = await fetcher.fetch_all()

        # Or lazily
        async for payment in fetcher.iter_items():
            ...
    """

    def __init__(
        self,
        fetch_page: PageFunction[RecordT],
        *,
        page_size: int = 100,
        filters: Mapping[str, Any] | None = None,
        max_items: int | None = None,
        page_delay: float = 0.0,
    ) -> None:
        """Initialize the fetcher.

        Args:
            fetch_page: Async page function accepting offset, limit and filters
            page_size: Records per page (Asaas maximum is 100)
            filters: Provider filters passed with every page request
            max_items: Stop after this many records (None for all)
            page_delay: Seconds to pause between page requests
        """
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._fetch_page = fetch_page
        self._page_size = page_size
        self._filters = dict(filters or {})
        self._max_items = max_items
        self._page_delay = page_delay

        self._pages_fetched = 0
        self._total_count: int | None = None

    @property
    def pages_fetched(self) -> int:
        """Pages fetched by the most recent enumeration."""
        return self._pages_fetched

    @property
    def total_count(self) -> int | None:
        """Largest totalCount reported during the most recent enumeration."""
        return self._total_count

    async def iter_pages(self) -> AsyncIterator[AsaasPage[RecordT]]:
        """Yield pages until the collection is exhausted.

        Yields:
            Non-empty AsaasPage instances in offset order
        """
        self._pages_fetched = 0
        self._total_count = None
        offset = 0
        yielded = 0
        if self._max_items is not None and self._max_items <= 0:
            return

        while True:
            if self._pages_fetched and self._page_delay > 0:
                await asyncio.sleep(self._page_delay)

            page = await self._fetch_page(
                offset=offset, limit=self._page_size, filters=self._filters or None
            )
            self._pages_fetched += 1
            self._track_total_count(page.total_count)

            if not page.data:
                logger.debug("Empty page at offset {}, stopping", offset)
                return

            if self._max_items is not None and yielded + len(page.data) >= self._max_items:
                remaining = self._max_items - yielded
                yield page.model_copy(update={"data": page.data[:remaining], "has_more": False})
                return

            yield page
            yielded += len(page.data)

            if not page.has_more:
                return
            offset += len(page.data)

    def _track_total_count(self, total_count: int) -> None:
        if self._total_count is None:
            self._total_count = total_count
            return
        if total_count != self._total_count:
            # Records created or deleted upstream while paging
            logger.warning(
                "totalCount changed during pagination ({} -> {}), continuing",
                self._total_count,
                total_count,
            )
            self._total_count = max(self._total_count, total_count)

    async def iter_items(self) -> AsyncIterator[RecordT]:
        """Yield records one at a time across all pages."""
        async for page in self.iter_pages():
            for record in page.data:
                yield record

    async def fetch_all(self) -> list[RecordT]:
        """Fetch the whole collection.

        Returns:
            Every record, in provider order
        """
        records: list[RecordT] = [record async for record in self.iter_items()]
        logger.info(
            "Fetched {} record(s) in {} page(s) (totalCount={})",
            len(records),
            self._pages_fetched,
            self._total_count,
        )
        return records


async def fetch_all(
    fetch_page: PageFunction[RecordT],
    *,
    page_size: int = 100,
    filters: Mapping[str, Any] | None = None,
) -> list[RecordT]:
    """Convenience function for one-off collection fetches.

    Args:
        fetch_page: Async page function accepting offset, limit and filters
        page_size: Records per page
        filters: Provider filters

    Returns:
        Every record, in provider order
    """
    fetcher: PaginatedFetcher[RecordT] = PaginatedFetcher(
        fetch_page, page_size=page_size, filters=filters
    )
    return await fetcher.fetch_all()


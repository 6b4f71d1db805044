"""Async Asaas API client built on httpx.

This module provides a typed async interface to the Asaas REST v3 API
with integrated rate limit governance and bounded retries.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from asaas_sync import __version__
from asaas_sync.config import get_settings
from asaas_sync.logging import get_logger
from asaas_sync.schemas.asaas_api import (
    AsaasAccount,
    AsaasCustomer,
    AsaasInstallment,
    AsaasPage,
    AsaasPayment,
)

from .exceptions import (
    AsaasAuthenticationError,
    AsaasClientError,
    AsaasNotFoundError,
    AsaasRetryableError,
    AsaasThrottleError,
    AsaasTransportError,
    AsaasValidationError,
)
from .rate_limit.governor import RateLimitGovernor
from .retry import RetryPolicy

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

THROTTLE_STATUS_CODES = frozenset({403, 429})


class AsaasClient:
    """Async Asaas API client for customers, payments and installments.

    Every attempt goes through the shared governor: throttle_if_needed()
    before sending, observe() with the response headers afterwards.

    Usage:
        governor = RateLimitGovernor()
        async with AsaasClient(governor=governor) as client:
            page = await client.list_customers(offset=0, limit=100)
            for customer in page.data:
                print(customer.name)

    Or without context manager:
        client = AsaasClient()
        payment = await client.get_payment("pay_080225913252")
        await client.close()
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        governor: RateLimitGovernor | None = None,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the Asaas client.

        Args:
            api_key: Asaas access token. If not provided, uses ASAAS_API_KEY from settings.
            base_url: API base URL. If not provided, uses ASAAS_API_URL from settings.
            governor: Shared RateLimitGovernor. A private one is created if omitted,
                      but a run with several clients should share one.
            retry_policy: Retry policy for throttle and transport errors.
            transport: Optional httpx transport (e.g. httpx.MockTransport in tests).
            timeout: Per-request timeout in seconds.

        Raises:
            AsaasAuthenticationError: If no API key is available.
        """
        settings = get_settings()
        self._api_key = api_key or settings.asaas_api_key
        if not self._api_key:
            raise AsaasAuthenticationError(
                "Asaas API key required. Set ASAAS_API_KEY environment variable."
            )
        self._base_url = (base_url or settings.asaas_api_url).rstrip("/")
        self._governor = governor or RateLimitGovernor(settings.rate_limit)
        self._retry_policy = retry_policy or RetryPolicy.from_config(settings.client)
        self._transport = transport
        self._timeout = timeout or settings.client.timeout_seconds
        self._client: httpx.AsyncClient | None = None

    @property
    def _http(self) -> httpx.AsyncClient:
        """Get or create the httpx client instance."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={
                    "access_token": self._api_key,
                    "Accept": "application/json",
                    "User-Agent": f"asaas-sync/{__version__}",
                },
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    @property
    def governor(self) -> RateLimitGovernor:
        """Access the shared rate limit governor."""
        return self._governor

    @property
    def retry_policy(self) -> RetryPolicy:
        """Access the retry policy."""
        return self._retry_policy

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> AsaasClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Request Loop
    # -------------------------------------------------------------------------
    async def _request(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        """Execute one logical request with governance and bounded retries.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            params: Query parameters

        Returns:
            Decoded JSON body

        Raises:
            AsaasThrottleError: Still throttled after the last attempt
            AsaasTransportError: Still failing to connect after the last attempt
            AsaasNotFoundError: Record does not exist (never retried)
            AsaasValidationError: Rejected request or malformed body (never retried)
            AsaasAuthenticationError: API key rejected (never retried)
        """
        attempt = 0
        while True:
            attempt += 1
            await self._governor.throttle_if_needed()
            try:
                return await self._send(method, path, params)
            except AsaasRetryableError as e:
                if not self._retry_policy.should_retry(e, attempt):
                    logger.warning(
                        "{} {} failed after {} attempt(s): {}", method, path, attempt, e
                    )
                    raise
                delay = self._retry_policy.delay_for(attempt, e)
                logger.debug(
                    "{} {} attempt {}/{} failed ({}), retrying in {:.2f}s",
                    method,
                    path,
                    attempt,
                    self._retry_policy.max_attempts,
                    type(e).__name__,
                    delay,
                )
                await asyncio.sleep(delay)

    async def _send(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None,
    ) -> Any:
        """Send a single attempt and classify the outcome."""
        try:
            response = await self._http.request(method, path, params=params)
        except httpx.TransportError as e:
            raise AsaasTransportError(f"{method} {path}: {type(e).__name__}: {e}") from e

        # Budget headers come on every response, error or not
        self._governor.observe(response.headers)

        if response.is_error:
            raise self._error_for(response, path)

        try:
            return response.json()
        except ValueError as e:
            raise AsaasValidationError(
                f"Malformed response from {path}: body is not JSON",
                status_code=response.status_code,
            ) from e

    @staticmethod
    def _error_for(response: httpx.Response, path: str) -> AsaasClientError:
        """Map an error response to the client exception taxonomy."""
        status = response.status_code
        errors: list[dict[str, Any]] = []
        try:
            body = response.json()
            if isinstance(body, dict) and isinstance(body.get("errors"), list):
                errors = body["errors"]
        except ValueError:
            pass
        detail = (
            "; ".join(
                str(err.get("description", err)) if isinstance(err, dict) else str(err)
                for err in errors
            )
            or response.reason_phrase
        )

        if status in THROTTLE_STATUS_CODES:
            return AsaasThrottleError(f"Throttled by Asaas ({status}) on {path}", status)
        if status == 401:
            return AsaasAuthenticationError(f"Asaas rejected the API key: {detail}", status)
        if status == 404:
            return AsaasNotFoundError(f"Not found: {path}", status)
        if status >= 500:
            return AsaasTransportError(f"Asaas server error ({status}) on {path}", status)
        return AsaasValidationError(f"Request rejected ({status}) on {path}: {detail}", status, errors)

    async def _get_model(
        self,
        path: str,
        model: type[ModelT],
        params: Mapping[str, Any] | None = None,
    ) -> ModelT:
        data = await self._request("GET", path, params)
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise AsaasValidationError(
                f"Unexpected {model.__name__} payload from {path} ({e.error_count()} errors)"
            ) from e

    async def _list(
        self,
        path: str,
        record: type[Any],
        offset: int,
        limit: int,
        filters: Mapping[str, Any] | None,
    ) -> AsaasPage[Any]:
        params: dict[str, Any] = dict(filters or {})
        params.update(offset=offset, limit=limit)
        return await self._get_model(path, AsaasPage[record], params)  # type: ignore[valid-type]

    # -------------------------------------------------------------------------
    # Account
    # -------------------------------------------------------------------------
    async def get_account(self) -> AsaasAccount:
        """Fetch the account that owns the API key (connectivity check)."""
        return await self._get_model("/myAccount", AsaasAccount)

    # -------------------------------------------------------------------------
    # Collections
    # -------------------------------------------------------------------------
    async def list_customers(
        self,
        offset: int = 0,
        limit: int = 100,
        filters: Mapping[str, Any] | None = None,
    ) -> AsaasPage[AsaasCustomer]:
        """Fetch one page of customers.

        Args:
            offset: Index of the first record
            limit: Page size (max 100)
            filters: Provider filters (e.g. {"cpfCnpj": "..."})

        Returns:
            AsaasPage of AsaasCustomer
        """
        return await self._list("/customers", AsaasCustomer, offset, limit, filters)

    async def list_payments(
        self,
        offset: int = 0,
        limit: int = 100,
        filters: Mapping[str, Any] | None = None,
    ) -> AsaasPage[AsaasPayment]:
        """Fetch one page of payments.

        Args:
            offset: Index of the first record
            limit: Page size (max 100)
            filters: Provider filters (e.g. {"status": "OVERDUE", "dueDate[ge]": "2024-01-01"})

        Returns:
            AsaasPage of AsaasPayment
        """
        return await self._list("/payments", AsaasPayment, offset, limit, filters)

    async def list_installments(
        self,
        offset: int = 0,
        limit: int = 100,
        filters: Mapping[str, Any] | None = None,
    ) -> AsaasPage[AsaasInstallment]:
        """Fetch one page of installment plans."""
        return await self._list("/installments", AsaasInstallment, offset, limit, filters)

    async def list_installment_payments(self, installment_id: str) -> list[AsaasPayment]:
        """Fetch every charge belonging to an installment plan.

        Args:
            installment_id: Asaas installment ID

        Returns:
            Charges of the plan, in provider order
        """
        payments: list[AsaasPayment] = []
        offset = 0
        while True:
            page = await self.list_payments(
                offset=offset, limit=100, filters={"installment": installment_id}
            )
            payments.extend(page.data)
            if not page.has_more or not page.data:
                return payments
            offset += len(page.data)

    # -------------------------------------------------------------------------
    # Single Records
    # -------------------------------------------------------------------------
    async def get_customer(self, customer_id: str) -> AsaasCustomer:
        """Fetch one customer.

        Raises:
            AsaasNotFoundError: If the customer doesn't exist
        """
        return await self._get_model(f"/customers/{customer_id}", AsaasCustomer)

    async def get_payment(self, payment_id: str) -> AsaasPayment:
        """Fetch one payment.

        Raises:
            AsaasNotFoundError: If the payment doesn't exist
        """
        return await self._get_model(f"/payments/{payment_id}", AsaasPayment)

    async def get_installment(self, installment_id: str) -> AsaasInstallment:
        """Fetch one installment plan, including its bank slip URL.

        Raises:
            AsaasNotFoundError: If the installment doesn't exist
        """
        return await self._get_model(f"/installments/{installment_id}", AsaasInstallment)

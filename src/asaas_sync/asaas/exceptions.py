"""Asaas client exceptions."""

from typing import Any


class AsaasClientError(Exception):
    """Base exception for Asaas client errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AsaasAuthenticationError(AsaasClientError):
    """Raised when the API key is missing or rejected (401).

    This is a setup-level error: every later request would fail the same way,
    so it aborts the whole run instead of a single record.
    """


class AsaasRetryableError(AsaasClientError):
    """Base class for errors the client retries before surfacing.

    The client loop retries these up to ``max_retries`` times; once the
    attempts are exhausted the last one propagates to the caller.
    """


class AsaasThrottleError(AsaasRetryableError):
    """Raised when Asaas throttles the request (403 or 429)."""


class AsaasTransportError(AsaasRetryableError):
    """Raised on connectivity failures, timeouts and 5xx responses."""


class AsaasNotFoundError(AsaasClientError):
    """Raised when a record does not exist upstream (404)."""


class AsaasValidationError(AsaasClientError):
    """Raised on a rejected request (4xx) or a malformed response body."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message, status_code)
        self.errors = errors or []

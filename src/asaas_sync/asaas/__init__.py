"""Asaas API client module.

This module provides:
- AsaasClient: Async Asaas API client with rate limit governance
- RateLimitGovernor: Shared budget tracking and throttling
- RetryPolicy: Bounded retries for throttle and transport errors
- PaginatedFetcher: Full collection enumeration
"""

from .client import AsaasClient
from .exceptions import (
    AsaasAuthenticationError,
    AsaasClientError,
    AsaasNotFoundError,
    AsaasRetryableError,
    AsaasThrottleError,
    AsaasTransportError,
    AsaasValidationError,
)
from .pagination import PaginatedFetcher, fetch_all
from .rate_limit import RateLimitGovernor, RateLimitState, RateLimitStatus
from .retry import RetryPolicy

__all__ = [
    # Client
    "AsaasClient",
    "RetryPolicy",
    # Exceptions
    "AsaasAuthenticationError",
    "AsaasClientError",
    "AsaasNotFoundError",
    "AsaasRetryableError",
    "AsaasThrottleError",
    "AsaasTransportError",
    "AsaasValidationError",
    # Pagination
    "PaginatedFetcher",
    "fetch_all",
    # Rate limit
    "RateLimitGovernor",
    "RateLimitState",
    "RateLimitStatus",
]

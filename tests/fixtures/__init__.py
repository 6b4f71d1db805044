"""Test fixtures for Asaas Sync."""

from .asaas_responses import (
    CRITICAL_HEADERS,
    EXHAUSTED_HEADERS,
    HEALTHY_HEADERS,
    WARNING_HEADERS,
    FakeAsaas,
    account_payload,
    customer_payload,
    error_payload,
    installment_payload,
    page_payload,
    payment_payload,
    rate_limit_headers,
)

__all__ = [
    # Rate limit headers
    "CRITICAL_HEADERS",
    "EXHAUSTED_HEADERS",
    "HEALTHY_HEADERS",
    "WARNING_HEADERS",
    "rate_limit_headers",
    # Asaas payloads
    "account_payload",
    "customer_payload",
    "error_payload",
    "installment_payload",
    "page_payload",
    "payment_payload",
    # Fake API
    "FakeAsaas",
]

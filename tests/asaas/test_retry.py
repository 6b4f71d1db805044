"""Tests for the retry policy."""

import pytest

from asaas_sync.asaas import (
    AsaasAuthenticationError,
    AsaasNotFoundError,
    AsaasThrottleError,
    AsaasTransportError,
    AsaasValidationError,
    RetryPolicy,
)
from asaas_sync.config import BackoffStrategy, ClientConfig


class TestShouldRetry:
    """Tests for which errors get another attempt."""

    @pytest.mark.parametrize(
        "error",
        [
            AsaasThrottleError("throttled", 429),
            AsaasTransportError("connection reset"),
        ],
    )
    def test_retryable_errors(self, error):
        policy = RetryPolicy(max_retries=3)
        assert policy.should_retry(error, attempt=1) is True

    @pytest.mark.parametrize(
        "error",
        [
            AsaasAuthenticationError("bad key", 401),
            AsaasNotFoundError("gone", 404),
            AsaasValidationError("bad request", 400),
            ValueError("unrelated"),
        ],
    )
    def test_non_retryable_errors(self, error):
        policy = RetryPolicy(max_retries=3)
        assert policy.should_retry(error, attempt=1) is False

    def test_stops_after_max_attempts(self):
        """The attempt numbered max_retries + 1 is the last one."""
        policy = RetryPolicy(max_retries=2)
        error = AsaasThrottleError("throttled", 429)

        assert policy.max_attempts == 3
        assert policy.should_retry(error, attempt=2) is True
        assert policy.should_retry(error, attempt=3) is False

    def test_zero_retries(self):
        policy = RetryPolicy(max_retries=0)
        assert policy.should_retry(AsaasTransportError("down"), attempt=1) is False


class TestDelayFor:
    """Tests for delay computation."""

    def test_fixed_delay(self):
        policy = RetryPolicy(base_delay=0.3, throttle_delay=0.5)

        assert policy.delay_for(1, AsaasTransportError("down")) == 0.3
        assert policy.delay_for(3, AsaasTransportError("down")) == 0.3

    def test_throttle_uses_its_own_delay(self):
        """HTTP 429 waits the throttle delay, 403 the base delay."""
        policy = RetryPolicy(base_delay=0.3, throttle_delay=0.5)

        assert policy.delay_for(1, AsaasThrottleError("throttled", 429)) == 0.5
        assert policy.delay_for(1, AsaasThrottleError("blocked", 403)) == 0.3

    def test_exponential_backoff_is_capped(self):
        policy = RetryPolicy(
            base_delay=1.0,
            max_delay=5.0,
            backoff=BackoffStrategy.EXPONENTIAL,
        )

        assert policy.delay_for(1) == 1.0
        assert policy.delay_for(2) == 2.0
        assert policy.delay_for(3) == 4.0
        assert policy.delay_for(4) == 5.0


class TestFromConfig:
    """Tests for building a policy from settings."""

    def test_milliseconds_become_seconds(self):
        config = ClientConfig(
            max_retries=5,
            retry_delay_ms=250,
            throttle_retry_delay_ms=1000,
            max_retry_delay_ms=8000,
            backoff=BackoffStrategy.EXPONENTIAL,
        )

        policy = RetryPolicy.from_config(config)

        assert policy.max_retries == 5
        assert policy.base_delay == 0.25
        assert policy.throttle_delay == 1.0
        assert policy.max_delay == 8.0
        assert policy.backoff == BackoffStrategy.EXPONENTIAL

"""Retry policy for Asaas requests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

from asaas_sync.config import BackoffStrategy

from .exceptions import AsaasClientError, AsaasRetryableError

if TYPE_CHECKING:
    from asaas_sync.config import ClientConfig


@dataclass(frozen=True)
class RetryPolicy:
    """How many times, and how long apart, a request is retried.

    Only retryable errors (throttling and transport failures) are retried.
    A logical call makes at most ``max_retries + 1`` attempts.
    """

    max_retries: int = 3
    """Retries after the first attempt."""

    base_delay: float = 0.3
    """Seconds before the first retry."""

    throttle_delay: float = 0.5
    """Seconds before the first retry of an HTTP 429."""

    max_delay: float = 5.0
    """Upper bound for any single delay."""

    backoff: BackoffStrategy = BackoffStrategy.FIXED
    """FIXED keeps the delay constant, EXPONENTIAL doubles it per attempt."""

    @classmethod
    def from_config(cls, config: ClientConfig) -> Self:
        """Build a policy from the client section of the settings."""
        return cls(
            max_retries=config.max_retries,
            base_delay=config.retry_delay_ms / 1000,
            throttle_delay=config.throttle_retry_delay_ms / 1000,
            max_delay=config.max_retry_delay_ms / 1000,
            backoff=config.backoff,
        )

    @property
    def max_attempts(self) -> int:
        """Total attempts allowed for one logical call."""
        return self.max_retries + 1

    def should_retry(self, error: Exception, attempt: int) -> bool:
        """Whether a failed attempt gets another try.

        Args:
            error: Error raised by the attempt
            attempt: 1-based number of the attempt that failed

        Returns:
            True if the error is retryable and attempts remain
        """
        return isinstance(error, AsaasRetryableError) and attempt < self.max_attempts

    def delay_for(self, attempt: int, error: Exception | None = None) -> float:
        """Seconds to wait after a failed attempt.

        Args:
            attempt: 1-based number of the attempt that failed
            error: Error raised by the attempt

        Returns:
            Delay in seconds
        """
        status_code = error.status_code if isinstance(error, AsaasClientError) else None
        delay = self.throttle_delay if status_code == 429 else self.base_delay
        if self.backoff == BackoffStrategy.EXPONENTIAL:
            delay *= 2 ** (attempt - 1)
        return min(delay, self.max_delay)

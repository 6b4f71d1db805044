"""Pydantic schemas for Asaas rate limit state.

Asaas reports its request budget on every response, successful or not:
- RateLimit-Limit: capacity of the current window
- RateLimit-Remaining: calls left in the current window
- RateLimit-Reset: seconds until the window resets
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from enum import StrEnum
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, computed_field

LIMIT_HEADER = "ratelimit-limit"
REMAINING_HEADER = "ratelimit-remaining"
RESET_HEADER = "ratelimit-reset"


class RateLimitStatus(StrEnum):
    """Rate limit health status.

    Defaults:
    - HEALTHY: >= 50% remaining
    - WARNING: 20-50% remaining
    - CRITICAL: below 20% remaining
    - EXHAUSTED: 0 remaining
    """

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"
    EXHAUSTED = "exhausted"


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return max(0, int(value.strip()))
    except ValueError:
        return None


class RateLimitState(BaseModel):
    """Point-in-time view of the Asaas request budget.

    Instances are immutable; the governor swaps in a new state for every
    observed response.
    """

    model_config = ConfigDict(frozen=True)

    limit: int = Field(ge=0, description="Window capacity")
    remaining: int = Field(ge=0, description="Calls left in the current window")
    reset_seconds: int = Field(ge=0, description="Seconds until the window resets")
    last_updated: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When this state was observed",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def remaining_percent(self) -> float:
        """Percentage of the window still available (0.0 to 100.0)."""
        if self.limit == 0:
            return 0.0
        return min(100.0, (self.remaining / self.limit) * 100)

    def get_status(
        self,
        warning_threshold: float = 50.0,
        critical_threshold: float = 20.0,
    ) -> RateLimitStatus:
        """Determine rate limit health status.

        Args:
            warning_threshold: % remaining below which status is WARNING
            critical_threshold: % remaining below which status is CRITICAL

        Returns:
            RateLimitStatus enum value
        """
        if self.remaining == 0:
            return RateLimitStatus.EXHAUSTED
        if self.remaining_percent >= warning_threshold:
            return RateLimitStatus.HEALTHY
        if self.remaining_percent >= critical_threshold:
            return RateLimitStatus.WARNING
        return RateLimitStatus.CRITICAL

    def updated_from_headers(self, headers: Mapping[str, str]) -> Self:
        """Build the next state from response headers.

        Header names are matched case-insensitively. A missing or unparsable
        header keeps the current value for that field.

        Args:
            headers: HTTP response headers

        Returns:
            New RateLimitState
        """
        lowered = {key.lower(): value for key, value in headers.items()}
        limit = _parse_int(lowered.get(LIMIT_HEADER))
        remaining = _parse_int(lowered.get(REMAINING_HEADER))
        reset = _parse_int(lowered.get(RESET_HEADER))

        return self.model_copy(
            update={
                "limit": self.limit if limit is None else limit,
                "remaining": self.remaining if remaining is None else remaining,
                "reset_seconds": self.reset_seconds if reset is None else reset,
                "last_updated": datetime.now(UTC),
            }
        )

    def refilled(self) -> Self:
        """State assumed after waiting out a full reset window."""
        return self.model_copy(
            update={"remaining": self.limit, "last_updated": datetime.now(UTC)}
        )

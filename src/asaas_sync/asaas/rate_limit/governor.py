"""Shared rate limit governor for the Asaas API.

One governor instance is created per run and injected into every
AsaasClient, so all concurrent requests draw from the same view of the
remote budget.

Key Features:
- Passive tracking from RateLimit-* response headers (zero API cost)
- Waits out the reset window once the remaining budget hits a low-water mark
- Check before every call, or before every Nth call
- Concurrent callers at the low-water mark share a single wait
- Observable via status callbacks and to_dict()
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from typing import Any

from asaas_sync.config import RateLimitConfig, ThrottleCheckPolicy, get_settings
from asaas_sync.logging import get_logger

from .schemas import RateLimitState, RateLimitStatus

logger = get_logger(__name__)

StatusCallback = Callable[[RateLimitState, RateLimitStatus], None]

_STATUS_ORDER = [
    RateLimitStatus.HEALTHY,
    RateLimitStatus.WARNING,
    RateLimitStatus.CRITICAL,
    RateLimitStatus.EXHAUSTED,
]


class RateLimitGovernor:
    """Keeps the aggregate call rate under the Asaas budget.

    Every outbound request calls throttle_if_needed() before it is sent
    and observe() with the response headers afterwards (on success and on
    error alike). The state is a cache of the remote counters: the last
    observed response wins.

    Usage:
        governor = RateLimitGovernor()
        async with AsaasClient(governor=governor) as client:
            page = await client.list_customers(offset=0, limit=100)

        print(governor.state.remaining)
    """

    def __init__(self, config: RateLimitConfig | None = None) -> None:
        """Initialize the governor with optimistic defaults.

        Args:
            config: Optional rate limit configuration (uses settings if not provided)
        """
        self._config = config or get_settings().rate_limit
        self._state = RateLimitState(
            limit=self._config.initial_limit,
            remaining=self._config.initial_remaining,
            reset_seconds=self._config.initial_reset_seconds,
        )

        self._call_count = 0
        self._wait_count = 0
        self._total_wait_seconds = 0.0

        # Serializes waits so callers queued behind one low-water mark share it
        self._wait_lock = asyncio.Lock()

        self._status_callbacks: list[StatusCallback] = []
        self._previous_status = RateLimitStatus.HEALTHY

    # -------------------------------------------------------------------------
    # Tracking
    # -------------------------------------------------------------------------
    @property
    def state(self) -> RateLimitState:
        """Most recently observed rate limit state."""
        return self._state

    def observe(self, headers: Mapping[str, str]) -> RateLimitState:
        """Update the state from a response's headers.

        Args:
            headers: HTTP response headers (any status code)

        Returns:
            The new state
        """
        self._state = self._state.updated_from_headers(headers)
        self._check_status_change()
        return self._state

    def _check_status_change(self) -> None:
        current = self.get_status()
        previous = self._previous_status
        if current == previous:
            return

        self._previous_status = current
        if _STATUS_ORDER.index(current) <= _STATUS_ORDER.index(previous):
            return

        for callback in self._status_callbacks:
            try:
                callback(self._state, current)
            except Exception as e:
                logger.error("Rate limit status callback failed: {}", e)

    # -------------------------------------------------------------------------
    # Throttling
    # -------------------------------------------------------------------------
    def _is_check_due(self) -> bool:
        if self._config.check_policy == ThrottleCheckPolicy.EVERY_CALL:
            return True
        return (self._call_count - 1) % self._config.check_interval == 0

    def _is_low(self) -> bool:
        return self._state.remaining <= self._config.safe_threshold

    async def throttle_if_needed(self) -> float:
        """Wait for the reset window if the budget is at the low-water mark.

        Returns:
            Seconds waited (0.0 if the call may proceed immediately)
        """
        self._call_count += 1
        if not self._is_check_due() or not self._is_low():
            return 0.0

        async with self._wait_lock:
            # Another caller may have waited out this window already
            if not self._is_low():
                return 0.0

            wait_seconds = float(self._state.reset_seconds + self._config.safety_margin_seconds)
            logger.warning(
                "Rate limit low ({}/{} remaining), waiting {:.0f}s for reset",
                self._state.remaining,
                self._state.limit,
                wait_seconds,
            )
            await asyncio.sleep(wait_seconds)

            self._state = self._state.refilled()
            self._wait_count += 1
            self._total_wait_seconds += wait_seconds
            logger.info("Rate limit window reset, resuming requests")
            return wait_seconds

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------
    def get_status(self) -> RateLimitStatus:
        """Get health status of the current budget."""
        return self._state.get_status(
            self._config.warning_threshold_pct,
            self._config.critical_threshold_pct,
        )

    @property
    def call_count(self) -> int:
        """Number of throttle checks requested (one per attempt)."""
        return self._call_count

    @property
    def wait_count(self) -> int:
        """Number of reset-window waits performed."""
        return self._wait_count

    def on_status_degraded(self, callback: StatusCallback) -> None:
        """Register a callback fired when the status gets worse.

        Args:
            callback: Called with the new state and status
        """
        self._status_callbacks.append(callback)

    def to_dict(self) -> dict[str, Any]:
        """Export governor state for display or JSON output."""
        return {
            "limit": self._state.limit,
            "remaining": self._state.remaining,
            "reset_seconds": self._state.reset_seconds,
            "remaining_percent": round(self._state.remaining_percent, 1),
            "status": self.get_status().value,
            "last_updated": self._state.last_updated.isoformat(),
            "check_policy": self._config.check_policy.value,
            "safe_threshold": self._config.safe_threshold,
            "calls": self._call_count,
            "waits": self._wait_count,
            "total_wait_seconds": self._total_wait_seconds,
        }

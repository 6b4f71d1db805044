"""Tests for the shared rate limit governor."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from asaas_sync.asaas.rate_limit import RateLimitGovernor, RateLimitStatus
from asaas_sync.config import RateLimitConfig, ThrottleCheckPolicy
from tests.fixtures.asaas_responses import (
    CRITICAL_HEADERS,
    EXHAUSTED_HEADERS,
    HEALTHY_HEADERS,
    WARNING_HEADERS,
    rate_limit_headers,
)

SLEEP_TARGET = "asaas_sync.asaas.rate_limit.governor.asyncio.sleep"


@pytest.fixture
def config() -> RateLimitConfig:
    return RateLimitConfig(safe_threshold=10, safety_margin_seconds=2)


@pytest.fixture
def governor(config) -> RateLimitGovernor:
    return RateLimitGovernor(config)


class TestObserve:
    """Tests for passive tracking from response headers."""

    def test_initial_state_is_optimistic(self, governor):
        """Before any response the governor assumes a full budget."""
        assert governor.state.limit == 140
        assert governor.state.remaining == 999
        assert governor.get_status() == RateLimitStatus.HEALTHY

    def test_observe_updates_state(self, governor):
        state = governor.observe(rate_limit_headers(remaining=42, limit=140, reset=17))

        assert state.remaining == 42
        assert state.reset_seconds == 17
        assert governor.state is state

    def test_last_observation_wins(self, governor):
        governor.observe(rate_limit_headers(remaining=5))
        governor.observe(rate_limit_headers(remaining=130))

        assert governor.state.remaining == 130

    def test_missing_headers_keep_previous_values(self, governor):
        governor.observe(rate_limit_headers(remaining=50, reset=20))
        governor.observe({"Content-Type": "application/json"})

        assert governor.state.remaining == 50
        assert governor.state.reset_seconds == 20

    @pytest.mark.parametrize(
        ("headers", "expected"),
        [
            (HEALTHY_HEADERS, RateLimitStatus.HEALTHY),
            (WARNING_HEADERS, RateLimitStatus.WARNING),
            (CRITICAL_HEADERS, RateLimitStatus.CRITICAL),
            (EXHAUSTED_HEADERS, RateLimitStatus.EXHAUSTED),
        ],
    )
    def test_status_from_headers(self, governor, headers, expected):
        governor.observe(headers)
        assert governor.get_status() == expected


class TestStatusCallbacks:
    """Tests for degradation callbacks."""

    def test_callback_fires_on_degradation(self, governor):
        callback = MagicMock()
        governor.on_status_degraded(callback)

        governor.observe(WARNING_HEADERS)

        callback.assert_called_once()
        _, status = callback.call_args.args
        assert status == RateLimitStatus.WARNING

    def test_callback_not_fired_on_recovery(self, governor):
        governor.observe(CRITICAL_HEADERS)
        callback = MagicMock()
        governor.on_status_degraded(callback)

        governor.observe(HEALTHY_HEADERS)

        callback.assert_not_called()

    def test_failing_callback_does_not_break_observe(self, governor):
        governor.on_status_degraded(MagicMock(side_effect=RuntimeError("boom")))

        state = governor.observe(CRITICAL_HEADERS)

        assert state.remaining == 14


class TestThrottle:
    """Tests for waiting out the reset window."""

    async def test_no_wait_above_threshold(self, governor):
        governor.observe(rate_limit_headers(remaining=11))

        with patch(SLEEP_TARGET, new_callable=AsyncMock) as sleep:
            waited = await governor.throttle_if_needed()

        assert waited == 0.0
        sleep.assert_not_awaited()

    async def test_waits_reset_plus_margin_at_threshold(self, governor):
        """At the low-water mark the wait is reset window + safety margin."""
        governor.observe(rate_limit_headers(remaining=10, reset=12))

        with patch(SLEEP_TARGET, new_callable=AsyncMock) as sleep:
            waited = await governor.throttle_if_needed()

        sleep.assert_awaited_once_with(14.0)
        assert waited == 14.0
        assert governor.wait_count == 1

    async def test_state_refilled_after_wait(self, governor):
        governor.observe(rate_limit_headers(remaining=0, limit=140, reset=5))

        with patch(SLEEP_TARGET, new_callable=AsyncMock):
            await governor.throttle_if_needed()

        assert governor.state.remaining == 140
        assert governor.get_status() == RateLimitStatus.HEALTHY

    async def test_concurrent_callers_share_one_wait(self, governor):
        """Callers queued behind the same low-water mark don't wait again."""
        governor.observe(rate_limit_headers(remaining=3, reset=1))

        with patch(SLEEP_TARGET, new_callable=AsyncMock) as sleep:
            waits = await asyncio.gather(*(governor.throttle_if_needed() for _ in range(5)))

        assert sleep.await_count == 1
        assert sorted(waits) == [0.0, 0.0, 0.0, 0.0, 3.0]
        assert governor.call_count == 5

    async def test_every_n_policy_checks_first_of_each_group(self):
        """With every_n, only calls 1, N+1, 2N+1... inspect the budget."""
        governor = RateLimitGovernor(
            RateLimitConfig(
                safe_threshold=10,
                safety_margin_seconds=0,
                check_policy=ThrottleCheckPolicy.EVERY_N,
                check_interval=3,
            )
        )
        await governor.throttle_if_needed()  # call 1: budget is healthy
        governor.observe(rate_limit_headers(remaining=2, reset=4))

        with patch(SLEEP_TARGET, new_callable=AsyncMock) as sleep:
            assert await governor.throttle_if_needed() == 0.0  # call 2
            assert await governor.throttle_if_needed() == 0.0  # call 3
            assert await governor.throttle_if_needed() == 4.0  # call 4

        sleep.assert_awaited_once_with(4.0)


class TestToDict:
    """Tests for exported state."""

    async def test_to_dict(self, governor):
        governor.observe(rate_limit_headers(remaining=70, limit=140, reset=30))
        await governor.throttle_if_needed()

        data = governor.to_dict()

        assert data["limit"] == 140
        assert data["remaining"] == 70
        assert data["remaining_percent"] == 50.0
        assert data["status"] == "healthy"
        assert data["check_policy"] == "every_call"
        assert data["calls"] == 1
        assert data["waits"] == 0

"""Tests for the per-tier RateLimiter."""

import asyncio
import threading
from unittest.mock import AsyncMock, Mock

import pytest

from cosmic_index.adapters.rate_limit.base import CounterStoreUnavailableError
from cosmic_index.adapters.rate_limit.in_memory import InMemoryFixedWindowCounterStore
from cosmic_index.core.config import RateLimitSettings
from cosmic_index.core.rate_limit import (
    RateLimitDecision,
    RateLimiter,
    Tier,
    TierPolicy,
    build_tier_policies,
    rate_limit_headers,
)
from cosmic_index.core.result import Err, Ok

NOW_MS = 1_700_000_000_000


def make_limiter(limit: int = 3, window_ms: int = 60_000, clock=None, **kwargs) -> RateLimiter:
    policies = {
        Tier.BROWSE: TierPolicy(limit=limit, window_ms=window_ms),
        Tier.DETAIL: TierPolicy(limit=limit * 2, window_ms=window_ms),
    }
    store = kwargs.pop("store", None) or InMemoryFixedWindowCounterStore()
    return RateLimiter(store, policies, clock=clock or Mock(return_value=NOW_MS), **kwargs)


def check(limiter: RateLimiter, identity: str = "ip:1.2.3.4", tier: Tier = Tier.BROWSE):
    return asyncio.run(limiter.check(identity, tier))


def test_remaining_decreases_until_limit_then_denies() -> None:
    limiter = make_limiter(limit=3)

    remaining = [check(limiter).remaining for _ in range(3)]
    assert remaining == [2, 1, 0]

    denied = check(limiter)
    assert denied.allowed is False
    assert denied.remaining == 0
    assert denied.limit == 3


def test_denial_is_a_decision_not_a_result() -> None:
    limiter = make_limiter(limit=1)

    check(limiter)
    denied = check(limiter)

    assert isinstance(denied, RateLimitDecision)
    assert not isinstance(denied, (Ok, Err))
    assert denied.allowed is False


def test_all_calls_within_limit_are_allowed() -> None:
    limiter = make_limiter(limit=5)

    decisions = [check(limiter) for _ in range(5)]

    assert all(d.allowed for d in decisions)


def test_count_restarts_after_window() -> None:
    clock = Mock(return_value=NOW_MS)
    limiter = make_limiter(limit=2, window_ms=10_000, clock=clock)

    check(limiter)
    check(limiter)
    assert check(limiter).allowed is False

    clock.return_value = NOW_MS + 10_000
    fresh = check(limiter)
    assert fresh.allowed is True
    assert fresh.remaining == 1
    assert fresh.reset_at_ms == NOW_MS + 20_000


def test_reset_and_retry_after() -> None:
    clock = Mock(return_value=NOW_MS)
    limiter = make_limiter(limit=1, window_ms=60_000, clock=clock)

    first = check(limiter)
    assert first.reset_at_ms == NOW_MS + 60_000
    assert first.reset_at == (NOW_MS + 60_000) // 1000

    clock.return_value = NOW_MS + 59_500
    denied = check(limiter)
    assert denied.retry_after_seconds(clock.return_value) == 1


def test_tiers_and_identities_are_independent() -> None:
    limiter = make_limiter(limit=1)

    assert check(limiter, "ip:a", Tier.BROWSE).allowed is True
    assert check(limiter, "ip:a", Tier.BROWSE).allowed is False

    assert check(limiter, "ip:a", Tier.DETAIL).allowed is True
    assert check(limiter, "ip:b", Tier.BROWSE).allowed is True


def test_concurrent_callers_never_double_admit() -> None:
    limit = 25
    limiter = make_limiter(limit=limit)
    results: list[RateLimitDecision] = []
    results_lock = threading.Lock()

    def worker() -> None:
        for _ in range(10):
            decision = check(limiter, "ip:shared")
            with results_lock:
                results.append(decision)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    allowed = [d for d in results if d.allowed]
    assert len(results) == 80
    assert len(allowed) == limit
    assert sorted(d.remaining for d in allowed) == list(range(limit))


def test_fail_open_admits_and_marks_degraded() -> None:
    store = Mock()
    store.hit = AsyncMock(side_effect=CounterStoreUnavailableError("down"))
    limiter = make_limiter(limit=5, store=store, failure_policy="fail_open")

    decision = check(limiter)

    assert decision.allowed is True
    assert decision.degraded is True
    assert decision.remaining == 5


def test_fail_closed_denies_and_marks_degraded() -> None:
    store = Mock()
    store.hit = AsyncMock(side_effect=CounterStoreUnavailableError("down"))
    limiter = make_limiter(limit=5, store=store, failure_policy="fail_closed")

    decision = check(limiter)

    assert decision.allowed is False
    assert decision.degraded is True
    assert decision.remaining == 0


def test_disabled_limiter_never_touches_store() -> None:
    store = Mock()
    store.hit = AsyncMock()
    limiter = make_limiter(limit=1, store=store, enabled=False)

    assert check(limiter).allowed is True
    assert check(limiter).allowed is True
    store.hit.assert_not_awaited()


def peek(limiter: RateLimiter, identity: str = "ip:1.2.3.4", tier: Tier = Tier.BROWSE):
    return asyncio.run(limiter.peek(identity, tier))


def test_peek_reports_standing_without_counting() -> None:
    limiter = make_limiter(limit=3)

    untouched = peek(limiter)
    assert untouched.allowed is True
    assert untouched.remaining == 3
    assert untouched.reset_at_ms == NOW_MS + 60_000

    check(limiter)
    check(limiter)
    assert peek(limiter).remaining == 1
    assert peek(limiter).remaining == 1
    assert check(limiter).remaining == 0

    exhausted = peek(limiter)
    assert exhausted.allowed is False
    assert exhausted.remaining == 0


def test_peek_window_reset_follows_first_hit() -> None:
    clock = Mock(return_value=NOW_MS)
    limiter = make_limiter(limit=3, window_ms=10_000, clock=clock)

    check(limiter)
    clock.return_value = NOW_MS + 4_000

    assert peek(limiter).reset_at_ms == NOW_MS + 10_000


def test_peek_with_store_down_reports_full_window() -> None:
    store = Mock()
    store.peek = AsyncMock(side_effect=CounterStoreUnavailableError("down"))
    limiter = make_limiter(limit=5, store=store, failure_policy="fail_closed")

    decision = peek(limiter, tier=Tier.DETAIL)

    assert decision.degraded is True
    assert decision.limit == 10
    assert decision.remaining == 10


def test_disabled_limiter_peek_never_touches_store() -> None:
    store = Mock()
    store.peek = AsyncMock()
    limiter = make_limiter(limit=2, store=store, enabled=False)

    assert peek(limiter).remaining == 2
    store.peek.assert_not_awaited()


def test_unknown_failure_policy_rejected() -> None:
    with pytest.raises(ValueError):
        make_limiter(failure_policy="fail_sideways")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_ms": 1000},
        {"limit": 1, "window_ms": 0},
    ],
)
def test_invalid_tier_policy(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        TierPolicy(**kwargs)


def test_policies_built_from_settings() -> None:
    config = RateLimitSettings(
        browse_requests=10,
        browse_window_seconds=30,
        detail_requests=20,
        detail_window_seconds=60,
    )

    policies = build_tier_policies(config)

    assert policies[Tier.BROWSE] == TierPolicy(limit=10, window_ms=30_000)
    assert policies[Tier.DETAIL] == TierPolicy(limit=20, window_ms=60_000)


def test_rate_limit_headers() -> None:
    decision = RateLimitDecision(allowed=True, limit=100, remaining=42, reset_at_ms=1_700_000_060_500)

    assert rate_limit_headers(decision) == {
        "X-RateLimit-Limit": "100",
        "X-RateLimit-Remaining": "42",
        "X-RateLimit-Reset": "1700000061",
    }

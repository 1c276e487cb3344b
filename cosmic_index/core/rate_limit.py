"""Per-client, per-tier fixed-window rate limiting.

This module wires a counter store into a limiter the request pipeline consults
before any expensive work.

Design goals:
- Minimal coupling: the store sits behind ``AbstractCounterStore`` and is
  constructed by the application factory, not held in module globals.
- Explicit outcome: ``check`` returns a ``RateLimitDecision`` instead of
  raising, and the caller renders the 429.
- Documented failure policy: when the store is unreachable the limiter fails
  open (availability first) or closed, as configured.

Rate limiting strategy:
- One fixed window per (tier, client identity). The window opens on the first
  request and restarts on the first request after it ends.
- Every call counts, denied ones included, and nothing is rolled back.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Callable, Literal, Mapping

from cosmic_index.adapters.rate_limit.base import (
    AbstractCounterStore,
    CounterStoreUnavailableError,
)
from cosmic_index.adapters.rate_limit.in_memory import InMemoryFixedWindowCounterStore
from cosmic_index.adapters.rate_limit.redis_store import RedisFixedWindowCounterStore
from cosmic_index.core.config import RateLimitSettings
from cosmic_index.core.logging import hash_identity

logger = logging.getLogger(__name__)

FailurePolicy = Literal["fail_open", "fail_closed"]


class Tier(str, Enum):
    """Capability class of an endpoint, each with its own budget."""

    BROWSE = "BROWSE"
    DETAIL = "DETAIL"


@dataclass(frozen=True)
class TierPolicy:
    limit: int
    window_ms: int

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.window_ms < 1:
            raise ValueError("window_ms must be >= 1")


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a rate limit check.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Max requests per window for the tier.
        remaining: Requests left in the current window (0 when denied).
        reset_at_ms: UNIX epoch milliseconds when the current window ends.
        degraded: True when the store was unreachable and the failure policy
            decided the outcome.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at_ms: int
    degraded: bool = False

    @property
    def reset_at(self) -> int:
        """Window end in UNIX epoch seconds (rounded up)."""
        return int(math.ceil(self.reset_at_ms / 1000))

    def retry_after_seconds(self, now_ms: int) -> int:
        return max(1, int(math.ceil((self.reset_at_ms - now_ms) / 1000)))


def build_tier_policies(config: RateLimitSettings) -> Mapping[Tier, TierPolicy]:
    """Build the immutable tier table from settings."""
    return MappingProxyType(
        {
            Tier.BROWSE: TierPolicy(
                limit=config.browse_requests,
                window_ms=config.browse_window_seconds * 1000,
            ),
            Tier.DETAIL: TierPolicy(
                limit=config.detail_requests,
                window_ms=config.detail_window_seconds * 1000,
            ),
        }
    )


def build_counter_store(config: RateLimitSettings) -> AbstractCounterStore:
    """Instantiate the configured counter store (not yet initialised)."""
    if config.backend == "redis":
        return RedisFixedWindowCounterStore(config.redis_url, key_prefix=config.key_prefix)
    return InMemoryFixedWindowCounterStore(max_keys=config.memory_max_keys)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class RateLimiter:
    """Admits or denies requests per (client identity, tier)."""

    def __init__(
        self,
        store: AbstractCounterStore,
        policies: Mapping[Tier, TierPolicy],
        *,
        failure_policy: FailurePolicy = "fail_open",
        enabled: bool = True,
        clock: Callable[[], int] = _epoch_ms,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Counter store shared by all requests.
            policies: Limit and window per tier.
            failure_policy: Outcome when the store is unreachable.
            enabled: When False every request is admitted without counting.
            clock: Time source returning UNIX epoch milliseconds.
        """
        if failure_policy not in ("fail_open", "fail_closed"):
            raise ValueError(f"unknown failure policy: {failure_policy!r}")

        self._store = store
        self._policies = policies
        self._failure_policy = failure_policy
        self._enabled = enabled
        self._clock = clock

    @property
    def store(self) -> AbstractCounterStore:
        return self._store

    def now_ms(self) -> int:
        return self._clock()

    def policy_for(self, tier: Tier) -> TierPolicy:
        return self._policies[tier]

    async def check(self, identity: str, tier: Tier) -> RateLimitDecision:
        """Count one request for ``identity`` in ``tier`` and decide.

        Args:
            identity: Derived client identity key.
            tier: Tier of the endpoint being called.

        Returns:
            RateLimitDecision. The call that pushes the count past the limit
            is the first denied one.
        """
        policy = self._policies[tier]
        now_ms = self._clock()

        if not self._enabled:
            return RateLimitDecision(
                allowed=True,
                limit=policy.limit,
                remaining=policy.limit,
                reset_at_ms=now_ms + policy.window_ms,
            )

        key = f"{tier.value}:{identity}"
        try:
            counter = await self._store.hit(key, window_ms=policy.window_ms, now_ms=now_ms)
        except CounterStoreUnavailableError as exc:
            return self._on_store_failure(identity, tier, policy, now_ms, exc)

        allowed = counter.count <= policy.limit
        decision = RateLimitDecision(
            allowed=allowed,
            limit=policy.limit,
            remaining=max(0, policy.limit - counter.count),
            reset_at_ms=counter.window_start_ms + policy.window_ms,
        )

        log_extra = {
            "tier": tier.value,
            "key_hash": hash_identity(identity),
            "limit": policy.limit,
            "remaining": decision.remaining,
            "window_s": policy.window_ms // 1000,
        }
        if allowed:
            logger.debug("rate_limit.allowed", extra=log_extra)
        else:
            logger.warning(
                "rate_limit.exceeded",
                extra={**log_extra, "retry_after_s": decision.retry_after_seconds(now_ms)},
            )
        return decision

    async def peek(self, identity: str, tier: Tier) -> RateLimitDecision:
        """Report the standing of ``identity`` in ``tier`` without counting.

        Responses that never consume budget (health, unknown routes) still
        carry rate-limit headers; this supplies them. ``allowed`` tells whether
        the next request would be admitted. An unreachable store reports a
        full window with ``degraded=True``.
        """
        policy = self._policies[tier]
        now_ms = self._clock()
        fresh = RateLimitDecision(
            allowed=True,
            limit=policy.limit,
            remaining=policy.limit,
            reset_at_ms=now_ms + policy.window_ms,
        )
        if not self._enabled:
            return fresh

        try:
            counter = await self._store.peek(
                f"{tier.value}:{identity}",
                window_ms=policy.window_ms,
                now_ms=now_ms,
            )
        except CounterStoreUnavailableError as exc:
            logger.debug(
                "rate_limit.store_unavailable",
                extra={"tier": tier.value, "phase": "peek", "error_type": type(exc).__name__},
            )
            return RateLimitDecision(
                allowed=True,
                limit=policy.limit,
                remaining=policy.limit,
                reset_at_ms=fresh.reset_at_ms,
                degraded=True,
            )

        if counter is None:
            return fresh
        return RateLimitDecision(
            allowed=counter.count < policy.limit,
            limit=policy.limit,
            remaining=max(0, policy.limit - counter.count),
            reset_at_ms=counter.window_start_ms + policy.window_ms,
        )

    def _on_store_failure(
        self,
        identity: str,
        tier: Tier,
        policy: TierPolicy,
        now_ms: int,
        exc: CounterStoreUnavailableError,
    ) -> RateLimitDecision:
        fail_open = self._failure_policy == "fail_open"
        logger.warning(
            "rate_limit.store_unavailable",
            extra={
                "tier": tier.value,
                "key_hash": hash_identity(identity),
                "failure_policy": self._failure_policy,
                "error_type": type(exc).__name__,
            },
        )
        return RateLimitDecision(
            allowed=fail_open,
            limit=policy.limit,
            remaining=policy.limit if fail_open else 0,
            reset_at_ms=now_ms + policy.window_ms,
            degraded=True,
        )


def rate_limit_headers(decision: RateLimitDecision) -> dict[str, str]:
    """``X-RateLimit-*`` headers describing a decision."""
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(decision.reset_at),
    }

"""Counter store interfaces for the fixed-window rate limiter.

The limiter depends on this abstraction (not a concrete implementation) so the
per-process store can be swapped for a shared one (Redis) when the API runs as
several instances.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class WindowCounter:
    """State of one key after a hit.

    Attributes:
        count: Requests counted in the current window, including this one.
        window_start_ms: UNIX epoch milliseconds when the window opened.
    """

    count: int
    window_start_ms: int


class CounterStoreUnavailableError(Exception):
    """Raised when the backing store cannot be reached."""


class AbstractCounterStore(ABC):
    """Interface for fixed-window counter stores."""

    async def init(self) -> None:
        """Allocate resources or connect. Called once at application startup."""

    async def close(self) -> None:
        """Flush and release resources. Called once at application shutdown."""

    @abstractmethod
    async def hit(self, key: str, *, window_ms: int, now_ms: int) -> WindowCounter:
        """Count one request for ``key``.

        If the key has no state or ``now_ms`` reached the end of its window,
        the window restarts at ``now_ms`` with a count of zero before the
        increment. The reset and the increment happen atomically with respect
        to other callers using the same key.

        Args:
            key: Namespaced counter key (tier + client identity).
            window_ms: Window duration in milliseconds.
            now_ms: Current time in UNIX epoch milliseconds.

        Returns:
            WindowCounter after the increment.

        Raises:
            CounterStoreUnavailableError: If the store cannot be reached.
        """
        raise NotImplementedError

    @abstractmethod
    async def peek(self, key: str, *, window_ms: int, now_ms: int) -> WindowCounter | None:
        """Read the state of ``key`` without counting a request.

        Returns:
            WindowCounter of the open window, or None when the key has no
            window open at ``now_ms``.

        Raises:
            CounterStoreUnavailableError: If the store cannot be reached.
        """
        raise NotImplementedError

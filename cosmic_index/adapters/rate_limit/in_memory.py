"""In-memory fixed-window counter store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: keys are spread over a fixed set of locks, so a key always
  serializes on the same lock while unrelated keys rarely contend.
"""

from __future__ import annotations

import threading
import zlib
from dataclasses import dataclass

from cosmic_index.adapters.rate_limit.base import AbstractCounterStore, WindowCounter


@dataclass
class _WindowState:
    window_start_ms: int
    window_ms: int
    count: int
    last_seen_ms: int


class InMemoryFixedWindowCounterStore(AbstractCounterStore):
    """Counter store keeping one fixed window per key in a dict.

    Important:
        This store is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits. Use the Redis store for shared limits.
    """

    def __init__(self, *, max_keys: int = 10_000, lock_stripes: int = 64) -> None:
        """Initialize the in-memory store.

        Args:
            max_keys: Upper bound on tracked keys before pruning.
            lock_stripes: Number of locks keys are hashed onto.

        Raises:
            ValueError: If max_keys or lock_stripes are invalid.
        """
        if max_keys < 1:
            raise ValueError("max_keys must be >= 1")
        if lock_stripes < 1:
            raise ValueError("lock_stripes must be >= 1")

        self._max_keys = max_keys
        self._stripes = [threading.Lock() for _ in range(lock_stripes)]
        # Guards dict membership changes (insert/prune) only.
        self._table_lock = threading.Lock()
        self._state_by_key: dict[str, _WindowState] = {}

    def __len__(self) -> int:
        return len(self._state_by_key)

    def _lock_for(self, key: str) -> threading.Lock:
        return self._stripes[zlib.crc32(key.encode()) % len(self._stripes)]

    def _get_or_create_state(self, key: str, *, window_ms: int, now_ms: int) -> _WindowState:
        """Return the state for key, inserting a fresh window when absent.

        Must be called with the key's stripe lock held.
        """
        state = self._state_by_key.get(key)
        if state is not None:
            return state

        with self._table_lock:
            if len(self._state_by_key) >= self._max_keys:
                self._prune_locked(now_ms, held=self._lock_for(key))
            state = _WindowState(
                window_start_ms=now_ms,
                window_ms=window_ms,
                count=0,
                last_seen_ms=now_ms,
            )
            self._state_by_key[key] = state
        return state

    def _evict(self, key: str, held: threading.Lock) -> None:
        """Remove key unless another thread is inside ``hit`` for its stripe."""
        lock = self._lock_for(key)
        if lock is held:
            self._state_by_key.pop(key, None)
            return
        if not lock.acquire(blocking=False):
            return
        try:
            self._state_by_key.pop(key, None)
        finally:
            lock.release()

    def _prune_locked(self, now_ms: int, *, held: threading.Lock) -> None:
        """Drop expired windows, then the least recently seen keys (oldest 10%).

        Must be called with the table lock and the caller's stripe lock
        (``held``) taken. Keys whose stripe is busy are kept for now, so the
        table may briefly exceed ``max_keys``.
        """
        expired = [
            k
            for k, s in self._state_by_key.items()
            if now_ms >= s.window_start_ms + s.window_ms
        ]
        for k in expired:
            self._evict(k, held)

        if len(self._state_by_key) < self._max_keys:
            return

        by_age = sorted(self._state_by_key.items(), key=lambda item: item[1].last_seen_ms)
        to_remove = max(1, len(by_age) // 10)
        for k, _ in by_age[:to_remove]:
            self._evict(k, held)

    async def hit(self, key: str, *, window_ms: int, now_ms: int) -> WindowCounter:
        if not key:
            raise ValueError("key must be a non-empty string")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")

        with self._lock_for(key):
            state = self._get_or_create_state(key, window_ms=window_ms, now_ms=now_ms)
            if now_ms >= state.window_start_ms + state.window_ms:
                state.window_start_ms = now_ms
                state.window_ms = window_ms
                state.count = 0
            state.count += 1
            state.last_seen_ms = now_ms
            return WindowCounter(count=state.count, window_start_ms=state.window_start_ms)

    async def peek(self, key: str, *, window_ms: int, now_ms: int) -> WindowCounter | None:
        with self._lock_for(key):
            state = self._state_by_key.get(key)
            if state is None or now_ms >= state.window_start_ms + state.window_ms:
                return None
            return WindowCounter(count=state.count, window_start_ms=state.window_start_ms)

from __future__ import annotations

import threading
import time
from collections import defaultdict, deque
from typing import DefaultDict, Deque


class RateLimiter:
    """Sliding-window request counter keyed by an arbitrary string."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._requests: DefaultDict[str, Deque[float]] = defaultdict(deque)
        self._last_sweep = time.monotonic()

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        now = time.monotonic()
        cutoff = now - window_seconds
        with self._lock:
            if now - self._last_sweep >= window_seconds:
                self._sweep(cutoff)
                self._last_sweep = now
            bucket = self._requests[key]
            while bucket and bucket[0] < cutoff:
                bucket.popleft()
            if len(bucket) >= max_requests:
                return False
            bucket.append(now)
            return True

    def _sweep(self, cutoff: float) -> None:
        # Caller holds the lock.
        for key in list(self._requests):
            bucket = self._requests[key]
            while bucket and bucket[0] < cutoff:
                bucket.popleft()
            if not bucket:
                del self._requests[key]

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._requests)

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._requests.clear()
            else:
                self._requests.pop(key, None)


rate_limiter = RateLimiter()

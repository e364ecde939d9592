"""Sliding window rate limiter keyed by sender."""

from __future__ import annotations

import time
from collections import deque
from typing import Callable, Deque, Dict

from core.config import RateLimitConfig


class SlidingWindowRateLimiter:
    """Bound the number of accepted events per key within a trailing window.

    Timestamps older than the window are pruned lazily on each check. The
    check is synchronous so callers never suspend between reading and
    recording a key's window.
    """

    def __init__(self, config: RateLimitConfig, clock: Callable[[], float] = time.monotonic) -> None:
        self._max_requests = config.max_requests
        self._window = config.window_seconds
        self._clock = clock
        self._requests: Dict[str, Deque[float]] = {}

    def allow(self, key: str) -> bool:
        """Record an event for ``key`` and return whether it is within limits."""

        now = self._clock()
        window_start = now - self._window
        timestamps = self._requests.setdefault(key, deque())
        while timestamps and timestamps[0] < window_start:
            timestamps.popleft()

        if len(timestamps) >= self._max_requests:
            return False

        timestamps.append(now)
        return True

    def pending(self, key: str) -> int:
        return len(self._requests.get(key, ()))

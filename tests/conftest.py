"""Shared fixtures for the bridge test suite."""

from __future__ import annotations

import pytest

from core.config import RateLimitConfig, RelayFilterConfig
from core.processor import RelayFilterPipeline
from core.rate_limiter import SlidingWindowRateLimiter


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def filter_config() -> RelayFilterConfig:
    return RelayFilterConfig(target_sender="LibreRelayBot", target_channel="#SirLibre")


@pytest.fixture
def pipeline(filter_config: RelayFilterConfig, clock: FakeClock) -> RelayFilterPipeline:
    limiter = SlidingWindowRateLimiter(RateLimitConfig(max_requests=5, window_seconds=60), clock=clock)
    return RelayFilterPipeline(filter_config, limiter)

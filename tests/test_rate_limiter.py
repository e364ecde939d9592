from __future__ import annotations

from core.config import RateLimitConfig
from core.rate_limiter import SlidingWindowRateLimiter


def _limiter(clock) -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(RateLimitConfig(max_requests=5, window_seconds=60), clock=clock)


def test_sixth_message_within_window_is_rejected(clock) -> None:
    limiter = _limiter(clock)
    for _ in range(5):
        assert limiter.allow("LibreRelayBot")
        clock.advance(1)

    assert not limiter.allow("LibreRelayBot")


def test_first_message_after_window_is_accepted(clock) -> None:
    limiter = _limiter(clock)
    for _ in range(5):
        assert limiter.allow("LibreRelayBot")
    assert not limiter.allow("LibreRelayBot")

    clock.advance(61)

    assert limiter.allow("LibreRelayBot")
    assert limiter.pending("LibreRelayBot") == 1


def test_rejected_messages_do_not_extend_the_window(clock) -> None:
    limiter = _limiter(clock)
    for _ in range(5):
        limiter.allow("bot")
    clock.advance(30)
    assert not limiter.allow("bot")

    clock.advance(31)
    assert limiter.allow("bot")


def test_windows_are_keyed_per_sender(clock) -> None:
    limiter = _limiter(clock)
    for _ in range(5):
        limiter.allow("first")

    assert not limiter.allow("first")
    assert limiter.allow("second")

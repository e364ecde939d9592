"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ReconnectConfig:
    """Reconnect and keep-alive timing for the channel connection."""

    max_attempts: int = 10
    delay_seconds: float = 10.0
    keepalive_interval_seconds: float = 60.0


@dataclass(frozen=True)
class RateLimitConfig:
    """Sliding window limits applied per sender."""

    max_requests: int = 5
    window_seconds: float = 60.0


@dataclass(frozen=True)
class RelayFilterConfig:
    """Which messages are eligible for relay and how they are tagged."""

    target_sender: str
    target_channel: str
    max_chars: int = 280


@dataclass(frozen=True)
class BridgeProfile:
    """Static description of the bridge reported by the status surface."""

    server: str
    channels: tuple[str, ...]
    target_sender: str
    endpoints: tuple[str, ...]
    test_mode: bool
    public_key: str = ""

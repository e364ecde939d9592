"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class ConnectionState(str, Enum):
    """Lifecycle of the chat server session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    REGISTERED = "registered"
    CLOSING = "closing"


class DecisionReason(str, Enum):
    """Why a message was approved or dropped by the filter pipeline."""

    NOT_TARGET_SENDER = "not_target_sender"
    NOT_TARGET_CHANNEL = "not_target_channel"
    RATE_LIMITED = "rate_limited"
    EMPTY_AFTER_SANITIZE = "empty_after_sanitize"
    APPROVED = "approved"


@dataclass(frozen=True)
class IncomingMessage:
    """One chat line as seen on the transport, before any filtering."""

    sender: str
    channel: str
    raw_text: str
    received_at: datetime


@dataclass(frozen=True)
class OutboundPost:
    """Sanitized content ready to be signed and broadcast."""

    content: str
    tags: frozenset[str]
    created_at: datetime


@dataclass(frozen=True)
class RelayDecision:
    """Filter verdict for a single incoming message."""

    approved: bool
    reason: DecisionReason
    post: Optional[OutboundPost] = None


@dataclass(frozen=True)
class EndpointResult:
    """Result of pushing one post to one broadcast endpoint."""

    endpoint: str
    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class PublishOutcome:
    """Aggregate of all endpoint attempts for one post."""

    attempted: int
    succeeded: int
    failed: int
    results: tuple[EndpointResult, ...] = field(default=(), compare=False)

    @property
    def success(self) -> bool:
        return self.succeeded > 0

    @classmethod
    def from_results(cls, results: list[EndpointResult]) -> "PublishOutcome":
        succeeded = sum(1 for result in results if result.success)
        return cls(
            attempted=len(results),
            succeeded=succeeded,
            failed=len(results) - succeeded,
            results=tuple(results),
        )

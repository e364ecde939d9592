"""Core message relay pipeline.

This module is integration-agnostic. The filter pipeline enforces a strict
order, short-circuiting on the first rejection:

1) Sender must be the configured target sender (exact match)
2) Channel must be the configured target channel
3) Per-sender sliding window rate limit
4) Sanitization must leave some text

Exact sender identity is the only gate against relaying arbitrary chat, so
it runs first and is never relaxed.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from core.config import RelayFilterConfig
from core.models import DecisionReason, IncomingMessage, OutboundPost, PublishOutcome, RelayDecision
from core.ports import PublisherPort
from core.rate_limiter import SlidingWindowRateLimiter
from core.sanitize import sanitize_message
from core.stats import BridgeStats

LOGGER = logging.getLogger(__name__)

_CHANNEL_PREFIXES = "#&"


def topic_tag(name: str) -> str:
    """Normalize a channel or nickname into a lowercase topic tag."""

    return name.strip().lstrip(_CHANNEL_PREFIXES).lower()


def build_topic_tags(config: RelayFilterConfig) -> frozenset[str]:
    tags = {topic_tag(config.target_channel), topic_tag(config.target_sender)}
    return frozenset(tag for tag in tags if tag)


class RelayFilterPipeline:
    """Decides, per incoming message, whether it becomes an outbound post."""

    def __init__(
        self,
        config: RelayFilterConfig,
        rate_limiter: SlidingWindowRateLimiter,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._config = config
        self._rate_limiter = rate_limiter
        self._clock = clock
        self._tags = build_topic_tags(config)

    @property
    def tags(self) -> frozenset[str]:
        return self._tags

    def evaluate(self, message: IncomingMessage) -> RelayDecision:
        if message.sender != self._config.target_sender:
            return RelayDecision(approved=False, reason=DecisionReason.NOT_TARGET_SENDER)

        # IRC channel names are case-insensitive on the wire.
        if message.channel.lower() != self._config.target_channel.lower():
            return RelayDecision(approved=False, reason=DecisionReason.NOT_TARGET_CHANNEL)

        if not self._rate_limiter.allow(message.sender):
            return RelayDecision(approved=False, reason=DecisionReason.RATE_LIMITED)

        content = sanitize_message(message.raw_text, self._config.max_chars)
        if not content:
            return RelayDecision(approved=False, reason=DecisionReason.EMPTY_AFTER_SANITIZE)

        post = OutboundPost(content=content, tags=self._tags, created_at=self._clock())
        return RelayDecision(approved=True, reason=DecisionReason.APPROVED, post=post)


class MessageProcessor:
    """Runs incoming messages through the pipeline and publishes approved ones.

    Messages are queued by the connection listener and consumed one at a
    time, so filtering and publish outcomes follow arrival order.
    """

    def __init__(
        self,
        pipeline: RelayFilterPipeline,
        publisher: Optional[PublisherPort],
        stats: BridgeStats,
    ) -> None:
        self._pipeline = pipeline
        self._publisher = publisher
        self._stats = stats
        self._queue: asyncio.Queue[IncomingMessage] = asyncio.Queue()

    def enqueue(self, message: IncomingMessage) -> None:
        self._queue.put_nowait(message)

    async def run(self) -> None:
        """Consume queued messages until cancelled."""

        while True:
            message = await self._queue.get()
            try:
                await self.handle(message)
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        await self._queue.join()

    async def handle(self, message: IncomingMessage) -> Optional[PublishOutcome]:
        """Process one message; returns the publish outcome when a post was attempted."""

        decision = self._pipeline.evaluate(message)
        if decision.reason in (DecisionReason.NOT_TARGET_SENDER, DecisionReason.NOT_TARGET_CHANNEL):
            return None

        LOGGER.info("Message from %s: %s", message.sender, message.raw_text)
        self._stats.record_observed(message.received_at)

        if decision.reason is DecisionReason.RATE_LIMITED:
            LOGGER.warning("Rate limit exceeded for %s", message.sender)
            self._stats.record_rate_limited()
            return None

        if decision.reason is DecisionReason.EMPTY_AFTER_SANITIZE:
            LOGGER.warning("Empty message after sanitization, skipping")
            return None

        if self._publisher is None or decision.post is None:
            return None

        try:
            outcome = await self._publisher.publish(decision.post)
        except Exception:
            LOGGER.exception("Error posting to Nostr")
            self._stats.record_failure()
            return None

        self._stats.record_outcome(outcome)
        if outcome.success:
            LOGGER.info("Posted to Nostr: %s", decision.post.content[:50])
        else:
            LOGGER.error("Failed to post to any Nostr relays (%s attempted)", outcome.attempted)
        return outcome

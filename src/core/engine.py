"""Top-level bridge engine.

Wires the channel connection, the message processor and the publisher
together, owns the runtime stats, and produces the health and status
snapshots served by the status surface.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from core.config import BridgeProfile
from core.connection import ChannelConnection
from core.models import ConnectionState
from core.processor import MessageProcessor
from core.publisher import FanoutPublisher
from core.stats import BridgeStats

LOGGER = logging.getLogger(__name__)


class BridgeEngine:
    """Connection -> filter pipeline -> fan-out publisher."""

    def __init__(
        self,
        connection: ChannelConnection,
        processor: MessageProcessor,
        publisher: Optional[FanoutPublisher],
        stats: BridgeStats,
        profile: BridgeProfile,
    ) -> None:
        self.connection = connection
        self.processor = processor
        self.publisher = publisher
        self.stats = stats
        self.profile = profile
        self._consumer: Optional[asyncio.Task] = None
        connection.add_listener(processor.enqueue)

    async def start(self) -> None:
        if self._consumer is None or self._consumer.done():
            self._consumer = asyncio.create_task(self.processor.run())
        await self.connection.connect()
        LOGGER.info("Monitoring %s in %s", self.profile.target_sender, ", ".join(self.profile.channels))

    async def stop(self) -> None:
        await self.connection.disconnect()
        LOGGER.info("IRC client disconnected")

        consumer = self._consumer
        self._consumer = None
        if consumer is not None and not consumer.done():
            consumer.cancel()
            try:
                await consumer
            except asyncio.CancelledError:
                pass

        if self.publisher is not None:
            await self.publisher.close()

    def is_healthy(self) -> bool:
        return self.connection.state is ConnectionState.REGISTERED and self.publisher is not None

    def health(self) -> dict[str, Any]:
        healthy = self.is_healthy()
        return {
            "status": "healthy" if healthy else "unhealthy",
            "uptime": self.stats.uptime_seconds(),
            "connected": self.connection.state is ConnectionState.REGISTERED,
            "state": self.connection.state.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def status(self) -> dict[str, Any]:
        connection_status = self.connection.status()
        payload = self.stats.to_dict()
        payload.update(
            {
                "uptime": int(self.stats.uptime_seconds()),
                "irc": {
                    "connected": connection_status["connected"],
                    "state": connection_status["state"],
                    "server": self.profile.server,
                    "channels": list(self.profile.channels),
                    "monitoring": self.profile.target_sender,
                    "reconnect_attempts": connection_status["reconnect_attempts"],
                },
                "nostr": {
                    "configured": self.publisher is not None,
                    "relays": list(self.profile.endpoints),
                    "test_mode": self.profile.test_mode,
                    "public_key": self.profile.public_key,
                },
            }
        )
        return payload

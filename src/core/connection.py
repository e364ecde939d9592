"""Reconnecting chat channel connection.

The connection owns the transport session and its state machine:

- DISCONNECTED -> CONNECTING on ``connect()`` (initial or reconnect)
- CONNECTING -> REGISTERED on the server registration acknowledgment
- REGISTERED -> DISCONNECTED on transport close/error, a failed keep-alive
  ping, or a ping left unanswered until the next keep-alive tick
- any -> CLOSING on ``disconnect()``; the object stays inert until
  ``connect()`` is called again

Every inbound chat line is handed to all listeners unfiltered. Deciding what
to relay is the filter pipeline's job.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from core.config import ReconnectConfig
from core.errors import TransportError, TransportErrorKind
from core.models import ConnectionState, IncomingMessage
from core.ports import MessageListener, TransportPort

LOGGER = logging.getLogger(__name__)


class ChannelConnection:
    """Keeps exactly one transport session registered and joined."""

    def __init__(
        self,
        transport: TransportPort,
        channels: Sequence[str],
        server: str = "",
        config: ReconnectConfig = ReconnectConfig(),
    ) -> None:
        self._transport = transport
        self._channels = list(channels)
        self._server = server
        self._config = config
        self._state = ConnectionState.DISCONNECTED
        self._listeners: list[MessageListener] = []
        self._reconnect_attempts = 0
        self._reconnecting = False
        self._shutdown = False
        self._awaiting_pong = False
        self._keepalive_task: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        transport.bind(self)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    @property
    def keepalive_running(self) -> bool:
        return self._keepalive_task is not None and not self._keepalive_task.done()

    def add_listener(self, listener: MessageListener) -> None:
        self._listeners.append(listener)

    def is_active(self) -> bool:
        if self._state is not ConnectionState.REGISTERED:
            return False
        return self._transport.is_open()

    async def connect(self) -> None:
        """Open the transport and send registration for all channels."""

        self._shutdown = False
        self._stop_keepalive()
        self._state = ConnectionState.CONNECTING
        LOGGER.info("Connecting to IRC server %s (channels=%s)", self._server, ", ".join(self._channels))
        try:
            await self._transport.open(self._channels)
        except TransportError as exc:
            if self._shutdown:
                return
            LOGGER.error("IRC connection error: %s", exc)
            self._connection_lost(exc.kind)
            return
        if self._shutdown:
            # disconnect() ran while the session was opening.
            LOGGER.info("Shutdown requested during connect, closing new IRC session")
            await self._transport.close()

    async def disconnect(self) -> None:
        """Graceful shutdown: cancel timers and close the transport."""

        LOGGER.info("Disconnecting from IRC server")
        self._shutdown = True
        self._state = ConnectionState.CLOSING
        self._stop_keepalive()
        self._cancel_reconnect()
        try:
            await self._transport.close()
        except TransportError as exc:
            LOGGER.warning("Error while closing IRC transport: %s", exc)

    def handle_transport_fault(self, kind: TransportErrorKind) -> None:
        """Treat a fault reported outside the transport callbacks as a connection loss."""

        if self._shutdown:
            return
        LOGGER.warning("Recovering from transport fault (%s)", kind.value)
        self._connection_lost(kind)

    # Transport callbacks

    def on_registered(self) -> None:
        if self._shutdown:
            return
        LOGGER.info("Successfully registered with IRC server")
        self._state = ConnectionState.REGISTERED
        self._reconnect_attempts = 0
        self._start_keepalive()

    def on_pong(self) -> None:
        self._awaiting_pong = False

    def on_message(self, sender: str, channel: str, text: str) -> None:
        if self._shutdown:
            return
        message = IncomingMessage(
            sender=sender,
            channel=channel,
            raw_text=text,
            received_at=datetime.now(timezone.utc),
        )
        LOGGER.debug("IRC message from %s to %s: %s", sender, channel, text)
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception:
                LOGGER.exception("Message listener failed")

    def on_closed(self, kind: Optional[TransportErrorKind]) -> None:
        if self._shutdown:
            return
        LOGGER.warning("IRC connection closed (%s)", kind.value if kind else "no reason")
        self._connection_lost(kind)

    # Internals

    def _connection_lost(self, kind: Optional[TransportErrorKind]) -> None:
        LOGGER.debug("Connection lost (%s) in state %s", kind.value if kind else "unknown", self._state.value)
        self._state = ConnectionState.DISCONNECTED
        self._stop_keepalive()
        self._attempt_reconnect()

    def _attempt_reconnect(self) -> None:
        if self._reconnecting:
            LOGGER.debug("Reconnection already in progress, skipping")
            return

        max_attempts = self._config.max_attempts
        if self._reconnect_attempts >= max_attempts:
            LOGGER.critical(
                "Max IRC reconnection attempts reached (%s); staying disconnected until restarted",
                max_attempts,
            )
            return

        self._reconnecting = True
        self._reconnect_attempts += 1
        LOGGER.info("Attempting IRC reconnection (%s/%s)...", self._reconnect_attempts, max_attempts)
        self._reconnect_task = asyncio.create_task(self._reconnect_after_delay())

    async def _reconnect_after_delay(self) -> None:
        await asyncio.sleep(self._config.delay_seconds)
        self._reconnecting = False
        try:
            # Read the state right before connect() with no suspension in between.
            if self._shutdown or self._state is ConnectionState.REGISTERED:
                LOGGER.info("IRC connection recovered before reconnect, skipping")
                return
            await self.connect()
        finally:
            # A failed connect() may already have scheduled the next attempt.
            if self._reconnect_task is asyncio.current_task():
                self._reconnect_task = None

    def _cancel_reconnect(self) -> None:
        task = self._reconnect_task
        self._reconnect_task = None
        self._reconnecting = False
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _start_keepalive(self) -> None:
        self._stop_keepalive()
        self._awaiting_pong = False
        self._keepalive_task = asyncio.create_task(self._keepalive_loop())

    def _stop_keepalive(self) -> None:
        task = self._keepalive_task
        self._keepalive_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _keepalive_loop(self) -> None:
        interval = self._config.keepalive_interval_seconds
        while True:
            await asyncio.sleep(interval)
            if self._state is not ConnectionState.REGISTERED:
                return
            if self._awaiting_pong:
                # A half-open socket accepts writes but never answers.
                LOGGER.error("No PONG from IRC server within %ss, treating connection as lost", interval)
                self._connection_lost(TransportErrorKind.TIMEOUT)
                return
            self._awaiting_pong = True
            try:
                self._transport.send_ping("keepalive")
            except TransportError as exc:
                LOGGER.error("Failed to send keepalive ping: %s", exc)
                self._connection_lost(exc.kind)
                return
            LOGGER.debug("Sent keepalive ping to IRC server")

    def status(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "connected": self._state is ConnectionState.REGISTERED,
            "connection_active": self.is_active(),
            "reconnect_attempts": self._reconnect_attempts,
            "channels": list(self._channels),
            "server": self._server,
        }

"""IRC transport adapter built on ``irc.client_aio``.

Implements the core ``TransportPort``. Library events are translated into
the connection's callbacks, and library exceptions into ``TransportError``
with a classified kind, so the core never sees IRC library types.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Optional, Sequence

import irc.client
import irc.client_aio
import irc.connection

from core.errors import TransportError, TransportErrorKind, classify_transport_error
from core.ports import TransportEvents

LOGGER = logging.getLogger(__name__)

# mIRC colour codes carry up to two numeric arguments after the \x03 marker.
_COLOR_CODES = re.compile(r"\x03(?:\d{1,2}(?:,\d{1,2})?)?")


def strip_formatting(text: str) -> str:
    """Remove mIRC colour codes, keeping the plain text."""

    return _COLOR_CODES.sub("", text)


def _classify(exc: BaseException) -> TransportErrorKind:
    if isinstance(exc, irc.client.ServerNotConnectedError):
        return TransportErrorKind.NOT_CONNECTED
    return classify_transport_error(exc)


class IrcTransport:
    """One IRC session per ``open()``; a new reactor is built each time."""

    def __init__(
        self,
        server: str,
        port: int,
        nickname: str,
        *,
        secure: bool = False,
        username: Optional[str] = None,
        realname: Optional[str] = None,
        password: Optional[str] = None,
        connect_timeout: float = 30.0,
    ) -> None:
        self._server = server
        self._port = port
        self._nickname = nickname
        self._secure = secure
        self._username = username
        self._realname = realname
        self._password = password
        self._connect_timeout = connect_timeout
        self._events: Optional[TransportEvents] = None
        self._reactor: Optional[irc.client_aio.AioReactor] = None
        self._connection: Optional[irc.client_aio.AioConnection] = None
        self._channels: list[str] = []

    def bind(self, events: TransportEvents) -> None:
        self._events = events

    async def open(self, channels: Sequence[str]) -> None:
        # Start from a clean slate; the previous session's events are ignored.
        await self.close()
        self._channels = list(channels)

        reactor = irc.client_aio.AioReactor(loop=asyncio.get_running_loop())
        for event_type, handler in (
            ("welcome", self._on_welcome),
            ("join", self._on_join),
            ("pubmsg", self._on_pubmsg),
            ("pong", self._on_pong),
            ("nicknameinuse", self._on_nickname_in_use),
            ("error", self._on_error),
            ("disconnect", self._on_disconnect),
        ):
            reactor.add_global_handler(event_type, handler)
        connection = reactor.server()
        self._reactor = reactor
        self._connection = connection

        factory = irc.connection.AioFactory(ssl=True) if self._secure else irc.connection.AioFactory()
        LOGGER.info(
            "Opening IRC session to %s:%s (secure=%s, nickname=%s)",
            self._server,
            self._port,
            self._secure,
            self._nickname,
        )
        try:
            await asyncio.wait_for(
                connection.connect(
                    self._server,
                    self._port,
                    self._nickname,
                    password=self._password,
                    username=self._username,
                    ircname=self._realname,
                    connect_factory=factory,
                ),
                timeout=self._connect_timeout,
            )
        except (OSError, asyncio.TimeoutError, irc.client.IRCError) as exc:
            self._drop_session()
            raise TransportError(_classify(exc), str(exc)) from exc
        except AttributeError as exc:
            if _classify(exc) is not TransportErrorKind.NULL_REFERENCE:
                raise
            self._drop_session()
            raise TransportError(TransportErrorKind.NULL_REFERENCE, str(exc)) from exc

    async def close(self) -> None:
        connection = self._connection
        self._drop_session()
        if connection is None:
            return
        try:
            connection.disconnect("Bridge shutting down")
        except (OSError, irc.client.IRCError) as exc:
            raise TransportError(_classify(exc), str(exc)) from exc

    def send_ping(self, token: str) -> None:
        connection = self._connection
        if connection is None or not connection.is_connected():
            raise TransportError(TransportErrorKind.NOT_CONNECTED, "no active IRC session")
        try:
            connection.ping(token)
        except (OSError, irc.client.IRCError) as exc:
            raise TransportError(_classify(exc), str(exc)) from exc

    def is_open(self) -> bool:
        connection = self._connection
        return connection is not None and connection.is_connected()

    def _drop_session(self) -> None:
        self._connection = None
        self._reactor = None

    def _is_current(self, connection) -> bool:
        return connection is self._connection and self._events is not None

    # irc library handlers: (connection, event)

    def _on_welcome(self, connection, event) -> None:
        if not self._is_current(connection):
            return
        for channel in self._channels:
            connection.join(channel)
        self._events.on_registered()

    def _on_join(self, connection, event) -> None:
        if event.source.nick == connection.get_nickname():
            LOGGER.info("Joined IRC channel: %s", event.target)

    def _on_pubmsg(self, connection, event) -> None:
        if not self._is_current(connection):
            return
        text = strip_formatting(event.arguments[0]) if event.arguments else ""
        self._events.on_message(event.source.nick, event.target, text)

    def _on_pong(self, connection, event) -> None:
        if not self._is_current(connection):
            return
        self._events.on_pong()

    def _on_nickname_in_use(self, connection, event) -> None:
        fallback = f"{connection.get_nickname()}_"
        LOGGER.warning("Nickname in use, retrying as %s", fallback)
        connection.nick(fallback)

    def _on_error(self, connection, event) -> None:
        LOGGER.error("IRC server error: %s", " ".join(event.arguments))

    def _on_disconnect(self, connection, event) -> None:
        if not self._is_current(connection):
            return
        self._drop_session()
        self._events.on_closed(TransportErrorKind.CONNECTION_CLOSED)

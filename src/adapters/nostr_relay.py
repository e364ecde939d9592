"""Nostr relay connector using aiohttp websockets.

Each publish opens its own websocket, sends ``["EVENT", event]`` and waits
for the relay's ``["OK", id, accepted, message]`` acknowledgment. The socket
is closed when the scoped session exits, whatever the outcome.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import aiohttp

from core.errors import EndpointError

LOGGER = logging.getLogger(__name__)


class NostrRelaySession:
    """One open websocket to one relay."""

    def __init__(self, url: str, ws: aiohttp.ClientWebSocketResponse, timeout: float) -> None:
        self._url = url
        self._ws = ws
        self._timeout = timeout

    async def publish(self, event: dict[str, Any]) -> None:
        event_id = event.get("id")
        await self._ws.send_str(json.dumps(["EVENT", event]))

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeout
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise EndpointError(self._url, "timed out waiting for OK")
            try:
                message = await asyncio.wait_for(self._ws.receive(), timeout=remaining)
            except asyncio.TimeoutError as exc:
                raise EndpointError(self._url, "timed out waiting for OK") from exc

            if message.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED):
                raise EndpointError(self._url, "connection closed before OK")
            if message.type is aiohttp.WSMsgType.ERROR:
                raise EndpointError(self._url, f"websocket error: {self._ws.exception()}")
            if message.type is not aiohttp.WSMsgType.TEXT:
                continue

            try:
                frame = json.loads(message.data)
            except ValueError:
                LOGGER.debug("Ignoring malformed frame from %s", self._url)
                continue
            if not isinstance(frame, list) or not frame:
                continue

            if frame[0] == "NOTICE":
                LOGGER.debug("Notice from %s: %s", self._url, frame[1:])
                continue
            if frame[0] == "OK" and len(frame) >= 3 and frame[1] == event_id:
                if frame[2] is True:
                    return
                reason = frame[3] if len(frame) > 3 else ""
                raise EndpointError(self._url, f"rejected: {reason}")


class NostrRelayConnector:
    """Opens scoped websocket sessions; satisfies the core EndpointConnectorPort."""

    def __init__(self, timeout: float = 10.0, session: Optional[aiohttp.ClientSession] = None) -> None:
        self._timeout = timeout
        self._session = session

    def _client_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    @asynccontextmanager
    async def connect(self, endpoint: str) -> AsyncIterator[NostrRelaySession]:
        try:
            ws = await asyncio.wait_for(self._client_session().ws_connect(endpoint), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise EndpointError(endpoint, "timed out connecting") from exc
        except (aiohttp.ClientError, OSError) as exc:
            raise EndpointError(endpoint, f"connect failed: {exc}") from exc

        try:
            yield NostrRelaySession(endpoint, ws, self._timeout)
        finally:
            await ws.close()

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

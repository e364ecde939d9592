"""Ports (interfaces) used by the core.

Ports define the minimal contracts for the chat transport, the signer and
the broadcast endpoints so that the core can be exercised with fakes and
reused with different backends.
"""

from __future__ import annotations

from typing import Any, AsyncContextManager, Callable, Optional, Protocol, Sequence

from core.errors import TransportErrorKind
from core.models import IncomingMessage, OutboundPost, PublishOutcome

MessageListener = Callable[[IncomingMessage], None]


class TransportEvents(Protocol):
    """Callbacks a transport delivers to its owning connection."""

    def on_registered(self) -> None:
        ...

    def on_message(self, sender: str, channel: str, text: str) -> None:
        ...

    def on_closed(self, kind: Optional[TransportErrorKind]) -> None:
        ...

    def on_pong(self) -> None:
        ...


class TransportPort(Protocol):
    """Chat server session operations required by the connection."""

    def bind(self, events: TransportEvents) -> None:
        ...

    async def open(self, channels: Sequence[str]) -> None:
        ...

    async def close(self) -> None:
        ...

    def send_ping(self, token: str) -> None:
        ...

    def is_open(self) -> bool:
        ...


class SignerPort(Protocol):
    """Turns an outbound post into a signed, wire-ready event."""

    def sign(self, post: OutboundPost) -> dict[str, Any]:
        ...


class EndpointSession(Protocol):
    async def publish(self, event: dict[str, Any]) -> None:
        ...


class EndpointConnectorPort(Protocol):
    """Opens a scoped session to one broadcast endpoint."""

    def connect(self, endpoint: str) -> AsyncContextManager[EndpointSession]:
        ...

    async def close(self) -> None:
        ...


class PublisherPort(Protocol):
    """Publishing operation required by the message processor."""

    async def publish(self, post: OutboundPost) -> PublishOutcome:
        ...

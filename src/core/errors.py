"""Error taxonomy shared by the core and adapters.

Transport failures are classified into a closed set of kinds at the
transport boundary. Recovery decisions are made on the kind, never on the
text of an exception message.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Optional


class TransportErrorKind(str, Enum):
    CONNECTION_REFUSED = "connection_refused"
    CONNECTION_RESET = "connection_reset"
    CONNECTION_CLOSED = "connection_closed"
    TIMEOUT = "timeout"
    NOT_CONNECTED = "not_connected"
    NULL_REFERENCE = "null_reference"
    NETWORK = "network"
    UNCLASSIFIED = "unclassified"


RECOVERABLE_KINDS = frozenset(kind for kind in TransportErrorKind if kind is not TransportErrorKind.UNCLASSIFIED)


class BridgeError(Exception):
    """Base class for errors raised by the bridge."""


class ConfigurationError(BridgeError):
    """Startup configuration is missing or malformed."""


class TransportError(BridgeError):
    """A chat transport operation failed."""

    def __init__(self, kind: TransportErrorKind, detail: str = "") -> None:
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)
        self.kind = kind
        self.detail = detail


class EndpointError(BridgeError):
    """A broadcast endpoint could not be reached or refused the post."""

    def __init__(self, endpoint: str, reason: str) -> None:
        super().__init__(f"{endpoint}: {reason}")
        self.endpoint = endpoint
        self.reason = reason


def _is_null_reference(exc: AttributeError) -> bool:
    # AttributeError.obj is populated by attribute lookup since Python 3.10.
    return getattr(exc, "obj", object()) is None


def classify_transport_error(exc: BaseException) -> TransportErrorKind:
    """Map an exception raised around the transport to a recovery kind."""

    if isinstance(exc, TransportError):
        return exc.kind
    if isinstance(exc, ConnectionRefusedError):
        return TransportErrorKind.CONNECTION_REFUSED
    if isinstance(exc, (ConnectionResetError, ConnectionAbortedError, BrokenPipeError)):
        return TransportErrorKind.CONNECTION_RESET
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return TransportErrorKind.TIMEOUT
    if isinstance(exc, AttributeError) and _is_null_reference(exc):
        return TransportErrorKind.NULL_REFERENCE
    if isinstance(exc, OSError):
        return TransportErrorKind.NETWORK
    return TransportErrorKind.UNCLASSIFIED


def is_recoverable(kind: Optional[TransportErrorKind]) -> bool:
    return kind in RECOVERABLE_KINDS

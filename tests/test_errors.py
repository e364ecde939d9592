from __future__ import annotations

import asyncio

from core.errors import TransportError, TransportErrorKind, classify_transport_error, is_recoverable


def _null_reference() -> AttributeError:
    value = None
    try:
        value.readyState  # type: ignore[attr-defined]
    except AttributeError as exc:
        return exc
    raise AssertionError("expected AttributeError")


def test_classifies_builtin_network_errors() -> None:
    assert classify_transport_error(ConnectionRefusedError()) is TransportErrorKind.CONNECTION_REFUSED
    assert classify_transport_error(ConnectionResetError()) is TransportErrorKind.CONNECTION_RESET
    assert classify_transport_error(BrokenPipeError()) is TransportErrorKind.CONNECTION_RESET
    assert classify_transport_error(asyncio.TimeoutError()) is TransportErrorKind.TIMEOUT
    assert classify_transport_error(OSError("unreachable")) is TransportErrorKind.NETWORK


def test_null_reference_is_recognized_without_message_matching() -> None:
    assert classify_transport_error(_null_reference()) is TransportErrorKind.NULL_REFERENCE


def test_attribute_error_on_real_object_is_unclassified() -> None:
    try:
        "text".missing  # type: ignore[attr-defined]
    except AttributeError as exc:
        assert classify_transport_error(exc) is TransportErrorKind.UNCLASSIFIED


def test_transport_error_keeps_its_kind() -> None:
    error = TransportError(TransportErrorKind.NOT_CONNECTED, "gone")
    assert classify_transport_error(error) is TransportErrorKind.NOT_CONNECTED
    assert "gone" in str(error)


def test_only_unclassified_is_unrecoverable() -> None:
    assert is_recoverable(TransportErrorKind.NULL_REFERENCE)
    assert not is_recoverable(TransportErrorKind.UNCLASSIFIED)
    assert not is_recoverable(None)
    assert classify_transport_error(ValueError("boom")) is TransportErrorKind.UNCLASSIFIED

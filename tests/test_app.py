from __future__ import annotations

import asyncio
import logging

import pytest

from app import _FaultHandler, _RedactingFormatter, build_engine
from core.config import BridgeProfile, ReconnectConfig
from core.connection import ChannelConnection
from core.engine import BridgeEngine
from core.errors import ConfigurationError
from core.models import ConnectionState
from core.processor import MessageProcessor
from core.stats import BridgeStats
from fakes import FakePublisher, FakeTransport
from settings import load_settings


def _engine(pipeline) -> tuple[BridgeEngine, FakeTransport]:
    transport = FakeTransport(register_on_open=True)
    stats = BridgeStats()
    engine = BridgeEngine(
        ChannelConnection(transport, ["#SirLibre"], config=ReconnectConfig(delay_seconds=10)),
        MessageProcessor(pipeline=pipeline, publisher=FakePublisher(), stats=stats),
        None,
        stats,
        BridgeProfile(
            server="irc.example",
            channels=("#SirLibre",),
            target_sender="LibreRelayBot",
            endpoints=(),
            test_mode=True,
        ),
    )
    return engine, transport


def _null_reference() -> AttributeError:
    try:
        None.conn  # type: ignore[attr-defined]
    except AttributeError as exc:
        return exc
    raise AssertionError("expected AttributeError")


def test_redacting_formatter_masks_secrets() -> None:
    formatter = _RedactingFormatter(["nsec1secretvalue"], fmt="%(message)s")
    record = logging.LogRecord("bridge", logging.INFO, __file__, 1, "key=%s", ("nsec1secretvalue",), None)

    assert formatter.format(record) == "key=***"


def test_null_reference_fault_triggers_reconnect(pipeline) -> None:
    engine, _ = _engine(pipeline)

    async def _run() -> None:
        await engine.connection.connect()
        shutdown = asyncio.Event()
        handler = _FaultHandler(engine, shutdown)

        handler(asyncio.get_running_loop(), {"message": "Exception in callback", "exception": _null_reference()})

        assert engine.connection.state is ConnectionState.DISCONNECTED
        assert engine.connection.reconnect_pending
        assert not shutdown.is_set()
        await engine.connection.disconnect()

    asyncio.run(_run())


def test_unretrieved_task_exception_is_logged_only(pipeline) -> None:
    engine, _ = _engine(pipeline)

    async def _run() -> None:
        shutdown = asyncio.Event()
        handler = _FaultHandler(engine, shutdown)
        handler(
            asyncio.get_running_loop(),
            {"message": "Task exception was never retrieved", "exception": ValueError("bad"), "future": None},
        )
        assert not shutdown.is_set()
        assert handler.exit_code == 0

    asyncio.run(_run())


def test_unclassified_callback_fault_requests_shutdown(pipeline) -> None:
    engine, _ = _engine(pipeline)

    async def _run() -> None:
        shutdown = asyncio.Event()
        handler = _FaultHandler(engine, shutdown)
        handler(asyncio.get_running_loop(), {"message": "Exception in callback", "exception": ValueError("bad")})
        assert shutdown.is_set()
        assert handler.exit_code == 1

    asyncio.run(_run())


def test_engine_without_publisher_is_unhealthy(pipeline) -> None:
    engine, _ = _engine(pipeline)

    async def _run() -> None:
        await engine.connection.connect()
        assert engine.connection.state is ConnectionState.REGISTERED
        assert not engine.is_healthy()
        await engine.connection.disconnect()

    asyncio.run(_run())


def test_build_engine_rejects_undecodable_credential() -> None:
    settings = load_settings({"NOSTR_NSEC": "nsec1" + "q" * 58})

    with pytest.raises(ConfigurationError):
        build_engine(settings)

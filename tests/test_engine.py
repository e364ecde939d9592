from __future__ import annotations

import asyncio

from core.config import BridgeProfile, ReconnectConfig
from core.connection import ChannelConnection
from core.engine import BridgeEngine
from core.errors import EndpointError
from core.models import ConnectionState
from core.processor import MessageProcessor
from core.publisher import FanoutPublisher
from core.stats import BridgeStats
from fakes import FakeConnector, FakeSigner, FakeTransport

RELAYS = ("wss://relay.one", "wss://relay.two", "wss://relay.three")


def _build(pipeline, connector: FakeConnector) -> tuple[BridgeEngine, FakeTransport]:
    transport = FakeTransport(register_on_open=True)
    stats = BridgeStats()
    publisher = FanoutPublisher(FakeSigner(), connector, RELAYS)
    engine = BridgeEngine(
        ChannelConnection(transport, ["#SirLibre"], config=ReconnectConfig(delay_seconds=0)),
        MessageProcessor(pipeline=pipeline, publisher=publisher, stats=stats),
        publisher,
        stats,
        BridgeProfile(
            server="irc.example",
            channels=("#SirLibre",),
            target_sender="LibreRelayBot",
            endpoints=RELAYS,
            test_mode=False,
        ),
    )
    return engine, transport


def test_chat_line_flows_to_every_relay(pipeline) -> None:
    connector = FakeConnector()
    engine, transport = _build(pipeline, connector)

    async def _run() -> None:
        await engine.start()
        assert engine.is_healthy()
        transport.events.on_message("OtherBot", "#SirLibre", "ignore me")
        transport.events.on_message("LibreRelayBot", "#SirLibre", "Boost received!")
        await engine.processor.drain()
        await engine.stop()

    asyncio.run(_run())

    assert sorted(connector.connect_calls) == sorted(RELAYS)
    assert engine.stats.messages_monitored == 1
    assert engine.stats.successful_posts == 1
    assert engine.stats.relay_stats["wss://relay.two"].succeeded == 1
    assert engine.connection.state is ConnectionState.CLOSING
    assert connector.closed


def test_endpoint_failures_are_tracked_per_relay(pipeline) -> None:
    connector = FakeConnector(
        connect_errors={"wss://relay.one": EndpointError("wss://relay.one", "timed out connecting")}
    )
    engine, transport = _build(pipeline, connector)

    async def _run() -> None:
        await engine.start()
        transport.events.on_message("LibreRelayBot", "#SirLibre", "hello")
        await engine.processor.drain()
        await engine.stop()

    asyncio.run(_run())

    entry = engine.stats.relay_stats["wss://relay.one"]
    assert entry.failed == 1
    assert entry.last_error == "timed out connecting"
    assert engine.stats.successful_posts == 1
    assert engine.status()["relay_stats"]["wss://relay.one"]["failed"] == 1

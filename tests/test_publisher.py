from __future__ import annotations

import asyncio

from core.errors import EndpointError
from core.publisher import FanoutPublisher
from fakes import FakeConnector, FakeSigner, make_post, rejected

ENDPOINTS = [
    "wss://relay.one",
    "wss://relay.two",
    "wss://relay.three",
    "wss://relay.four",
    "wss://relay.five",
]


def test_partial_failure_is_isolated() -> None:
    connector = FakeConnector(
        connect_errors={"wss://relay.two": EndpointError("wss://relay.two", "connect failed: refused")},
        publish_errors={"wss://relay.four": rejected("wss://relay.four")},
    )
    publisher = FanoutPublisher(FakeSigner(), connector, ENDPOINTS)

    outcome = asyncio.run(publisher.publish(make_post()))

    assert (outcome.attempted, outcome.succeeded, outcome.failed) == (5, 3, 2)
    assert outcome.success
    failed = {result.endpoint: result.error for result in outcome.results if not result.success}
    assert failed == {
        "wss://relay.two": "connect failed: refused",
        "wss://relay.four": "rejected: blocked",
    }


def test_every_opened_session_is_released() -> None:
    connector = FakeConnector(publish_errors={"wss://relay.one": rejected("wss://relay.one")})
    publisher = FanoutPublisher(FakeSigner(), connector, ENDPOINTS)

    asyncio.run(publisher.publish(make_post()))

    assert sorted(connector.released) == sorted(ENDPOINTS)


def test_all_endpoints_failing_reports_zero_successes() -> None:
    connector = FakeConnector(
        connect_errors={endpoint: EndpointError(endpoint, "timed out connecting") for endpoint in ENDPOINTS}
    )
    publisher = FanoutPublisher(FakeSigner(), connector, ENDPOINTS)

    outcome = asyncio.run(publisher.publish(make_post()))

    assert (outcome.attempted, outcome.succeeded, outcome.failed) == (5, 0, 5)
    assert not outcome.success
    assert len(connector.connect_calls) == 5


def test_unexpected_endpoint_exception_does_not_escape() -> None:
    connector = FakeConnector(publish_errors={"wss://relay.three": RuntimeError("socket exploded")})
    publisher = FanoutPublisher(FakeSigner(), connector, ENDPOINTS)

    outcome = asyncio.run(publisher.publish(make_post()))

    assert outcome.failed == 1
    errors = [result.error for result in outcome.results if not result.success]
    assert errors == ["RuntimeError: socket exploded"]


def test_results_follow_endpoint_order() -> None:
    publisher = FanoutPublisher(FakeSigner(), FakeConnector(), ENDPOINTS)

    outcome = asyncio.run(publisher.publish(make_post()))

    assert [result.endpoint for result in outcome.results] == ENDPOINTS


def test_post_is_signed_once_and_sent_everywhere() -> None:
    signer = FakeSigner()
    connector = FakeConnector()
    publisher = FanoutPublisher(signer, connector, ENDPOINTS)

    asyncio.run(publisher.publish(make_post("boost!")))

    assert len(signer.signed) == 1
    assert all(session.published[0]["content"] == "boost!" for session in connector.sessions)


def test_dry_run_makes_no_network_calls() -> None:
    signer = FakeSigner()
    connector = FakeConnector()
    publisher = FanoutPublisher(signer, connector, ENDPOINTS, test_mode=True)

    outcome = asyncio.run(publisher.publish(make_post()))

    assert connector.connect_calls == []
    assert (outcome.attempted, outcome.succeeded, outcome.failed) == (5, 5, 0)
    assert len(signer.signed) == 1


def test_close_releases_connector() -> None:
    connector = FakeConnector()
    publisher = FanoutPublisher(FakeSigner(), connector, ENDPOINTS)

    asyncio.run(publisher.close())

    assert connector.closed

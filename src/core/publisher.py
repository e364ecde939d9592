"""Fan-out publisher for broadcast endpoints.

Each post is signed once and pushed to every endpoint concurrently. One
endpoint failing never stops the others and never raises to the caller; it
is recorded in that endpoint's result instead.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

from core.errors import EndpointError
from core.models import EndpointResult, OutboundPost, PublishOutcome
from core.ports import EndpointConnectorPort, SignerPort

LOGGER = logging.getLogger(__name__)


class FanoutPublisher:
    """Deliver one post to every configured endpoint, independently."""

    def __init__(
        self,
        signer: SignerPort,
        connector: EndpointConnectorPort,
        endpoints: Iterable[str],
        test_mode: bool = False,
    ) -> None:
        self._signer = signer
        self._connector = connector
        self._endpoints = tuple(endpoints)
        self._test_mode = test_mode

    @property
    def endpoints(self) -> tuple[str, ...]:
        return self._endpoints

    @property
    def test_mode(self) -> bool:
        return self._test_mode

    async def publish(self, post: OutboundPost) -> PublishOutcome:
        event = self._signer.sign(post)

        if self._test_mode:
            LOGGER.info(
                "TEST MODE - Would publish: content=%r tags=%s relays=%s",
                post.content,
                sorted(post.tags),
                list(self._endpoints),
            )
            return PublishOutcome.from_results(
                [EndpointResult(endpoint=endpoint, success=True) for endpoint in self._endpoints]
            )

        settled = await asyncio.gather(
            *(self._publish_to_endpoint(endpoint, event) for endpoint in self._endpoints),
            return_exceptions=True,
        )
        results = [
            self._as_result(endpoint, item) for endpoint, item in zip(self._endpoints, settled)
        ]
        outcome = PublishOutcome.from_results(results)
        LOGGER.info("Published to %s/%s relays", outcome.succeeded, outcome.attempted)
        return outcome

    async def _publish_to_endpoint(self, endpoint: str, event: dict[str, Any]) -> EndpointResult:
        # The session is released on exit whether the publish succeeded or not.
        async with self._connector.connect(endpoint) as session:
            await session.publish(event)
        LOGGER.debug("Published to %s", endpoint)
        return EndpointResult(endpoint=endpoint, success=True)

    @staticmethod
    def _as_result(endpoint: str, item: Any) -> EndpointResult:
        if isinstance(item, EndpointResult):
            return item
        if isinstance(item, EndpointError):
            reason = item.reason
        else:
            reason = f"{type(item).__name__}: {item}"
        LOGGER.warning("Failed to publish to %s: %s", endpoint, reason)
        return EndpointResult(endpoint=endpoint, success=False, error=reason)

    async def close(self) -> None:
        await self._connector.close()

"""Nostr event signing adapter.

Parses the NIP-19 ``nsec`` credential once at startup and turns each
outbound post into a signed NIP-01 kind 1 text note.
"""

from __future__ import annotations

import json
from typing import Any

from nostr_sdk import EventBuilder, Keys, Kind, NostrSdkError, Tag, Timestamp

from core.errors import ConfigurationError
from core.models import OutboundPost


class NostrSigner:
    """Signer adapter that satisfies the core SignerPort."""

    def __init__(self, nsec: str) -> None:
        try:
            self._keys = Keys.parse(nsec)
        except NostrSdkError as exc:
            raise ConfigurationError(f"Invalid nsec format: {exc}") from exc

    @property
    def public_key(self) -> str:
        return self._keys.public_key().to_bech32()

    def sign(self, post: OutboundPost) -> dict[str, Any]:
        tags = [Tag.parse(["t", tag]) for tag in sorted(post.tags)]
        builder = (
            EventBuilder(Kind(1), post.content)
            .tags(tags)
            .custom_created_at(Timestamp.from_secs(int(post.created_at.timestamp())))
        )
        event = builder.finalize(self._keys)
        return json.loads(event.as_json())

"""Runtime counters for the bridge.

The engine owns a single ``BridgeStats`` instance and hands it to the
components that update it. Nothing reads or writes it through module state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from core.models import PublishOutcome


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class EndpointStats:
    succeeded: int = 0
    failed: int = 0
    last_error: Optional[str] = None


@dataclass
class BridgeStats:
    """Cumulative counters reported by the status surface."""

    start_time: datetime = field(default_factory=_utcnow)
    messages_monitored: int = 0
    successful_posts: int = 0
    failed_posts: int = 0
    rate_limited: int = 0
    last_activity: Optional[datetime] = None
    relay_stats: dict[str, EndpointStats] = field(default_factory=dict)

    def record_observed(self, when: Optional[datetime] = None) -> None:
        self.messages_monitored += 1
        self.last_activity = when or _utcnow()

    def record_rate_limited(self) -> None:
        self.rate_limited += 1

    def record_outcome(self, outcome: PublishOutcome) -> None:
        if outcome.success:
            self.successful_posts += 1
        else:
            self.failed_posts += 1
        for result in outcome.results:
            entry = self.relay_stats.setdefault(result.endpoint, EndpointStats())
            if result.success:
                entry.succeeded += 1
            else:
                entry.failed += 1
                entry.last_error = result.error

    def record_failure(self) -> None:
        self.failed_posts += 1

    def uptime_seconds(self, now: Optional[datetime] = None) -> float:
        return ((now or _utcnow()) - self.start_time).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_time": self.start_time.isoformat(),
            "messages_monitored": self.messages_monitored,
            "successful_posts": self.successful_posts,
            "failed_posts": self.failed_posts,
            "rate_limited": self.rate_limited,
            "last_activity": self.last_activity.isoformat() if self.last_activity else None,
            "relay_stats": {
                endpoint: {
                    "succeeded": entry.succeeded,
                    "failed": entry.failed,
                    "last_error": entry.last_error,
                }
                for endpoint, entry in self.relay_stats.items()
            },
        }

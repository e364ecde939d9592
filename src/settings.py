"""Environment configuration for the bridge.

Settings are read once at startup from the process environment, with
``.env`` support via python-dotenv, and handed to the engine as a frozen
object. Nothing re-reads the environment after startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from dotenv import load_dotenv

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

DEFAULT_RELAYS = (
    "wss://relay.damus.io",
    "wss://relay.nostr.band",
    "wss://nostr.mom",
    "wss://relay.primal.net",
    "wss://chadf.nostr1.com",
)

NSEC_PLACEHOLDER = "your_nostr_private_key_here"
NSEC_PREFIX = "nsec1"
NSEC_LENGTH = 63


@dataclass(frozen=True)
class IrcSettings:
    server: str = "irc.zeronode.net"
    port: int = 6667
    secure: bool = False
    nickname: str = "LibreRelayBot_Reader"
    username: str = "libre_reader"
    realname: str = "LibreRelayBot Reader Bot"
    password: Optional[str] = None
    channel: str = "#SirLibre"
    connect_timeout: float = 30.0
    reconnect_max_attempts: int = 10
    reconnect_delay: float = 10.0
    keepalive_interval: float = 60.0


@dataclass(frozen=True)
class NostrSettings:
    nsec: Optional[str] = None
    relays: tuple[str, ...] = DEFAULT_RELAYS
    relay_timeout: float = 10.0


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"
    console: bool = True
    file_path: str = "logs/bridge.log"
    max_bytes: int = 1024 * 1024
    backup_count: int = 5


@dataclass(frozen=True)
class BridgeSettings:
    irc: IrcSettings = field(default_factory=IrcSettings)
    nostr: NostrSettings = field(default_factory=NostrSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    target_bot: str = "LibreRelayBot"
    status_host: str = "0.0.0.0"
    status_port: int = 3336
    test_mode: bool = False
    rate_limit_max: int = 5
    rate_limit_window: float = 60.0


def parse_port(value: Optional[str]) -> Optional[int]:
    """Return a valid TCP port or ``None``."""

    try:
        port = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if port < 1 or port > 65535:
        return None
    return port


def parse_relays(value: Optional[str]) -> tuple[str, ...]:
    """Split a comma-separated relay list; fall back to the public defaults."""

    if not value:
        return DEFAULT_RELAYS
    return tuple(relay.strip() for relay in value.split(",") if relay.strip())


def _flag(value: Optional[str], default: bool = False) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() == "true"


def _number(value: Optional[str], default: float, cast=float):
    if value is None or value.strip() == "":
        return default
    try:
        parsed = cast(value)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def load_settings(env: Optional[Mapping[str, str]] = None) -> BridgeSettings:
    """Build settings from ``env`` (defaults to ``os.environ`` after loading ``.env``)."""

    if env is None:
        load_dotenv()
        env = os.environ

    irc = IrcSettings(
        server=env.get("IRC_SERVER") or "irc.zeronode.net",
        port=parse_port(env.get("IRC_PORT")) or 6667,
        secure=_flag(env.get("IRC_SECURE")),
        nickname=env.get("IRC_NICKNAME") or "LibreRelayBot_Reader",
        username=env.get("IRC_USERNAME") or "libre_reader",
        realname=env.get("IRC_REALNAME") or "LibreRelayBot Reader Bot",
        password=env.get("IRC_PASSWORD") or None,
        channel=env.get("IRC_CHANNEL") or "#SirLibre",
        connect_timeout=_number(env.get("CONNECT_TIMEOUT_SECONDS"), 30.0),
        reconnect_max_attempts=_number(env.get("RECONNECT_MAX_ATTEMPTS"), 10, int),
        reconnect_delay=_number(env.get("RECONNECT_DELAY_SECONDS"), 10.0),
        keepalive_interval=_number(env.get("KEEPALIVE_INTERVAL_SECONDS"), 60.0),
    )
    nostr = NostrSettings(
        nsec=env.get("NOSTR_NSEC") or None,
        relays=parse_relays(env.get("NOSTR_RELAYS")),
        relay_timeout=_number(env.get("RELAY_TIMEOUT_SECONDS"), 10.0),
    )
    log_file = env.get("LOG_FILE")
    logging_settings = LoggingSettings(
        level=(env.get("LOG_LEVEL") or "INFO").upper(),
        console=_flag(env.get("LOG_CONSOLE"), default=True),
        file_path="logs/bridge.log" if log_file is None else log_file,
        max_bytes=_number(env.get("LOG_MAX_BYTES"), 1024 * 1024, int),
        backup_count=_number(env.get("LOG_BACKUP_COUNT"), 5, int),
    )
    return BridgeSettings(
        irc=irc,
        nostr=nostr,
        logging=logging_settings,
        target_bot=env.get("TARGET_BOT") or "LibreRelayBot",
        status_host=env.get("STATUS_HOST") or "0.0.0.0",
        status_port=parse_port(env.get("PORT")) or 3336,
        test_mode=_flag(env.get("TEST_MODE")),
        rate_limit_max=_number(env.get("RATE_LIMIT_MAX"), 5, int),
        rate_limit_window=_number(env.get("RATE_LIMIT_WINDOW_SECONDS"), 60.0),
    )


def validate_settings(settings: BridgeSettings) -> list[str]:
    """Return human-readable configuration errors; empty means valid."""

    errors: list[str] = []
    nsec = settings.nostr.nsec
    if not nsec or nsec == NSEC_PLACEHOLDER:
        errors.append("NOSTR_NSEC is required and must be a valid nsec key")
    elif not nsec.startswith(NSEC_PREFIX) or len(nsec) != NSEC_LENGTH:
        errors.append("NOSTR_NSEC must be a valid nsec1 format")
    if not settings.nostr.relays:
        errors.append("NOSTR_RELAYS must list at least one relay")
    if not settings.target_bot:
        errors.append("TARGET_BOT must not be empty")
    return errors

"""Application entry point for the IRC to Nostr bridge."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from art import tprint

import settings as settings_module
from adapters.nostr_relay import NostrRelayConnector
from adapters.nostr_signer import NostrSigner
from adapters.status_server import StatusServer
from client import build_transport
from core.config import BridgeProfile, RateLimitConfig, ReconnectConfig, RelayFilterConfig
from core.connection import ChannelConnection
from core.engine import BridgeEngine
from core.errors import ConfigurationError, classify_transport_error, is_recoverable
from core.processor import MessageProcessor, RelayFilterPipeline
from core.publisher import FanoutPublisher
from core.rate_limiter import SlidingWindowRateLimiter
from core.stats import BridgeStats
from settings import BridgeSettings, LoggingSettings

NAME = "IRC2NOSTR"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(settings: BridgeSettings) -> list[str]:
    values = [settings.nostr.nsec, settings.irc.password]
    return sorted({value for value in values if value}, key=len, reverse=True)


def _configure_logging(config: LoggingSettings, secrets: list[str]) -> None:
    level = getattr(logging, config.level, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    if config.file_path:
        path = config.file_path
        if not os.path.isabs(path):
            path = os.path.join(settings_module.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers, force=True)


def build_engine(settings: BridgeSettings) -> BridgeEngine:
    """Wire the core components from settings.

    Raises ``ConfigurationError`` when the signing credential cannot be decoded.
    """

    signer = NostrSigner(settings.nostr.nsec or "")
    publisher = FanoutPublisher(
        signer=signer,
        connector=NostrRelayConnector(timeout=settings.nostr.relay_timeout),
        endpoints=settings.nostr.relays,
        test_mode=settings.test_mode,
    )
    LOGGER.info("Nostr client initialized (%s relays, test_mode=%s)", len(publisher.endpoints), publisher.test_mode)

    stats = BridgeStats()
    pipeline = RelayFilterPipeline(
        RelayFilterConfig(target_sender=settings.target_bot, target_channel=settings.irc.channel),
        SlidingWindowRateLimiter(
            RateLimitConfig(max_requests=settings.rate_limit_max, window_seconds=settings.rate_limit_window)
        ),
    )
    processor = MessageProcessor(pipeline=pipeline, publisher=publisher, stats=stats)

    connection = ChannelConnection(
        build_transport(settings.irc),
        channels=[settings.irc.channel],
        server=settings.irc.server,
        config=ReconnectConfig(
            max_attempts=settings.irc.reconnect_max_attempts,
            delay_seconds=settings.irc.reconnect_delay,
            keepalive_interval_seconds=settings.irc.keepalive_interval,
        ),
    )
    profile = BridgeProfile(
        server=settings.irc.server,
        channels=(settings.irc.channel,),
        target_sender=settings.target_bot,
        endpoints=publisher.endpoints,
        test_mode=settings.test_mode,
        public_key=signer.public_key,
    )
    return BridgeEngine(connection, processor, publisher, stats, profile)


class _FaultHandler:
    """Loop exception handler that sorts faults into recover, log or shut down."""

    def __init__(self, engine: BridgeEngine, shutdown: asyncio.Event) -> None:
        self._engine = engine
        self._shutdown = shutdown
        self.exit_code = 0

    def __call__(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        exc = context.get("exception")
        message = context.get("message", "")
        if exc is None:
            LOGGER.error("Unhandled event loop error: %s", message)
            return

        kind = classify_transport_error(exc)
        if is_recoverable(kind):
            LOGGER.warning("Detected %s transport fault, attempting recovery...", kind.value)
            self._engine.connection.handle_transport_fault(kind)
            return

        # An exception stored on a task nobody awaited; log and keep running.
        if "future" in context:
            LOGGER.error("Unhandled task exception: %s", message, exc_info=exc)
            return

        LOGGER.error("Uncaught exception: %s", message, exc_info=exc)
        self.exit_code = 1
        self._shutdown.set()


def _install_signal_handlers(loop: asyncio.AbstractEventLoop, shutdown: asyncio.Event) -> None:
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, shutdown.set)
        except NotImplementedError:
            # Windows event loops do not support signal handlers.
            pass


async def _serve(settings: BridgeSettings) -> int:
    engine = build_engine(settings)
    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    fault_handler = _FaultHandler(engine, shutdown)
    loop.set_exception_handler(fault_handler)
    _install_signal_handlers(loop, shutdown)

    server = StatusServer(engine, host=settings.status_host, port=settings.status_port)
    await engine.start()
    try:
        await server.start()
        LOGGER.info("Bridge started successfully")
        await shutdown.wait()
    finally:
        LOGGER.info("Shutting down gracefully...")
        await server.stop()
        await engine.stop()
        LOGGER.info("Shutdown complete")
    return fault_handler.exit_code


def _run() -> int:
    _print_banner()
    settings = settings_module.load_settings()
    _configure_logging(settings.logging, _collect_redaction_values(settings))

    errors = settings_module.validate_settings(settings)
    if errors:
        LOGGER.error("Configuration errors: %s", "; ".join(errors))
        return 1

    LOGGER.info("Starting bridge")
    try:
        return asyncio.run(_serve(settings))
    except ConfigurationError as exc:
        LOGGER.error("Configuration error: %s", exc)
        return 1
    except OSError:
        LOGGER.exception("Failed to start bridge")
        return 1


def _check() -> int:
    settings = settings_module.load_settings()
    errors = settings_module.validate_settings(settings)
    if not errors:
        try:
            signer = NostrSigner(settings.nostr.nsec or "")
        except ConfigurationError as exc:
            errors.append(str(exc))
    if errors:
        for error in errors:
            print(f"error: {error}")
        return 1

    print(f"IRC: {settings.irc.server}:{settings.irc.port} {settings.irc.channel} (target {settings.target_bot})")
    print(f"Public key: {signer.public_key}")
    print(f"Test mode: {settings.test_mode}")
    for index, relay in enumerate(settings.nostr.relays, start=1):
        print(f"{index}. {relay}")
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="irc-nostr-bridge")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the bridge")
    subparsers.add_parser("check", help="Validate configuration and print the resolved relays")

    args = parser.parse_args(argv)
    if args.command == "check":
        code = _check()
    else:
        code = _run()
    if code:
        raise SystemExit(code)


if __name__ == "__main__":
    main()

"""HTTP status and health surface.

Read-only reporting over the engine's live state. Supervisors poll
``/health``; operators read ``/status``.
"""

from __future__ import annotations

import logging
from typing import Optional

from aiohttp import web

from core.engine import BridgeEngine

LOGGER = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}


@web.middleware
async def security_headers(request: web.Request, handler) -> web.StreamResponse:
    response = await handler(request)
    response.headers.update(SECURITY_HEADERS)
    return response


class StatusServer:
    """aiohttp application exposing ``/health`` and ``/status``."""

    def __init__(self, engine: BridgeEngine, host: str = "0.0.0.0", port: int = 3336) -> None:
        self.engine = engine
        self.host = host
        self.port = port
        self.app = web.Application(middlewares=[security_headers], client_max_size=1024)
        self.runner: Optional[web.AppRunner] = None

        self.app.router.add_get("/health", self.health_handler)
        self.app.router.add_get("/status", self.status_handler)

    async def health_handler(self, request: web.Request) -> web.Response:
        status = 200 if self.engine.is_healthy() else 503
        return web.json_response(self.engine.health(), status=status)

    async def status_handler(self, request: web.Request) -> web.Response:
        return web.json_response(self.engine.status())

    async def start(self) -> None:
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, self.host, self.port)
        await site.start()
        LOGGER.info("Web server running on port %s", self.port)
        LOGGER.info("Status: http://localhost:%s/status", self.port)
        LOGGER.info("Health: http://localhost:%s/health", self.port)

    async def stop(self) -> None:
        if self.runner is not None:
            await self.runner.cleanup()
            self.runner = None
            LOGGER.info("Web server stopped")

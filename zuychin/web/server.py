"""Async HTTP server: web chat API, admin, cron and the Meta webhook.

Runs alongside the Telegram polling bot in the same asyncio event loop
(or on its own when no bot token is configured). Uses aiohttp's
AppRunner/TCPSite for non-blocking start/stop.
"""

from __future__ import annotations

import logging
import time

from aiohttp import web

from zuychin.channels import meta
from zuychin.config import settings
from zuychin.pipeline.background import background
from zuychin.web import api, meta_webhook

logger = logging.getLogger(__name__)


async def _health(request: web.Request) -> web.Response:
    """GET /health: basic liveness check."""
    return web.json_response({"status": "ok"})


def create_web_app() -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application()
    app[api.STARTED_AT_KEY] = time.monotonic()

    app.router.add_get("/health", _health)

    app.router.add_post("/api/chat", api.handle_chat)
    app.router.add_get("/api/conversations", api.handle_list_conversations)
    app.router.add_post("/api/conversations", api.handle_create_conversation)
    app.router.add_delete("/api/conversations", api.handle_delete_conversation)
    app.router.add_put("/api/admin/personality", api.handle_update_personality)
    app.router.add_get("/api/admin/status", api.handle_status)
    app.router.add_post("/api/cron/proactive", api.handle_proactive)

    app.router.add_get("/webhooks/meta", meta_webhook.handle_verify)
    app.router.add_post("/webhooks/meta", meta_webhook.handle_event)

    return app


class WebServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(self, host: str | None = None, port: int | None = None) -> None:
        self.host = host or settings.web_host
        self.port = port or settings.web_port
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Start listening."""
        app = create_web_app()
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("Web server listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server, then let background work finish."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Web server stopped")
        await background.drain()
        await meta.close_session()

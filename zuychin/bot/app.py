"""Telegram application factory and channel wiring."""

from __future__ import annotations

import logging

from telegram.ext import Application, CommandHandler, MessageHandler, filters

from zuychin.bot.handlers import (
    handle_message,
    handle_model,
    handle_start,
    handle_status,
    handle_upload,
)
from zuychin.channels.base import INSTAGRAM
from zuychin.channels.meta import MessengerChannel, WhatsAppChannel
from zuychin.channels.router import ChannelRouter
from zuychin.channels.telegram_channel import TelegramChannel
from zuychin.config import settings
from zuychin.profiles.store import ProfileStore
from zuychin.web.server import WebServer

logger = logging.getLogger(__name__)

# Module-level reference so post_shutdown can access it.
_web_server: WebServer | None = None


async def seed_profile() -> None:
    """Make sure the owner profile exists."""
    profile = await ProfileStore.get().ensure_default_profile()
    logger.info("Owner profile: %s (%s)", profile.display_name, profile.id)


def init_meta_channels() -> None:
    """Register the Meta adapters when a page token is configured."""
    if not settings.meta_page_access_token:
        logger.info("META_PAGE_ACCESS_TOKEN empty, Meta channels disabled")
        return
    router = ChannelRouter.get()
    router.register_channel(MessengerChannel())
    router.register_channel(MessengerChannel(name=INSTAGRAM))
    router.register_channel(WhatsAppChannel())


def _init_channels(app: Application) -> None:
    """Register outbound channels."""
    router = ChannelRouter.get()
    router.register_channel(TelegramChannel(app.bot))
    init_meta_channels()
    logger.info("Channels initialized: %s", router.list_channels())


async def _post_init(app: Application) -> None:
    """Called after the Application is fully initialized (event loop running)."""
    global _web_server  # noqa: PLW0603
    await seed_profile()
    _web_server = WebServer()
    await _web_server.start()


async def _post_shutdown(app: Application) -> None:
    """Called during graceful shutdown."""
    if _web_server is not None:
        await _web_server.stop()


def create_app() -> Application:
    """Build and configure the Telegram application."""
    app = Application.builder().token(settings.telegram_bot_token).concurrent_updates(True).build()

    _init_channels(app)

    app.add_handler(CommandHandler("start", handle_start))
    app.add_handler(CommandHandler("status", handle_status))
    app.add_handler(CommandHandler("model", handle_model))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))
    app.add_handler(MessageHandler(filters.PHOTO | filters.Document.ALL, handle_upload))

    # Web server lifecycle hooks
    app.post_init = _post_init
    app.post_shutdown = _post_shutdown

    return app

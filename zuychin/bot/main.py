"""Zuychin entry point."""

import asyncio
import logging

from zuychin.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


async def _serve_http_only() -> None:
    """Run the web server until interrupted (no Telegram bot)."""
    from zuychin.bot.app import init_meta_channels, seed_profile
    from zuychin.web.server import WebServer

    await seed_profile()
    init_meta_channels()

    server = WebServer()
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


def main() -> None:
    """Start the web server, plus the Telegram bot when a token is set."""
    if not settings.telegram_bot_token:
        logger.info("TELEGRAM_BOT_TOKEN empty, starting Zuychin in HTTP-only mode...")
        try:
            asyncio.run(_serve_http_only())
        except KeyboardInterrupt:
            logger.info("Shutting down")
        return

    from zuychin.bot.app import create_app

    allowed = settings.get_allowed_user_ids()
    if not allowed:
        logger.warning("ALLOWED_USER_IDS is empty, bot will reject all messages")
    else:
        logger.info("Allowed user IDs: %s", allowed)

    logger.info("Starting Zuychin on Telegram with model %s...", settings.default_chat_model)
    app = create_app()
    app.run_polling()


if __name__ == "__main__":
    main()

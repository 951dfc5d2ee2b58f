"""Telegram access control: only allowlisted users reach the handlers."""

import functools
import logging
from collections.abc import Awaitable, Callable

from telegram import Update
from telegram.ext import ContextTypes

from zuychin.config import settings

logger = logging.getLogger(__name__)

Handler = Callable[[Update, ContextTypes.DEFAULT_TYPE], Awaitable[None]]


def _sender_id(update: Update) -> int | None:
    user = update.effective_user
    return user.id if user is not None else None


def is_allowed(update: Update) -> bool:
    """True when the update comes from a user in ALLOWED_USER_IDS.

    The allowlist is read from settings on every call. An empty list admits
    nobody.
    """
    allowed = settings.get_allowed_user_ids()
    if not allowed:
        logger.warning("ALLOWED_USER_IDS is empty, ignoring Telegram update")
        return False
    user_id = _sender_id(update)
    return user_id is not None and user_id in allowed


def require_allowed(handler: Handler) -> Handler:
    """Drop updates from anyone outside the allowlist before *handler* runs."""

    @functools.wraps(handler)
    async def guarded(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not is_allowed(update):
            logger.info("Ignored update from user %s", _sender_id(update))
            return
        await handler(update, context)

    return guarded

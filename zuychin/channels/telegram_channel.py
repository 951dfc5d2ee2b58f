"""Telegram implementation of the ChannelAdapter protocol."""

from __future__ import annotations

import logging

import telegram

from zuychin.channels.base import TELEGRAM
from zuychin.channels.splitter import split_message

logger = logging.getLogger(__name__)

TELEGRAM_MAX_LENGTH = 4096


class TelegramChannel:
    """Sends messages via the Telegram Bot API."""

    def __init__(self, bot: telegram.Bot) -> None:
        self._bot = bot

    @property
    def name(self) -> str:
        return TELEGRAM

    @property
    def max_length(self) -> int:
        return TELEGRAM_MAX_LENGTH

    async def send(self, target: str, text: str) -> bool:
        """Send text to a Telegram chat, one message per chunk."""
        try:
            for chunk in split_message(text, self.max_length):
                await self._bot.send_message(chat_id=int(target), text=chunk)
            return True
        except Exception:
            logger.exception("TelegramChannel.send failed for chat_id=%s", target)
            return False

"""ChannelRouter: singleton that dispatches outbound text to registered adapters."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from zuychin.channels.base import ChannelAdapter

logger = logging.getLogger(__name__)


class ChannelRouter:
    """Routes outbound messages to the adapter for a channel.

    Singleton accessed via ``ChannelRouter.get()``.
    """

    _instance: ChannelRouter | None = None

    def __init__(self) -> None:
        self._channels: dict[str, ChannelAdapter] = {}

    @classmethod
    def get(cls) -> ChannelRouter:
        """Return the singleton instance, creating it if needed."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset singleton (tests only)."""
        cls._instance = None

    def register_channel(self, channel: ChannelAdapter) -> None:
        """Register an adapter. Raises ValueError on duplicate name."""
        if channel.name in self._channels:
            msg = f"Channel '{channel.name}' is already registered"
            raise ValueError(msg)
        self._channels[channel.name] = channel

    def get_channel(self, name: str) -> ChannelAdapter | None:
        """Look up an adapter by channel name."""
        return self._channels.get(name)

    def list_channels(self) -> list[str]:
        """Names of all registered channels."""
        return list(self._channels.keys())

    async def send(self, channel: str, target: str, text: str, **options: Any) -> bool:
        """Send via the named channel. False when no adapter is registered.

        *options* are passed through to the adapter (e.g. WhatsApp's
        ``phone_number_id``).
        """
        adapter = self._channels.get(channel)
        if adapter is None:
            logger.warning("No adapter registered for channel=%s", channel)
            return False
        return await adapter.send(target, text, **options)

"""Channel adapter protocol and the normalized inbound message."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

WEB = "web"
TELEGRAM = "telegram"
MESSENGER = "messenger"
INSTAGRAM = "instagram"
WHATSAPP = "whatsapp"


@dataclass
class InboundMessage:
    """A channel event normalized for the pipeline.

    Attributes:
        sender_id: Channel-specific sender (chat id, PSID, phone number).
        channel: ``messenger``, ``instagram`` or ``whatsapp`` for Meta events.
        text: Message text, if any.
        attachment_url: Image URL (Messenger, Instagram) or WhatsApp media id.
            Stored with the inbound message, not downloaded.
        reply_to: Channel-specific routing extras (e.g. WhatsApp phone_number_id).
    """

    sender_id: str
    channel: str
    text: str | None = None
    attachment_url: str | None = None
    reply_to: str = ""


@runtime_checkable
class ChannelAdapter(Protocol):
    """Protocol all outbound channel adapters satisfy."""

    @property
    def name(self) -> str:
        """Unique channel identifier (e.g. 'telegram', 'whatsapp')."""
        ...

    @property
    def max_length(self) -> int:
        """Longest text one transport call may carry."""
        ...

    async def send(self, target: str, text: str) -> bool:
        """Send text, split into ordered chunks as needed. True on success."""
        ...

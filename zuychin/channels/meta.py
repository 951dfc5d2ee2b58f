"""Meta messaging adapters: Messenger, Instagram and WhatsApp Cloud API.

Covers the inbound side (signature gate + payload normalization) and the
outbound Graph API send calls.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Any

import aiohttp

from zuychin.channels.base import INSTAGRAM, MESSENGER, WHATSAPP, InboundMessage
from zuychin.channels.splitter import split_message
from zuychin.config import settings

logger = logging.getLogger(__name__)

GRAPH_API_BASE = "https://graph.facebook.com"

MESSENGER_MAX_LENGTH = 2000
WHATSAPP_MAX_LENGTH = 4096

_session: aiohttp.ClientSession | None = None


def _get_session() -> aiohttp.ClientSession:
    """Return (and lazily create) the shared aiohttp session."""
    global _session  # noqa: PLW0603
    if _session is None or _session.closed:
        _session = aiohttp.ClientSession()
    return _session


async def close_session() -> None:
    """Close the shared session on shutdown."""
    global _session  # noqa: PLW0603
    if _session is not None and not _session.closed:
        await _session.close()
    _session = None


def _graph_url(path: str) -> str:
    return f"{GRAPH_API_BASE}/{settings.meta_graph_api_version}/{path}"


# -- Inbound ---------------------------------------------------------------------


def verify_signature(raw_body: bytes, signature: str | None, app_secret: str | None = None) -> bool:
    """Check Meta's ``X-Hub-Signature-256`` header against the raw body."""
    secret = app_secret if app_secret is not None else settings.meta_app_secret
    if not signature or not secret:
        return False
    expected = "sha256=" + hmac.new(secret.encode(), raw_body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(signature.encode(), expected.encode())


def _parse_page_events(body: dict[str, Any], channel: str) -> list[InboundMessage]:
    messages: list[InboundMessage] = []
    for entry in body.get("entry") or []:
        for event in entry.get("messaging") or []:
            sender = event.get("sender") or {}
            message = event.get("message")
            if not sender.get("id") or not message:
                continue

            text = message.get("text") if isinstance(message.get("text"), str) else None
            image_url = None
            for attachment in message.get("attachments") or []:
                if attachment.get("type") == "image":
                    image_url = (attachment.get("payload") or {}).get("url")
                    break

            if text or image_url:
                messages.append(
                    InboundMessage(
                        sender_id=sender["id"],
                        channel=channel,
                        text=text,
                        attachment_url=image_url,
                    )
                )
    return messages


def _parse_whatsapp_changes(body: dict[str, Any]) -> list[InboundMessage]:
    messages: list[InboundMessage] = []
    for entry in body.get("entry") or []:
        for change in entry.get("changes") or []:
            value = change.get("value")
            if not value:
                continue
            phone_number_id = (value.get("metadata") or {}).get("phone_number_id", "")

            for msg in value.get("messages") or []:
                text = None
                media_ref = None
                if msg.get("type") == "text":
                    text = (msg.get("text") or {}).get("body")
                elif msg.get("type") == "image":
                    # A media id; downloading needs a separate Graph API call.
                    media_ref = (msg.get("image") or {}).get("id")

                if msg.get("from") and (text or media_ref):
                    messages.append(
                        InboundMessage(
                            sender_id=msg["from"],
                            channel=WHATSAPP,
                            text=text,
                            attachment_url=media_ref,
                            reply_to=phone_number_id,
                        )
                    )
    return messages


def parse_meta_webhook(body: dict[str, Any]) -> list[InboundMessage]:
    """Normalize a Messenger / Instagram / WhatsApp webhook payload."""
    obj = body.get("object")
    if obj == "page":
        return _parse_page_events(body, MESSENGER)
    if obj == "instagram":
        return _parse_page_events(body, INSTAGRAM)
    if obj == "whatsapp_business_account":
        return _parse_whatsapp_changes(body)
    return []


# -- Outbound --------------------------------------------------------------------


async def _post(url: str, payload: dict[str, Any], *, params=None, headers=None) -> bool:
    session = _get_session()
    try:
        async with session.post(url, json=payload, params=params, headers=headers) as resp:
            if resp.status == 200:
                return True
            text = await resp.text()
            logger.error("Meta send failed: status=%d body=%s", resp.status, text[:200])
            return False
    except Exception:
        logger.exception("Meta send failed (network error)")
        return False


class MessengerChannel:
    """Messenger / Instagram Send API (same endpoint, page access token)."""

    def __init__(self, name: str = MESSENGER) -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def max_length(self) -> int:
        return MESSENGER_MAX_LENGTH

    async def send(self, target: str, text: str) -> bool:
        """Send text to a page-scoped user id, one request per chunk."""
        for chunk in split_message(text, self.max_length):
            ok = await _post(
                _graph_url("me/messages"),
                {"recipient": {"id": target}, "message": {"text": chunk}},
                params={"access_token": settings.meta_page_access_token},
            )
            if not ok:
                return False
        logger.info("%s reply sent to %s (%d chars)", self._name, target, len(text))
        return True


class WhatsAppChannel:
    """WhatsApp Cloud API text messages."""

    @property
    def name(self) -> str:
        return WHATSAPP

    @property
    def max_length(self) -> int:
        return WHATSAPP_MAX_LENGTH

    async def send(self, target: str, text: str, *, phone_number_id: str | None = None) -> bool:
        """Send text to a phone number from the given business number."""
        sender_number = phone_number_id or settings.meta_whatsapp_phone_number_id
        if not sender_number:
            logger.error("WhatsApp send skipped: no phone_number_id")
            return False

        for chunk in split_message(text, self.max_length):
            ok = await _post(
                _graph_url(f"{sender_number}/messages"),
                {
                    "messaging_product": "whatsapp",
                    "to": target,
                    "type": "text",
                    "text": {"body": chunk},
                },
                headers={"Authorization": f"Bearer {settings.meta_page_access_token}"},
            )
            if not ok:
                return False
        logger.info("WhatsApp reply sent to %s (%d chars)", target, len(text))
        return True

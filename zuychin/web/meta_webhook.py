"""Meta webhook endpoint (Messenger, Instagram, WhatsApp).

GET answers the subscription handshake. POST is gated on the
``X-Hub-Signature-256`` HMAC, then acknowledged with 200 right away; each
parsed message runs through the pipeline in the background and the reply
goes back out through the ChannelRouter.
"""

from __future__ import annotations

import json
import logging

from aiohttp import web

from zuychin.channels.base import WHATSAPP, InboundMessage
from zuychin.channels.meta import parse_meta_webhook, verify_signature
from zuychin.channels.router import ChannelRouter
from zuychin.config import settings
from zuychin.pipeline.background import background
from zuychin.pipeline.controller import PipelineError, rag_chat

logger = logging.getLogger(__name__)

IMAGE_PLACEHOLDER = "[Image received]"


async def handle_verify(request: web.Request) -> web.Response:
    """GET /webhooks/meta: subscription verification handshake."""
    mode = request.query.get("hub.mode")
    token = request.query.get("hub.verify_token")
    challenge = request.query.get("hub.challenge", "")

    if mode == "subscribe" and settings.meta_verify_token and token == settings.meta_verify_token:
        logger.info("Meta webhook verified")
        return web.Response(text=challenge)

    logger.warning("Meta webhook verification failed: token mismatch")
    return web.json_response({"error": "Forbidden"}, status=403)


async def process_inbound(message: InboundMessage) -> None:
    """Run one Meta message through the pipeline and send the reply."""
    text = message.text or IMAGE_PLACEHOLDER
    logger.info("%s message from %s: %s", message.channel, message.sender_id, text[:80])

    try:
        result = await rag_chat(text, message.channel, image_url=message.attachment_url)
        reply = result.reply
    except PipelineError as exc:
        reply = str(exc)

    options = {"phone_number_id": message.reply_to} if message.channel == WHATSAPP else {}
    sent = await ChannelRouter.get().send(message.channel, message.sender_id, reply, **options)
    if not sent:
        logger.error("Failed to deliver %s reply to %s", message.channel, message.sender_id)


async def handle_event(request: web.Request) -> web.Response:
    """POST /webhooks/meta: signature gate, then background processing."""
    raw_body = await request.read()

    if settings.meta_verify_signatures:
        signature = request.headers.get("X-Hub-Signature-256")
        if not verify_signature(raw_body, signature):
            logger.warning("Meta webhook rejected: invalid signature")
            return web.json_response({"error": "Invalid signature"}, status=401)

    try:
        body = json.loads(raw_body)
    except ValueError:
        logger.warning("Meta webhook bad request: invalid JSON")
        return web.json_response({"status": "error"})

    messages = parse_meta_webhook(body) if isinstance(body, dict) else []
    for message in messages:
        background.spawn(
            process_inbound(message), name=f"meta-{message.channel}-{message.sender_id}"
        )

    return web.json_response({"status": "ok"})

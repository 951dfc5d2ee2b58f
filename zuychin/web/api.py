"""JSON API handlers: web chat, conversations, admin and cron."""

from __future__ import annotations

import logging
import time
from typing import Any

from aiohttp import web

from zuychin.channels.attachments import (
    Attachment,
    InboundValidationError,
    decode_attachment,
    validate_message,
)
from zuychin.channels.base import TELEGRAM, WEB
from zuychin.config import settings
from zuychin.conversations.store import ConversationStore
from zuychin.llm.models import ModelManager, friendly
from zuychin.memory.store import MemoryStore
from zuychin.pipeline.controller import PipelineError, rag_chat
from zuychin.proactive import DAILY_CHECK, generate_proactive
from zuychin.profiles.store import ProfileStore

logger = logging.getLogger(__name__)

CHAT_CHANNELS = (WEB, TELEGRAM)
MAX_SYSTEM_PROMPT_LENGTH = 5000
CONVERSATION_LIST_LIMIT = 50

STARTED_AT_KEY = web.AppKey("started_at", float)


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


async def _json_body(request: web.Request) -> dict[str, Any] | None:
    try:
        body = await request.json()
    except Exception:
        return None
    return body if isinstance(body, dict) else None


def _parse_attachments(body: dict[str, Any]) -> list[Attachment]:
    attachments: list[Attachment] = []

    file = body.get("file")
    if file:
        if not isinstance(file, dict):
            raise InboundValidationError("Invalid file payload.")
        size = file.get("size")
        attachments.append(
            decode_attachment(
                file.get("name") or "attachment",
                file.get("mimeType") or "",
                file.get("base64") or "",
                declared_size=size if isinstance(size, int) else None,
            )
        )

    image_b64 = body.get("imageBase64")
    if image_b64:
        attachments.append(decode_attachment("image.jpg", "image/jpeg", image_b64))

    return attachments


# -- Chat ------------------------------------------------------------------------


async def handle_chat(request: web.Request) -> web.Response:
    """POST /api/chat: run the pipeline for one web (or bot) message."""
    body = await _json_body(request)
    if body is None:
        return _error("invalid JSON", 400)

    try:
        message = validate_message(body.get("message"))
        channel = body.get("channel") or WEB
        if channel not in CHAT_CHANNELS:
            raise InboundValidationError(
                f"Invalid channel. Must be one of: {', '.join(CHAT_CHANNELS)}"
            )
        attachments = _parse_attachments(body)
    except InboundValidationError as exc:
        logger.info("Chat request rejected: %s", exc.reason)
        return _error(exc.reason, 400)

    try:
        result = await rag_chat(
            message,
            channel,
            conversation_id=body.get("conversationId") or None,
            attachments=attachments,
            thinking=bool(body.get("thinking", False)),
        )
    except PipelineError as exc:
        return _error(str(exc), 500)

    return web.json_response({"reply": result.reply, "messageId": result.message_id})


# -- Conversations ---------------------------------------------------------------


async def handle_list_conversations(request: web.Request) -> web.Response:
    """GET /api/conversations[?id=...]: list threads, or one thread's messages."""
    store = ConversationStore.get()
    conversation_id = request.query.get("id")
    if conversation_id:
        messages = await store.get_conversation_messages(conversation_id)
        return web.json_response({"messages": [m.model_dump() for m in messages]})

    conversations = await store.list_conversations(CONVERSATION_LIST_LIMIT)
    return web.json_response({"conversations": [c.model_dump() for c in conversations]})


async def handle_create_conversation(request: web.Request) -> web.Response:
    """POST /api/conversations: start a new thread."""
    profile = await ProfileStore.get().get_default_profile()
    conversation = await ConversationStore.get().create_conversation(
        user_profile_id=profile.id if profile else None
    )
    return web.json_response(conversation.model_dump())


async def handle_delete_conversation(request: web.Request) -> web.Response:
    """DELETE /api/conversations?id=...: delete a thread and its messages."""
    conversation_id = request.query.get("id")
    if not conversation_id:
        return _error("Conversation ID is required.", 400)

    await ConversationStore.get().delete_conversation(conversation_id)
    return web.json_response({"success": True})


# -- Admin -----------------------------------------------------------------------


async def handle_update_personality(request: web.Request) -> web.Response:
    """PUT /api/admin/personality: replace the owner's system prompt."""
    body = await _json_body(request)
    if body is None:
        return _error("invalid JSON", 400)

    prompt = body.get("systemPrompt")
    if not isinstance(prompt, str) or not prompt.strip():
        return _error("System prompt is required.", 400)
    if len(prompt) > MAX_SYSTEM_PROMPT_LENGTH:
        return _error(
            f"System prompt is too long (max {MAX_SYSTEM_PROMPT_LENGTH:,} characters).", 400
        )

    profiles = ProfileStore.get()
    profile = await profiles.get_default_profile()
    if profile is None:
        return _error("No profile found.", 404)

    await profiles.update_system_prompt(profile.id, prompt.strip())
    logger.info("System prompt updated (%d chars)", len(prompt.strip()))
    return web.json_response({"success": True})


async def handle_status(request: web.Request) -> web.Response:
    """GET /api/admin/status: health and usage stats."""
    profile = await ProfileStore.get().get_default_profile()
    stats = await ConversationStore.get().message_stats()
    memories = await MemoryStore.get().count()
    started_at = request.app.get(STARTED_AT_KEY, time.monotonic())

    return web.json_response({
        "status": "online",
        "model": friendly(ModelManager.get().get_chat_model()),
        "profile": (
            {"id": profile.id, "displayName": profile.display_name} if profile else None
        ),
        "stats": {
            "totalMessages": stats["total_messages"],
            "totalMemories": memories,
            "lastActivity": stats["last_activity"],
            "lastChannel": stats["last_channel"],
            "channelBreakdown": stats["channel_breakdown"],
        },
        "uptime": round(time.monotonic() - started_at, 1),
    })


# -- Cron ------------------------------------------------------------------------


async def handle_proactive(request: web.Request) -> web.Response:
    """POST /api/cron/proactive: generate a briefing, check-in or reminder."""
    if settings.cron_secret:
        if request.headers.get("Authorization", "") != f"Bearer {settings.cron_secret}":
            logger.warning("Proactive cron rejected: bad authorization")
            return _error("Unauthorized", 401)

    body = await _json_body(request) if request.can_read_body else {}
    if body is None:
        return _error("invalid JSON", 400)

    try:
        result = await generate_proactive(
            body.get("type") or DAILY_CHECK,
            sender_id=body.get("senderId"),
            phone_number_id=body.get("phoneNumberId"),
            reminder_text=body.get("reminderText"),
        )
    except ValueError as exc:
        return _error(str(exc), 400)
    except Exception:
        logger.exception("Proactive check failed")
        return _error("Proactive check failed.", 500)

    if result.skipped:
        return web.json_response({"message": result.note, "skipped": True, "type": result.kind})

    return web.json_response({
        "message": result.message,
        "delivered": result.delivered,
        "channel": result.channel,
        "type": result.kind,
    })

"""Telegram message handlers: commands, text and uploads into the pipeline."""

import asyncio
import contextlib
import logging
import mimetypes
import time

from telegram import Update
from telegram.constants import ChatAction
from telegram.ext import ContextTypes

from zuychin.bot.security import require_allowed
from zuychin.channels.attachments import (
    Attachment,
    InboundValidationError,
    validate_attachment,
    validate_message,
)
from zuychin.channels.base import TELEGRAM
from zuychin.channels.router import ChannelRouter
from zuychin.conversations.store import ConversationStore
from zuychin.llm.models import MODEL_MAP, ModelManager, friendly
from zuychin.memory.store import MemoryStore
from zuychin.pipeline.controller import PipelineError, rag_chat

logger = logging.getLogger(__name__)

# Telegram's typing indicator lasts about 5 seconds.
TYPING_REFRESH_SECONDS = 4.0
_MODEL_OPTIONS = ", ".join(MODEL_MAP)


@require_allowed
async def handle_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/start: introduce the assistant."""
    await update.message.reply_text(
        "Hi, I'm Zuychin. Ask me anything, send a photo or a file, "
        "or tell me something to remember."
    )


@require_allowed
async def handle_status(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/status: models, stored messages and memories, channel activity."""
    models = ModelManager.get()
    stats = await ConversationStore.get().message_stats()
    memories = await MemoryStore.get().count()
    breakdown = ", ".join(
        f"{channel} {count}" for channel, count in sorted(stats["channel_breakdown"].items())
    )

    await update.message.reply_text(
        "\n".join([
            "Zuychin is online",
            f"Models: chat={friendly(models.get_chat_model())}, "
            f"summary={friendly(models.get_summary_model())}",
            f"Messages: {stats['total_messages']} ({breakdown or 'none yet'})",
            f"Memories: {memories}",
            f"Last activity: {stats['last_activity'] or 'never'}"
            + (f" via {stats['last_channel']}" if stats["last_channel"] else ""),
        ])
    )


@require_allowed
async def handle_model(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/model [name]: show the active models, or switch the chat model."""
    models = ModelManager.get()
    if not context.args:
        await update.message.reply_text(
            f"Chat: {friendly(models.get_chat_model())}\n"
            f"Summary: {friendly(models.get_summary_model())}\n"
            f"Switch with /model <{_MODEL_OPTIONS.replace(', ', '|')}>"
        )
        return

    requested = context.args[0]
    if models.set_chat_model(requested) is None:
        await update.message.reply_text(
            f"I don't know the model '{requested}'. Try one of: {_MODEL_OPTIONS}"
        )
        return
    await update.message.reply_text(f"Now chatting with {friendly(models.get_chat_model())}.")


async def _keep_typing(context: ContextTypes.DEFAULT_TYPE, chat_id: int) -> None:
    while True:
        with contextlib.suppress(Exception):
            await context.bot.send_chat_action(chat_id=chat_id, action=ChatAction.TYPING)
        await asyncio.sleep(TYPING_REFRESH_SECONDS)


async def _process_message(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    user_message: str,
    attachments: list[Attachment] | None = None,
) -> None:
    """Shared path: run the pipeline with a typing indicator, send the reply."""
    chat_id = update.effective_chat.id
    typing = asyncio.create_task(_keep_typing(context, chat_id))

    try:
        result = await rag_chat(user_message, TELEGRAM, attachments=attachments or [])
        reply = result.reply
    except PipelineError as exc:
        reply = str(exc)
    finally:
        typing.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await typing

    sent = await ChannelRouter.get().send(TELEGRAM, str(chat_id), reply)
    if not sent:
        logger.error("Failed to deliver reply to chat %s", chat_id)


@require_allowed
async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle incoming text messages."""
    try:
        user_message = validate_message(update.message.text)
    except InboundValidationError as exc:
        await update.message.reply_text(exc.reason)
        return

    logger.info("Message from %s: %s", update.effective_chat.id, user_message[:80])
    await _process_message(update, context, user_message)


async def _download_attachment(message) -> Attachment | None:
    """Download a photo or document from a Telegram message.

    Returns None if the message carries neither. Raises
    InboundValidationError if the file is too large or of an
    unsupported type.
    """
    if message.photo:
        # Take the largest resolution (last in the list)
        photo = message.photo[-1]
        declared = photo.file_size
        filename = f"photo_{int(time.time())}.jpg"
        mime_type = "image/jpeg"
        source = photo
    elif message.document:
        doc = message.document
        declared = doc.file_size
        filename = doc.file_name or f"document_{int(time.time())}"
        mime_type = doc.mime_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        source = doc
    else:
        return None

    # Reject before downloading when Telegram already tells us the size.
    placeholder = Attachment(name=filename, mime_type=mime_type, data=b"")
    validate_attachment(placeholder, declared_size=declared)

    tg_file = await source.get_file()
    data = await tg_file.download_as_bytearray()
    return validate_attachment(Attachment(name=filename, mime_type=mime_type, data=bytes(data)))


@require_allowed
async def handle_upload(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle photo/document uploads and pass them to the pipeline as attachments."""
    try:
        attachment = await _download_attachment(update.message)
    except InboundValidationError as exc:
        await update.message.reply_text(exc.reason)
        return
    except Exception:
        logger.exception("Failed to download attachment")
        await update.message.reply_text("Something went wrong downloading that file.")
        return

    if attachment is None:
        return

    user_message = f"[File uploaded: {attachment.name} ({attachment.mime_type})]"
    if update.message.caption and update.message.caption.strip():
        try:
            user_message = validate_message(update.message.caption)
        except InboundValidationError as exc:
            await update.message.reply_text(exc.reason)
            return

    logger.info(
        "Upload from %s: %s (%s)", update.effective_chat.id, attachment.name, attachment.mime_type
    )
    await _process_message(update, context, user_message, [attachment])

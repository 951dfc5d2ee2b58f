"""The RAG chat pipeline: one inbound message in, one persisted reply out."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from zuychin.config import settings
from zuychin.conversations.store import ConversationStore
from zuychin.llm.prompt import format_memories
from zuychin.memory.embeddings import embed_text
from zuychin.memory.models import SOURCE_USER_MESSAGE
from zuychin.memory.store import MemoryStore
from zuychin.pipeline import orchestrator
from zuychin.pipeline.background import background
from zuychin.pipeline.compactor import compact
from zuychin.pipeline.dedup import should_store
from zuychin.pipeline.reranker import rerank
from zuychin.pipeline.retriever import retrieve_with_embedding
from zuychin.profiles.store import ProfileStore
from zuychin.tools.base import ToolContext

if TYPE_CHECKING:
    from collections.abc import Sequence

    from zuychin.channels.attachments import Attachment
    from zuychin.conversations.models import Message

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Something went wrong. Please try again."
TITLE_MAX_CHARS = 40


class PipelineError(Exception):
    """A turn could not produce a reply. ``str(exc)`` is safe to show users."""


@dataclass
class ChatResult:
    reply: str
    message_id: str


def derive_title(message: str) -> str:
    """First 40 characters of the message, with '...' if it was cut."""
    if len(message) > TITLE_MAX_CHARS:
        return message[:TITLE_MAX_CHARS] + "..."
    return message


async def _store_memory(
    content: str, embedding: list[float], channel: str, owner_id: str | None
) -> None:
    await MemoryStore.get().add(
        content,
        embedding,
        metadata={"source": SOURCE_USER_MESSAGE, "channel": channel},
        owner_id=owner_id,
    )


async def _fetch_history(
    channel: str, conversation_id: str | None, exclude_id: str
) -> list[Message]:
    messages = await ConversationStore.get().get_recent_messages(
        limit=settings.history_window + 1,
        channel=channel,
        conversation_id=conversation_id,
    )
    history = [m for m in messages if m.id != exclude_id]
    return history[-settings.history_window :]


async def _update_title(conversation_id: str, message: str) -> None:
    try:
        await ConversationStore.get().update_title(conversation_id, derive_title(message))
    except Exception:
        logger.warning("Title update failed for conversation %s", conversation_id, exc_info=True)


async def _process(
    message: str,
    channel: str,
    owner_id: str | None,
    conversation_id: str | None,
    attachments: Sequence[Attachment],
    thinking: bool,
    image_url: str | None,
) -> ChatResult:
    profile = await ProfileStore.get().get_default_profile()
    system_prompt = (profile.system_prompt if profile else None) or settings.default_system_prompt
    if owner_id is None and profile is not None:
        owner_id = profile.id

    conversations = ConversationStore.get()
    message_id = await conversations.save_message(
        role="user",
        content=message,
        channel=channel,
        conversation_id=conversation_id,
        user_profile_id=profile.id if profile else None,
        image_url=image_url,
    )

    (embedding, candidates), history = await asyncio.gather(
        retrieve_with_embedding(message, owner_id=owner_id),
        _fetch_history(channel, conversation_id, exclude_id=message_id),
    )

    ranked = rerank(candidates, message, settings.rerank_max_results)
    memory_section = format_memories(ranked) or None
    history_section = await compact(history) if history else None

    # The guard runs inline; only the write is detached.
    if embedding is not None and await should_store(embedding, owner_id):
        background.spawn(
            _store_memory(message, embedding, channel, owner_id),
            name=f"store-memory-{message_id}",
        )

    reply = await orchestrator.generate(
        system_prompt,
        message,
        memory_section=memory_section,
        history_section=history_section,
        attachments=attachments,
        thinking_enabled=thinking,
        tool_context=ToolContext(owner_id=owner_id, channel=channel),
    )

    await conversations.save_message(
        role="assistant",
        content=reply,
        channel=channel,
        conversation_id=conversation_id,
        user_profile_id=profile.id if profile else None,
    )

    if conversation_id:
        await _update_title(conversation_id, message)

    return ChatResult(reply=reply, message_id=message_id)


async def rag_chat(
    message: str,
    channel: str,
    *,
    owner_id: str | None = None,
    conversation_id: str | None = None,
    attachments: Sequence[Attachment] = (),
    thinking: bool = False,
    image_url: str | None = None,
) -> ChatResult:
    """Run the full pipeline for one inbound message.

    The inbound message is persisted before anything else, so it survives
    a failed turn. Returns the reply and the id of the persisted inbound
    message. Raises :class:`PipelineError` with a generic message on any
    fatal failure, including the per-turn wall-clock budget.
    *image_url* is a remote attachment reference stored with the inbound
    message.
    """
    logger.info("Pipeline start: channel=%s text=%s", channel, message[:80])
    try:
        async with asyncio.timeout(settings.pipeline_timeout_seconds):
            result = await _process(
                message, channel, owner_id, conversation_id, attachments, thinking, image_url
            )
    except TimeoutError as exc:
        logger.error("Pipeline timed out after %.0fs", settings.pipeline_timeout_seconds)
        raise PipelineError(FAILURE_MESSAGE) from exc
    except Exception as exc:
        logger.exception("Pipeline failed")
        raise PipelineError(FAILURE_MESSAGE) from exc

    logger.info("Pipeline done: channel=%s reply=%d chars", channel, len(result.reply))
    return result


async def ingest_knowledge(
    content: str,
    metadata: dict[str, str] | None = None,
    owner_id: str | None = None,
) -> str:
    """Embed and store *content* as a memory (no dedup). Returns its id."""
    embedding = await embed_text(content)
    return await MemoryStore.get().add(content, embedding, metadata=metadata, owner_id=owner_id)

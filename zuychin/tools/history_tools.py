"""Conversation history tools."""

import logging

from pydantic import Field

from zuychin.config import settings
from zuychin.conversations.store import ConversationStore
from zuychin.tools.base import ToolParams, ToolResult
from zuychin.tools.registry import registry

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 100


class RecentConversationsParams(ToolParams):
    limit: int | None = Field(
        default=None,
        ge=1,
        le=100,
        description="How many recent messages to return (default 10)",
    )


@registry.tool(
    name="get_recent_conversations",
    description=(
        "List the most recent conversation messages across all channels "
        "(web, Telegram, Messenger, Instagram, WhatsApp), oldest first."
    ),
    category="history",
    params_model=RecentConversationsParams,
)
async def get_recent_conversations(limit: int | None = None) -> ToolResult:
    try:
        messages = await ConversationStore.get().get_recent_messages(
            limit=limit or settings.recent_conversations_limit
        )
    except Exception:
        logger.exception("get_recent_conversations failed")
        return ToolResult(error="Failed to load recent conversations.")

    if not messages:
        return ToolResult(data={"conversations": "No recent conversations found."})

    lines = [
        f"[{m.channel}] {'User' if m.role == 'user' else 'Bot'}: {m.content[:_PREVIEW_CHARS]}"
        for m in messages
    ]
    return ToolResult(data={"conversations": "\n".join(lines), "count": len(messages)})

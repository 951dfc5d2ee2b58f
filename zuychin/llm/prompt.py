"""Prompt assembly: labeled sections plus binary attachment parts."""

from __future__ import annotations

import base64
import logging
import zoneinfo
from datetime import datetime
from typing import TYPE_CHECKING, Any

from zuychin.config import settings

if TYPE_CHECKING:
    from collections.abc import Sequence

    from zuychin.channels.attachments import Attachment
    from zuychin.memory.models import RetrievalCandidate

logger = logging.getLogger(__name__)

MEMORY_HEADING = "## Relevant Memories"
HISTORY_HEADING = "## Recent Conversation"
CURRENT_HEADING = "## Current Message"


def format_memories(candidates: Sequence[RetrievalCandidate]) -> str:
    """Render ranked memories as numbered lines (empty string if none)."""
    return "\n".join(
        f"[Memory {i}]: {candidate.content}" for i, candidate in enumerate(candidates, start=1)
    )


def current_time_line() -> str:
    tz = zoneinfo.ZoneInfo(settings.default_timezone)
    now = datetime.now(tz)
    return (
        f"Current time: {now.strftime('%A, %B %d, %Y %I:%M %p %Z')} "
        f"({settings.default_timezone})"
    )


def build_prompt_text(
    system_prompt: str,
    current_message: str,
    memory_section: str | None = None,
    history_section: str | None = None,
) -> str:
    """Join the prompt sections in their fixed order.

    System prompt, then memories (if any), then history (if any), then the
    current message verbatim.
    """
    sections = [f"{system_prompt}\n{current_time_line()}"]
    if memory_section:
        sections.append(f"{MEMORY_HEADING}\n{memory_section}")
    if history_section:
        sections.append(f"{HISTORY_HEADING}\n{history_section}")
    sections.append(f"{CURRENT_HEADING}\nUser: {current_message}")
    return "\n\n".join(sections)


def attachment_block(attachment: Attachment) -> dict[str, Any]:
    """Convert an attachment into a Claude content block tagged with its MIME type."""
    if attachment.mime_type.startswith("image/"):
        return {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": attachment.mime_type,
                "data": base64.b64encode(attachment.data).decode("ascii"),
            },
        }
    if attachment.mime_type == "application/pdf":
        return {
            "type": "document",
            "title": attachment.name,
            "source": {
                "type": "base64",
                "media_type": "application/pdf",
                "data": base64.b64encode(attachment.data).decode("ascii"),
            },
        }
    # Text-like formats are sent as plain-text documents.
    return {
        "type": "document",
        "title": attachment.name,
        "source": {
            "type": "text",
            "media_type": "text/plain",
            "data": attachment.data.decode("utf-8", errors="replace"),
        },
    }


def build_user_content(
    prompt_text: str, attachments: Sequence[Attachment] = ()
) -> list[dict[str, Any]]:
    """The first user turn: prompt text followed by attachment parts."""
    content: list[dict[str, Any]] = [{"type": "text", "text": prompt_text}]
    content.extend(attachment_block(a) for a in attachments)
    return content

"""History compaction: verbatim when short, summary + recent tail when long."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from zuychin.config import settings
from zuychin.llm.client import complete_text

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from zuychin.conversations.models import Message

    Summarizer = Callable[[Sequence[Message]], Awaitable[str]]

logger = logging.getLogger(__name__)

SUMMARY_HEADING = "### Summary"
RECENT_HEADING = "### Recent Messages"

# Character budget for the raw transcript tail when summarizing fails.
FALLBACK_TAIL_CHARS = 1500

_SUMMARY_PROMPT = (
    "Summarize the following conversation in 2-3 sentences. Keep names, "
    "decisions, and open questions. Reply with the summary only.\n\n{transcript}"
)


def render_transcript(messages: Sequence[Message]) -> str:
    """One ``"{Role}: {content}"`` line per message, in the given order."""
    return "\n".join(f"{m.speaker}: {m.content}" for m in messages)


def truncate_tail(text: str, max_chars: int = FALLBACK_TAIL_CHARS) -> str:
    """Keep the last *max_chars* characters, marking the cut with '...'."""
    if len(text) <= max_chars:
        return text
    return "..." + text[-max_chars:]


async def summarize_messages(messages: Sequence[Message]) -> str:
    """Default summarizer: a short summary from the summary model."""
    prompt = _SUMMARY_PROMPT.format(transcript=render_transcript(messages))
    summary = await complete_text([{"role": "user", "content": prompt}], max_tokens=300)
    return summary.strip()


async def compact(
    messages: Sequence[Message],
    summarizer: Summarizer = summarize_messages,
    *,
    threshold: int | None = None,
    recent_keep: int | None = None,
) -> str:
    """Render *messages* (oldest first) as a history section.

    At or below *threshold* messages, every message is rendered verbatim and
    the summarizer is not called. Above it, the older messages are
    summarized and the last *recent_keep* are rendered verbatim. When
    *recent_keep* covers the whole history there is nothing to summarize.
    """
    threshold = settings.compaction_threshold if threshold is None else threshold
    recent_keep = settings.compaction_recent_keep if recent_keep is None else recent_keep

    if len(messages) <= threshold:
        return render_transcript(messages)

    split_at = max(len(messages) - max(recent_keep, 0), 0)
    if split_at == 0:
        return render_transcript(messages)
    older, recent = messages[:split_at], messages[split_at:]

    try:
        summary = await summarizer(older)
        if not summary:
            msg = "summarizer returned empty text"
            raise ValueError(msg)
    except Exception:
        logger.exception("History summarization failed; using truncated transcript")
        summary = truncate_tail(render_transcript(older))

    logger.debug("Compacted %d older messages, kept %d verbatim", len(older), len(recent))
    return f"{SUMMARY_HEADING}\n{summary}\n\n{RECENT_HEADING}\n{render_transcript(recent)}"

"""Proactive messages: briefings, check-ins and reminders.

Triggered by an external cron hitting ``POST /api/cron/proactive``. The
text comes from a single-shot completion and is delivered to the
last-used Meta channel when the caller supplies a sender id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from zuychin.channels.base import INSTAGRAM, MESSENGER, WEB, WHATSAPP
from zuychin.channels.router import ChannelRouter
from zuychin.config import settings
from zuychin.conversations.store import ConversationStore
from zuychin.llm.client import complete_text
from zuychin.llm.prompt import current_time_line
from zuychin.profiles.store import ProfileStore

logger = logging.getLogger(__name__)

MORNING_BRIEFING = "morning_briefing"
DAILY_CHECK = "daily_check"
REMINDER = "reminder"
KINDS = (MORNING_BRIEFING, DAILY_CHECK, REMINDER)

RECENT_ACTIVITY_WINDOW = timedelta(hours=1)
_ACTIVITY_SAMPLE = 5

_PROMPTS = {
    MORNING_BRIEFING: (
        "It's morning. Write a brief, friendly morning briefing for the user: "
        "a warm greeting, today's date and day of the week, and any suggestions "
        "based on the recent conversation below. Keep it to 2-3 sentences."
    ),
    DAILY_CHECK: (
        "The user hasn't been active recently. Write a brief, non-intrusive "
        "check-in message. Keep it casual and short (1-2 sentences). Don't be pushy."
    ),
    REMINDER: 'Remind the user about: "{reminder_text}". Be friendly and concise.',
}


@dataclass
class ProactiveResult:
    kind: str
    message: str | None = None
    delivered: bool = False
    channel: str = WEB
    skipped: bool = False
    note: str = ""


def _is_recent(created_at: str, now: datetime) -> bool:
    try:
        ts = datetime.fromisoformat(created_at)
    except ValueError:
        return False
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return now - ts < RECENT_ACTIVITY_WINDOW


async def generate_proactive(
    kind: str,
    *,
    sender_id: str | None = None,
    phone_number_id: str | None = None,
    reminder_text: str | None = None,
) -> ProactiveResult:
    """Generate (and possibly deliver) one proactive message.

    Raises ValueError for an unknown *kind*, or a reminder without text.
    """
    if kind not in KINDS:
        msg = f"Unknown proactive type: {kind}"
        raise ValueError(msg)
    if kind == REMINDER and not (reminder_text and reminder_text.strip()):
        msg = "reminder_text is required for reminders"
        raise ValueError(msg)

    profile = await ProfileStore.get().get_default_profile()
    if profile is None:
        return ProactiveResult(kind=kind, skipped=True, note="No user profile found.")

    recent = await ConversationStore.get().get_recent_messages(limit=_ACTIVITY_SAMPLE)
    now = datetime.now(UTC)

    if kind == DAILY_CHECK and any(_is_recent(m.created_at, now) for m in recent):
        logger.info("Proactive daily_check skipped: user active within the last hour")
        return ProactiveResult(
            kind=kind, skipped=True, note="User is active, skipping proactive check."
        )

    instruction = _PROMPTS[kind].format(reminder_text=reminder_text or "")
    if kind == MORNING_BRIEFING and recent:
        transcript = "\n".join(f"{m.speaker}: {m.content[:200]}" for m in recent)
        instruction += f"\n\nRecent conversation:\n{transcript}"

    system = f"{profile.system_prompt or settings.default_system_prompt}\n{current_time_line()}"
    text = (await complete_text([{"role": "user", "content": instruction}], system=system)).strip()

    last_channel = recent[-1].channel if recent else WEB
    delivered = False
    if sender_id and last_channel in (MESSENGER, INSTAGRAM):
        delivered = await ChannelRouter.get().send(last_channel, sender_id, text)
    elif sender_id and last_channel == WHATSAPP:
        delivered = await ChannelRouter.get().send(
            WHATSAPP, sender_id, text, phone_number_id=phone_number_id
        )

    logger.info(
        "Proactive %s generated (%d chars), channel=%s delivered=%s",
        kind,
        len(text),
        last_channel,
        delivered,
    )
    return ProactiveResult(kind=kind, message=text, delivered=delivered, channel=last_channel)

"""ConversationStore: messages and conversations in libsql."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from zuychin.conversations.models import ROLES, Conversation, Message
from zuychin.db import connect

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS messages (
        id              TEXT PRIMARY KEY,
        role            TEXT NOT NULL,
        content         TEXT NOT NULL,
        channel         TEXT NOT NULL,
        image_url       TEXT,
        conversation_id TEXT,
        user_profile_id TEXT,
        created_at      TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_messages_created ON messages (created_at)",
    "CREATE INDEX IF NOT EXISTS idx_messages_conversation ON messages (conversation_id)",
    """
    CREATE TABLE IF NOT EXISTS conversations (
        id              TEXT PRIMARY KEY,
        title           TEXT NOT NULL,
        user_profile_id TEXT,
        created_at      TEXT NOT NULL,
        updated_at      TEXT NOT NULL
    )
    """,
)

_MESSAGE_COLUMNS = "id, role, content, channel, conversation_id, image_url, created_at"

DEFAULT_TITLE = "New Chat"


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _message_from_row(row: tuple) -> Message:
    return Message(
        id=row[0],
        role=row[1],
        content=row[2],
        channel=row[3],
        conversation_id=row[4],
        image_url=row[5],
        created_at=row[6],
    )


class ConversationStore:
    """Persists messages and conversation metadata.

    Singleton accessed via ``ConversationStore.get()``.  Pass an explicit
    *db_path* for test isolation.
    """

    _instance: ConversationStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path

    @classmethod
    def get(cls) -> ConversationStore:
        """Return the shared ConversationStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    def _connect(self):  # noqa: ANN202
        return connect(_SCHEMA, local_path_override=self._db_path)

    # -- Messages --------------------------------------------------------------

    async def save_message(
        self,
        *,
        role: str,
        content: str,
        channel: str,
        conversation_id: str | None = None,
        user_profile_id: str | None = None,
        image_url: str | None = None,
    ) -> str:
        """Insert a message and return its id.

        When the message belongs to a conversation, that conversation's
        ``updated_at`` is bumped.
        """
        if role not in ROLES:
            msg = f"Invalid role: {role}"
            raise ValueError(msg)

        message_id = uuid.uuid4().hex
        now = _now()
        async with self._connect() as db:
            await db.execute(
                """
                INSERT INTO messages
                    (id, role, content, channel, image_url, conversation_id,
                     user_profile_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    message_id,
                    role,
                    content,
                    channel,
                    image_url,
                    conversation_id,
                    user_profile_id,
                    now,
                ),
            )
            if conversation_id:
                await db.execute(
                    "UPDATE conversations SET updated_at = ? WHERE id = ?",
                    (now, conversation_id),
                )
            await db.commit()
        return message_id

    async def get_recent_messages(
        self,
        limit: int = 20,
        channel: str | None = None,
        conversation_id: str | None = None,
    ) -> list[Message]:
        """Return the newest *limit* messages in chronological order.

        A conversation filter takes priority over a channel filter.
        """
        sql = f"SELECT {_MESSAGE_COLUMNS} FROM messages"
        params: tuple[Any, ...] = ()
        if conversation_id:
            sql += " WHERE conversation_id = ?"
            params = (conversation_id,)
        elif channel:
            sql += " WHERE channel = ?"
            params = (channel,)
        sql += " ORDER BY created_at DESC, rowid DESC LIMIT ?"
        params += (limit,)

        async with self._connect() as db:
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [_message_from_row(row) for row in reversed(rows)]

    async def get_conversation_messages(self, conversation_id: str) -> list[Message]:
        """All messages of one conversation, oldest first."""
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {_MESSAGE_COLUMNS} FROM messages"
                " WHERE conversation_id = ? ORDER BY created_at ASC, rowid ASC",
                (conversation_id,),
            )
            rows = await cursor.fetchall()
        return [_message_from_row(row) for row in rows]

    async def message_stats(self) -> dict[str, Any]:
        """Counts for the admin status page."""
        async with self._connect() as db:
            cursor = await db.execute("SELECT COUNT(*) FROM messages")
            total = (await cursor.fetchone())[0]
            cursor = await db.execute(
                "SELECT created_at, channel FROM messages"
                " ORDER BY created_at DESC, rowid DESC LIMIT 1"
            )
            last = await cursor.fetchone()
            cursor = await db.execute(
                "SELECT channel, COUNT(*) FROM messages GROUP BY channel"
            )
            breakdown = await cursor.fetchall()
        return {
            "total_messages": int(total),
            "last_activity": last[0] if last else None,
            "last_channel": last[1] if last else None,
            "channel_breakdown": {row[0]: int(row[1]) for row in breakdown},
        }

    # -- Conversations ---------------------------------------------------------

    async def create_conversation(
        self, title: str | None = None, user_profile_id: str | None = None
    ) -> Conversation:
        """Create a conversation (titled "New Chat" unless given)."""
        now = _now()
        conversation = Conversation(
            id=uuid.uuid4().hex,
            title=title or DEFAULT_TITLE,
            created_at=now,
            updated_at=now,
        )
        async with self._connect() as db:
            await db.execute(
                """
                INSERT INTO conversations (id, title, user_profile_id, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (conversation.id, conversation.title, user_profile_id, now, now),
            )
            await db.commit()
        logger.info("Created conversation %s", conversation.id)
        return conversation

    async def list_conversations(self, limit: int = 20) -> list[Conversation]:
        """Conversations, most recently updated first."""
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT id, title, created_at, updated_at FROM conversations"
                " ORDER BY updated_at DESC LIMIT ?",
                (limit,),
            )
            rows = await cursor.fetchall()
        return [
            Conversation(id=row[0], title=row[1], created_at=row[2], updated_at=row[3])
            for row in rows
        ]

    async def update_title(self, conversation_id: str, title: str) -> bool:
        """Rename a conversation. Returns True if a row was updated."""
        async with self._connect() as db:
            cursor = await db.execute(
                "UPDATE conversations SET title = ? WHERE id = ?",
                (title, conversation_id),
            )
            await db.commit()
        return cursor.rowcount > 0

    async def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation and its messages. Returns True if it existed."""
        async with self._connect() as db:
            await db.execute(
                "DELETE FROM messages WHERE conversation_id = ?", (conversation_id,)
            )
            cursor = await db.execute(
                "DELETE FROM conversations WHERE id = ?", (conversation_id,)
            )
            await db.commit()
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted conversation %s", conversation_id)
        return deleted

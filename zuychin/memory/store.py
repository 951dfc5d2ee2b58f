"""MemoryStore: embedded memories in libsql with cosine-similarity search.

Embeddings are stored as JSON arrays. Search is an exact scan over the
owner's items, which is plenty for a single-person assistant.
"""

from __future__ import annotations

import json
import logging
import math
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from zuychin.db import connect
from zuychin.memory.models import MemoryItem

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS memory_items (
        id         TEXT PRIMARY KEY,
        content    TEXT NOT NULL,
        embedding  TEXT NOT NULL,
        metadata   TEXT NOT NULL DEFAULT '{}',
        owner_id   TEXT,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_memory_items_owner ON memory_items (owner_id)",
)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity of two equal-length vectors (0.0 for zero vectors)."""
    dot = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


class MemoryStore:
    """Persists MemoryItems and answers nearest-neighbour queries.

    Singleton accessed via ``MemoryStore.get()``.  Pass an explicit *db_path*
    for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    _instance: MemoryStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path

    @classmethod
    def get(cls) -> MemoryStore:
        """Return the shared MemoryStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    def _connect(self):  # noqa: ANN202
        return connect(_SCHEMA, local_path_override=self._db_path)

    # -- Write ---------------------------------------------------------------

    async def add(
        self,
        content: str,
        embedding: list[float],
        metadata: dict[str, str] | None = None,
        owner_id: str | None = None,
    ) -> str:
        """Insert a memory and return its id."""
        memory_id = uuid.uuid4().hex
        now = datetime.now(UTC).isoformat()
        async with self._connect() as db:
            await db.execute(
                """
                INSERT INTO memory_items (id, content, embedding, metadata, owner_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    memory_id,
                    content,
                    json.dumps(embedding),
                    json.dumps(metadata or {}),
                    owner_id,
                    now,
                ),
            )
            await db.commit()
        logger.debug("Stored memory %s: %s", memory_id, content[:80])
        return memory_id

    # -- Read ----------------------------------------------------------------

    async def search(
        self,
        query_embedding: list[float],
        *,
        match_threshold: float,
        match_count: int,
        owner_id: str | None = None,
    ) -> list[tuple[MemoryItem, float]]:
        """Return up to *match_count* (item, similarity) pairs, best first.

        Only items with similarity at or above *match_threshold* are
        returned. When *owner_id* is given, only that owner's items are
        considered.
        """
        if match_count <= 0:
            return []

        async with self._connect() as db:
            if owner_id is None:
                cursor = await db.execute(
                    "SELECT id, content, embedding, metadata, owner_id, created_at"
                    " FROM memory_items"
                )
            else:
                cursor = await db.execute(
                    "SELECT id, content, embedding, metadata, owner_id, created_at"
                    " FROM memory_items WHERE owner_id = ?",
                    (owner_id,),
                )
            rows = await cursor.fetchall()

        scored: list[tuple[MemoryItem, float]] = []
        for row in rows:
            item = self._from_row(row)
            if len(item.embedding) != len(query_embedding):
                logger.warning(
                    "Skipping memory %s: dimension %d != %d",
                    item.id,
                    len(item.embedding),
                    len(query_embedding),
                )
                continue
            similarity = cosine_similarity(query_embedding, item.embedding)
            if similarity >= match_threshold:
                scored.append((item, similarity))

        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[:match_count]

    async def count(self) -> int:
        """Total number of stored memories."""
        async with self._connect() as db:
            cursor = await db.execute("SELECT COUNT(*) FROM memory_items")
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    # -- Helpers -------------------------------------------------------------

    @staticmethod
    def _from_row(row: tuple) -> MemoryItem:
        # Positional indexing matches the SELECT column order.
        return MemoryItem(
            id=row[0],
            content=row[1],
            embedding=json.loads(row[2]),
            metadata=json.loads(row[3] or "{}"),
            owner_id=row[4],
            created_at=row[5],
        )

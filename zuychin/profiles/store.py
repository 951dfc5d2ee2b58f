"""ProfileStore: owner profile and system-prompt override."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from zuychin.db import connect

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS profiles (
        id            TEXT PRIMARY KEY,
        display_name  TEXT NOT NULL,
        system_prompt TEXT,
        preferences   TEXT NOT NULL DEFAULT '{}',
        created_at    TEXT NOT NULL
    )
    """,
)


class Profile(BaseModel):
    """The assistant owner's profile."""

    id: str
    display_name: str
    system_prompt: str | None = None
    preferences: dict[str, Any] = Field(default_factory=dict)


class ProfileStore:
    """Reads and updates the (single) owner profile.

    Singleton accessed via ``ProfileStore.get()``.
    """

    _instance: ProfileStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path

    @classmethod
    def get(cls) -> ProfileStore:
        """Return the shared ProfileStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    def _connect(self):  # noqa: ANN202
        return connect(_SCHEMA, local_path_override=self._db_path)

    async def get_default_profile(self) -> Profile | None:
        """Return the first profile, or None if none exists."""
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT id, display_name, system_prompt, preferences FROM profiles"
                " ORDER BY created_at ASC LIMIT 1"
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        return Profile(
            id=row[0],
            display_name=row[1],
            system_prompt=row[2],
            preferences=json.loads(row[3] or "{}"),
        )

    async def ensure_default_profile(self, display_name: str = "Owner") -> Profile:
        """Return the default profile, creating one on first run."""
        profile = await self.get_default_profile()
        if profile is not None:
            return profile

        profile = Profile(id=uuid.uuid4().hex, display_name=display_name)
        async with self._connect() as db:
            await db.execute(
                """
                INSERT INTO profiles (id, display_name, system_prompt, preferences, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (profile.id, display_name, None, "{}", datetime.now(UTC).isoformat()),
            )
            await db.commit()
        logger.info("Created default profile %s", profile.id)
        return profile

    async def update_system_prompt(self, profile_id: str, system_prompt: str) -> bool:
        """Set the profile's system prompt. Returns True if the profile exists."""
        async with self._connect() as db:
            cursor = await db.execute(
                "UPDATE profiles SET system_prompt = ? WHERE id = ?",
                (system_prompt, profile_id),
            )
            await db.commit()
        updated = cursor.rowcount > 0
        if updated:
            logger.info("Updated system prompt for profile %s", profile_id)
        return updated

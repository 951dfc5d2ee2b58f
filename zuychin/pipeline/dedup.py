"""Deduplication guard for auto-captured memories."""

from __future__ import annotations

import logging

from zuychin.config import settings
from zuychin.memory.store import MemoryStore

logger = logging.getLogger(__name__)


async def should_store(
    embedding: list[float],
    owner_id: str | None = None,
    threshold: float | None = None,
) -> bool:
    """True unless a near-identical memory already exists.

    A heuristic: one similarity lookup at a high threshold, capped at a
    single match. Answers True when the search itself fails.
    """
    try:
        matches = await MemoryStore.get().search(
            embedding,
            match_threshold=settings.dedup_threshold if threshold is None else threshold,
            match_count=1,
            owner_id=owner_id,
        )
    except Exception:
        logger.exception("Dedup search failed; storing anyway")
        return True

    if matches:
        item, similarity = matches[0]
        logger.info("Skipping duplicate memory (%.3f similar to %s)", similarity, item.id)
        return False
    return True

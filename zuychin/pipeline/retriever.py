"""Memory retrieval: embed the query and pull similar memories.

Retrieval is best-effort. Any embedding or search failure is logged and
turns into an empty result so the reply path keeps going.
"""

from __future__ import annotations

import logging

from zuychin.config import settings
from zuychin.memory.embeddings import embed_text
from zuychin.memory.models import RetrievalCandidate
from zuychin.memory.store import MemoryStore

logger = logging.getLogger(__name__)


async def retrieve_with_embedding(
    query: str,
    *,
    owner_id: str | None = None,
    threshold: float | None = None,
    count: int | None = None,
) -> tuple[list[float] | None, list[RetrievalCandidate]]:
    """Like :func:`retrieve` but also hands back the query embedding.

    The embedding is ``None`` when embedding failed; it is still returned
    when only the search failed so callers can reuse it.
    """
    try:
        embedding = await embed_text(query)
    except Exception:
        logger.exception("Embedding failed for query: %s", query[:80])
        return None, []

    try:
        matches = await MemoryStore.get().search(
            embedding,
            match_threshold=settings.retrieval_match_threshold if threshold is None else threshold,
            match_count=settings.retrieval_match_count if count is None else count,
            owner_id=owner_id,
        )
    except Exception:
        logger.exception("Memory search failed")
        return embedding, []

    candidates = [RetrievalCandidate(item=item, similarity=sim) for item, sim in matches]
    logger.debug("Retrieved %d candidates for: %s", len(candidates), query[:80])
    return embedding, candidates


async def retrieve(
    query: str,
    *,
    owner_id: str | None = None,
    threshold: float | None = None,
    count: int | None = None,
) -> list[RetrievalCandidate]:
    """Return up to *count* memories at or above *threshold* similarity."""
    _, candidates = await retrieve_with_embedding(
        query, owner_id=owner_id, threshold=threshold, count=count
    )
    return candidates

"""Text embeddings via Google Gemini.

Every vector leaving this module has exactly ``settings.embedding_dimensions``
entries; callers never resize.
"""

from __future__ import annotations

import logging

from google import genai
from google.genai import types
from tenacity import AsyncRetrying, stop_after_attempt, wait_fixed

from zuychin.config import settings

logger = logging.getLogger(__name__)

_client: genai.Client | None = None


def _get_client() -> genai.Client:
    """Lazily initialize the GenAI client."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = genai.Client(api_key=settings.gemini_api_key)
    return _client


def fit_dimensions(values: list[float], dimensions: int | None = None) -> list[float]:
    """Truncate (or zero-pad) a vector to the store's fixed width."""
    width = dimensions or settings.embedding_dimensions
    if len(values) >= width:
        return list(values[:width])
    return list(values) + [0.0] * (width - len(values))


async def embed_text(text: str) -> list[float]:
    """Embed a single text. Raises on backend failure after retries."""
    client = _get_client()
    retryer = AsyncRetrying(stop=stop_after_attempt(2), wait=wait_fixed(0.2), reraise=True)

    async for attempt in retryer:
        with attempt:
            result = await client.aio.models.embed_content(
                model=settings.embedding_model,
                contents=text,
                config=types.EmbedContentConfig(
                    task_type="RETRIEVAL_DOCUMENT",
                    output_dimensionality=settings.embedding_dimensions,
                ),
            )
            embeddings = result.embeddings or []
            if not embeddings or embeddings[0].values is None:
                msg = "No embedding returned from API"
                raise ValueError(msg)
            values = embeddings[0].values

    if len(values) != settings.embedding_dimensions:
        logger.debug(
            "Resizing embedding from %d to %d dims", len(values), settings.embedding_dimensions
        )
    return fit_dimensions(values)

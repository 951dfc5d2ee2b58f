"""Tests for memory retrieval."""

from unittest.mock import AsyncMock, patch

import pytest

from zuychin.pipeline.retriever import retrieve, retrieve_with_embedding


async def test_retrieve_returns_candidates(stores, fake_embed, embedding_of) -> None:
    await stores.memory.add("green tea", embedding_of("green tea"), owner_id="me")
    await stores.memory.add("motorbikes", embedding_of("motorbikes"), owner_id="me")

    candidates = await retrieve("green tea", owner_id="me", threshold=0.65, count=8)

    assert [c.content for c in candidates] == ["green tea"]
    assert candidates[0].similarity == pytest.approx(1.0)


async def test_retrieve_scoped_to_owner(stores, fake_embed, embedding_of) -> None:
    await stores.memory.add("green tea", embedding_of("green tea"), owner_id="them")
    assert await retrieve("green tea", owner_id="me", threshold=0.5, count=8) == []


async def test_retrieve_embedding_failure_returns_empty() -> None:
    with patch(
        "zuychin.pipeline.retriever.embed_text",
        new_callable=AsyncMock,
        side_effect=RuntimeError("quota"),
    ):
        embedding, candidates = await retrieve_with_embedding("hello")

    assert embedding is None
    assert candidates == []


async def test_retrieve_search_failure_keeps_embedding() -> None:
    fake_store = AsyncMock()
    fake_store.search.side_effect = RuntimeError("db down")
    with (
        patch(
            "zuychin.pipeline.retriever.embed_text",
            new_callable=AsyncMock,
            return_value=[0.1, 0.2],
        ),
        patch("zuychin.pipeline.retriever.MemoryStore.get", return_value=fake_store),
    ):
        embedding, candidates = await retrieve_with_embedding("hello")

    assert embedding == [0.1, 0.2]
    assert candidates == []


async def test_retrieve_uses_configured_defaults() -> None:
    fake_store = AsyncMock()
    fake_store.search.return_value = []
    with (
        patch("zuychin.pipeline.retriever.embed_text", new_callable=AsyncMock, return_value=[1.0]),
        patch("zuychin.pipeline.retriever.MemoryStore.get", return_value=fake_store),
    ):
        await retrieve("hello")

    kwargs = fake_store.search.call_args.kwargs
    assert kwargs["match_threshold"] == 0.65
    assert kwargs["match_count"] == 8

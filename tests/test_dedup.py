"""Tests for the memory deduplication guard."""

from unittest.mock import AsyncMock, patch

import pytest

from zuychin.pipeline.dedup import should_store


async def test_stores_when_no_match(stores) -> None:
    await stores.memory.add("other", [0.0, 1.0], owner_id="me")
    assert await should_store([1.0, 0.0], owner_id="me") is True


async def test_skips_near_duplicate(stores) -> None:
    await stores.memory.add("same", [1.0, 0.0], owner_id="me")
    assert await should_store([1.0, 0.01], owner_id="me") is False


async def test_duplicate_of_other_owner_does_not_count(stores) -> None:
    await stores.memory.add("same", [1.0, 0.0], owner_id="them")
    assert await should_store([1.0, 0.0], owner_id="me") is True


async def test_search_uses_high_threshold_and_single_result() -> None:
    fake_store = AsyncMock()
    fake_store.search.return_value = []
    with patch("zuychin.pipeline.dedup.MemoryStore.get", return_value=fake_store):
        assert await should_store([1.0], owner_id="me") is True

    kwargs = fake_store.search.call_args.kwargs
    assert kwargs["match_threshold"] == pytest.approx(0.95)
    assert kwargs["match_count"] == 1
    assert kwargs["owner_id"] == "me"


async def test_search_error_defaults_to_store() -> None:
    fake_store = AsyncMock()
    fake_store.search.side_effect = RuntimeError("db locked")
    with patch("zuychin.pipeline.dedup.MemoryStore.get", return_value=fake_store):
        assert await should_store([1.0]) is True

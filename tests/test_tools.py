"""Tests for the built-in tool handlers."""

from unittest.mock import AsyncMock, patch

from zuychin.tools import registry
from zuychin.tools.base import ToolContext
from zuychin.tools.history_tools import get_recent_conversations
from zuychin.tools.memory_tools import save_note, search_knowledge
from zuychin.tools.utility import get_current_time

# -- get_current_time --------------------------------------------------------


async def test_get_current_time_default_zone() -> None:
    result = await get_current_time()
    assert result.success
    assert result.data["timezone"] == "Australia/Sydney"
    for key in ("datetime", "date", "time", "day_of_week", "formatted"):
        assert key in result.data


async def test_get_current_time_explicit_zone() -> None:
    result = await get_current_time(timezone="UTC")
    assert result.success
    assert result.data["timezone"] == "UTC"
    assert result.data["datetime"].endswith("+00:00")


async def test_get_current_time_unknown_zone() -> None:
    result = await get_current_time(timezone="Mars/Olympus_Mons")
    assert not result.success
    assert "Mars/Olympus_Mons" in result.error


# -- search_knowledge --------------------------------------------------------


async def test_search_knowledge_finds_note(stores, fake_embed, embedding_of) -> None:
    await stores.memory.add(
        "passport expires in march",
        embedding_of("passport expires in march"),
        metadata={"source": "save_note"},
        owner_id="me",
    )

    result = await search_knowledge(
        query="passport expires in march", context=ToolContext(owner_id="me")
    )

    assert result.success
    assert result.data["results"][0]["content"] == "passport expires in march"
    assert result.data["results"][0]["source"] == "save_note"


async def test_search_knowledge_nothing_found(stores, fake_embed) -> None:
    result = await search_knowledge(query="anything", context=ToolContext(owner_id="me"))
    assert result.success
    assert result.data["results"] == []
    assert result.data["message"] == "No relevant knowledge found."


# -- save_note ---------------------------------------------------------------


async def test_save_note_stores_with_category(stores, fake_embed) -> None:
    result = await save_note(
        content="Dentist on Friday", category="todo", context=ToolContext(owner_id="me")
    )

    assert result.success
    assert result.data["saved"] is True
    assert result.data["category"] == "todo"
    assert await stores.memory.count() == 1


async def test_save_note_default_category(stores, fake_embed) -> None:
    result = await save_note(content="Likes jazz", context=ToolContext())
    assert result.data["category"] == "general"


async def test_save_note_embedding_failure(stores) -> None:
    with patch(
        "zuychin.tools.memory_tools.embed_text",
        new_callable=AsyncMock,
        side_effect=RuntimeError("quota"),
    ):
        result = await save_note(content="x", context=ToolContext())

    assert not result.success
    assert result.error == "Failed to save note."


# -- get_recent_conversations ------------------------------------------------


async def test_recent_conversations_empty(stores) -> None:
    result = await get_recent_conversations()
    assert result.data == {"conversations": "No recent conversations found."}


async def test_recent_conversations_formats_lines(stores) -> None:
    await stores.conversations.save_message(role="user", content="hi there", channel="telegram")
    await stores.conversations.save_message(role="assistant", content="x" * 150, channel="web")

    result = await get_recent_conversations(limit=5)

    lines = result.data["conversations"].splitlines()
    assert lines[0] == "[telegram] User: hi there"
    assert lines[1] == "[web] Bot: " + "x" * 100
    assert result.data["count"] == 2


async def test_recent_conversations_limit_validated() -> None:
    result = await registry.execute("get_recent_conversations", {"limit": 500})
    assert not result.success

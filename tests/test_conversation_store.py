"""Tests for ConversationStore: messages and conversations."""

from pathlib import Path

import pytest

from zuychin.conversations.store import DEFAULT_TITLE, ConversationStore

pytestmark = pytest.mark.usefixtures("_no_turso")


@pytest.fixture
def store(tmp_path: Path) -> ConversationStore:
    return ConversationStore(db_path=tmp_path / "test.db")


# -- Messages ------------------------------------------------------------------


async def test_save_and_fetch_recent(store: ConversationStore) -> None:
    first = await store.save_message(role="user", content="hi", channel="web")
    second = await store.save_message(role="assistant", content="hello", channel="web")

    messages = await store.get_recent_messages(limit=10)
    assert [m.id for m in messages] == [first, second]
    assert messages[0].speaker == "User"
    assert messages[1].speaker == "Assistant"


async def test_recent_returns_newest_window_in_order(store: ConversationStore) -> None:
    for i in range(5):
        await store.save_message(role="user", content=f"m{i}", channel="web")

    messages = await store.get_recent_messages(limit=3)
    assert [m.content for m in messages] == ["m2", "m3", "m4"]


async def test_recent_filters_by_channel(store: ConversationStore) -> None:
    await store.save_message(role="user", content="web msg", channel="web")
    await store.save_message(role="user", content="tg msg", channel="telegram")

    messages = await store.get_recent_messages(channel="telegram")
    assert [m.content for m in messages] == ["tg msg"]


async def test_conversation_filter_wins_over_channel(store: ConversationStore) -> None:
    conv = await store.create_conversation()
    await store.save_message(role="user", content="in conv", channel="web", conversation_id=conv.id)
    await store.save_message(role="user", content="loose", channel="web")

    messages = await store.get_recent_messages(channel="telegram", conversation_id=conv.id)
    assert [m.content for m in messages] == ["in conv"]


async def test_invalid_role_rejected(store: ConversationStore) -> None:
    with pytest.raises(ValueError, match="Invalid role"):
        await store.save_message(role="robot", content="x", channel="web")


async def test_message_stats(store: ConversationStore) -> None:
    await store.save_message(role="user", content="a", channel="web")
    await store.save_message(role="user", content="b", channel="whatsapp")
    await store.save_message(role="assistant", content="c", channel="whatsapp")

    stats = await store.message_stats()
    assert stats["total_messages"] == 3
    assert stats["last_channel"] == "whatsapp"
    assert stats["last_activity"]
    assert stats["channel_breakdown"] == {"web": 1, "whatsapp": 2}


async def test_message_stats_empty(store: ConversationStore) -> None:
    stats = await store.message_stats()
    assert stats["total_messages"] == 0
    assert stats["last_activity"] is None


# -- Conversations -------------------------------------------------------------


async def test_create_conversation_defaults_title(store: ConversationStore) -> None:
    conv = await store.create_conversation()
    assert conv.title == DEFAULT_TITLE
    listed = await store.list_conversations()
    assert [c.id for c in listed] == [conv.id]


async def test_saving_message_bumps_updated_at(store: ConversationStore) -> None:
    older = await store.create_conversation(title="older")
    newer = await store.create_conversation(title="newer")

    await store.save_message(role="user", content="x", channel="web", conversation_id=older.id)

    listed = await store.list_conversations()
    assert [c.id for c in listed] == [older.id, newer.id]


async def test_update_title(store: ConversationStore) -> None:
    conv = await store.create_conversation()
    assert await store.update_title(conv.id, "Renamed") is True
    assert (await store.list_conversations())[0].title == "Renamed"
    assert await store.update_title("missing", "x") is False


async def test_delete_conversation_removes_messages(store: ConversationStore) -> None:
    conv = await store.create_conversation()
    await store.save_message(role="user", content="x", channel="web", conversation_id=conv.id)

    assert await store.delete_conversation(conv.id) is True
    assert await store.get_conversation_messages(conv.id) == []
    assert await store.list_conversations() == []
    assert await store.delete_conversation(conv.id) is False

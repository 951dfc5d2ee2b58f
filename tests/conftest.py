"""Shared test fixtures."""

import hashlib
from dataclasses import dataclass
from unittest.mock import patch

import pytest

from zuychin.channels.router import ChannelRouter
from zuychin.conversations.store import ConversationStore
from zuychin.llm.models import ModelManager
from zuychin.memory.store import MemoryStore
from zuychin.pipeline.background import background
from zuychin.profiles.store import ProfileStore

EMBED_DIMS = 768


def fake_embedding(text: str) -> list[float]:
    """Deterministic bag-of-words vector: identical texts embed identically."""
    vec = [0.0] * EMBED_DIMS
    for token in text.lower().split():
        digest = hashlib.sha256(token.encode()).digest()
        vec[int.from_bytes(digest[:4], "big") % EMBED_DIMS] += 1.0
    return vec


async def _fake_embed_text(text: str) -> list[float]:
    return fake_embedding(text)


@dataclass
class Stores:
    memory: MemoryStore
    conversations: ConversationStore
    profiles: ProfileStore


@pytest.fixture(autouse=False)
def _no_turso(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure tests use local file, not remote Turso."""
    monkeypatch.setattr("zuychin.config.settings.turso_database_url", "")


@pytest.fixture
async def stores(tmp_path, _no_turso):
    """Install temp-file-backed store singletons."""
    db_path = tmp_path / "test.db"
    s = Stores(
        memory=MemoryStore(db_path=db_path),
        conversations=ConversationStore(db_path=db_path),
        profiles=ProfileStore(db_path=db_path),
    )
    MemoryStore._instance = s.memory
    ConversationStore._instance = s.conversations
    ProfileStore._instance = s.profiles
    yield s
    # Pending memory writes must land before the singletons go away.
    await background.drain()
    MemoryStore._reset()
    ConversationStore._reset()
    ProfileStore._reset()


@pytest.fixture
def embedding_of():
    """The vector the fake embedder produces for a text."""
    return fake_embedding


@pytest.fixture
def fake_embed():
    """Replace the Gemini embedding call everywhere it is used."""
    with (
        patch("zuychin.pipeline.retriever.embed_text", side_effect=_fake_embed_text) as m,
        patch("zuychin.pipeline.controller.embed_text", side_effect=_fake_embed_text),
        patch("zuychin.tools.memory_tools.embed_text", side_effect=_fake_embed_text),
    ):
        yield m


@pytest.fixture(autouse=True)
def _reset_singletons():
    yield
    ChannelRouter._reset()
    ModelManager._reset()

"""Tests for ProfileStore."""

from pathlib import Path

import pytest

from zuychin.profiles.store import ProfileStore

pytestmark = pytest.mark.usefixtures("_no_turso")


@pytest.fixture
def store(tmp_path: Path) -> ProfileStore:
    return ProfileStore(db_path=tmp_path / "test.db")


async def test_no_profile_initially(store: ProfileStore) -> None:
    assert await store.get_default_profile() is None


async def test_ensure_default_profile_is_idempotent(store: ProfileStore) -> None:
    first = await store.ensure_default_profile()
    second = await store.ensure_default_profile(display_name="Someone else")
    assert first.id == second.id
    assert second.display_name == "Owner"
    assert second.system_prompt is None


async def test_update_system_prompt(store: ProfileStore) -> None:
    profile = await store.ensure_default_profile()
    assert await store.update_system_prompt(profile.id, "Be terse.") is True

    reloaded = await store.get_default_profile()
    assert reloaded.system_prompt == "Be terse."


async def test_update_system_prompt_unknown_profile(store: ProfileStore) -> None:
    assert await store.update_system_prompt("nope", "x") is False

"""Tests for ChannelRouter."""

import pytest

from zuychin.channels.base import ChannelAdapter
from zuychin.channels.router import ChannelRouter

# -- Helpers -----------------------------------------------------------------


class FakeChannel:
    """Minimal adapter for testing."""

    def __init__(self, channel_name: str = "fake") -> None:
        self._name = channel_name
        self.sent: list[tuple[str, str, dict]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def max_length(self) -> int:
        return 100

    async def send(self, target: str, text: str, **options) -> bool:
        self.sent.append((target, text, options))
        return True


# -- Tests -------------------------------------------------------------------


def test_singleton() -> None:
    assert ChannelRouter.get() is ChannelRouter.get()


def test_fake_channel_satisfies_protocol() -> None:
    assert isinstance(FakeChannel(), ChannelAdapter)


def test_register_and_list() -> None:
    router = ChannelRouter.get()
    router.register_channel(FakeChannel("a"))
    router.register_channel(FakeChannel("b"))
    assert router.list_channels() == ["a", "b"]
    assert router.get_channel("a") is not None


def test_duplicate_registration_rejected() -> None:
    router = ChannelRouter.get()
    router.register_channel(FakeChannel("a"))
    with pytest.raises(ValueError, match="already registered"):
        router.register_channel(FakeChannel("a"))


async def test_send_routes_to_adapter() -> None:
    router = ChannelRouter.get()
    channel = FakeChannel("whatsapp")
    router.register_channel(channel)

    ok = await router.send("whatsapp", "+15550001", "hi", phone_number_id="pn1")

    assert ok is True
    assert channel.sent == [("+15550001", "hi", {"phone_number_id": "pn1"})]


async def test_send_unknown_channel_returns_false() -> None:
    assert await ChannelRouter.get().send("nowhere", "x", "hi") is False

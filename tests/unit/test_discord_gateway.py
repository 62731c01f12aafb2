from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from discord_exporter.core.exceptions import GuildNotFoundError
from discord_exporter.gateways import discord_gateway as dg
from discord_exporter.models.events import (
    EmojiRef,
    MessageCreated,
    ReactionAdded,
    ReactionRemoved,
    ReadyEvent,
)


class _UserStub:
    def __init__(self, tag: str):
        self.tag = tag

    def __str__(self) -> str:
        return self.tag


class _ReactionStub:
    def __init__(self, emoji, users):
        self.emoji = emoji
        self._users = users

    async def users(self):
        for user in self._users:
            yield user


class _PermissionsStub:
    def __init__(self, view: bool, history: bool):
        self.view_channel = view
        self.read_message_history = history


class _TextChannelStub:
    def __init__(self, id: int, name: str, view=True, history=True):
        self.id = id
        self.name = name
        self._perms = _PermissionsStub(view, history)

    def permissions_for(self, member):
        return self._perms

    def history(self, **kwargs):  # pragma: no cover - presence is what matters
        raise NotImplementedError


class _VoiceChannelStub:
    def __init__(self, id: int):
        self.id = id
        self.name = "voice"

    def permissions_for(self, member):
        return _PermissionsStub(True, True)


class _ClientStub:
    def __init__(self, guild=None):
        self.handlers = {}
        self.user = _UserStub("exporter#0001")
        self._guild = guild
        self.closed = False

    def event(self, coro):
        self.handlers[coro.__name__] = coro
        return coro

    def get_guild(self, guild_id):
        return self._guild

    def get_user(self, user_id):
        return None

    async def fetch_user(self, user_id):
        return _UserStub(f"user{user_id}")

    def is_closed(self):
        return self.closed

    async def close(self):
        self.closed = True


def _message(**overrides):
    data = dict(
        id=11,
        channel=SimpleNamespace(id=22),
        author=_UserStub("alice#0001"),
        content="hello",
        jump_url="https://discord.com/channels/1/22/11",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        attachments=[SimpleNamespace(id=5, url="https://cdn/x.png", width=10, height=20)],
        reactions=[_ReactionStub("🔥", [_UserStub("bob#0002")])],
        guild=SimpleNamespace(id=1),
    )
    data.update(overrides)
    return SimpleNamespace(**data)


def test_to_emoji_ref_variants():
    assert dg.to_emoji_ref("🔥") == EmojiRef(name="🔥")
    assert dg.to_emoji_ref(SimpleNamespace(name="blob", id=123)) == EmojiRef(
        name="blob", custom=True
    )
    assert dg.to_emoji_ref(SimpleNamespace(name="🔥", id=None)) == EmojiRef(name="🔥")


@pytest.mark.asyncio
async def test_to_incoming_message_with_reactions():
    msg = dg.to_incoming_message(_message(), with_reactions=True)

    assert msg.id == "11"
    assert msg.channel_id == "22"
    assert msg.author == "alice#0001"
    assert msg.url == "https://discord.com/channels/1/22/11"
    assert msg.attachments[0].id == "5"
    assert msg.attachments[0].height == 20
    assert msg.reactions[0].emoji == EmojiRef(name="🔥")
    assert await msg.reactions[0].fetch_users() == ["bob#0002"]


def test_live_messages_carry_no_reactions():
    msg = dg.to_incoming_message(_message(content=None))
    assert msg.reactions == ()
    assert msg.content == ""


def test_to_channel_ref_capabilities():
    me = object()
    assert dg.to_channel_ref(_TextChannelStub(1, "general"), me).crawlable
    assert not dg.to_channel_ref(_TextChannelStub(2, "secret", view=False), me).crawlable
    assert not dg.to_channel_ref(_TextChannelStub(3, "old", history=False), me).crawlable
    voice = dg.to_channel_ref(_VoiceChannelStub(4), me)
    assert voice.viewable and not voice.text_capable


@pytest.mark.asyncio
async def test_history_source_raises_when_guild_missing():
    source = dg.DiscordHistorySource(_ClientStub(guild=None), "1")
    with pytest.raises(GuildNotFoundError) as exc_info:
        await source.list_channels()
    assert exc_info.value.guild_id == "1"


@pytest.mark.asyncio
async def test_history_source_lists_channels():
    async def fetch_channels():
        return [_TextChannelStub(1, "general"), _VoiceChannelStub(2)]

    guild = SimpleNamespace(me=object(), fetch_channels=fetch_channels)
    source = dg.DiscordHistorySource(_ClientStub(guild=guild), "1")

    channels = await source.list_channels()
    assert [(c.id, c.crawlable) for c in channels] == [("1", True), ("2", False)]


def _gateway(dispatch, guild=None):
    client = _ClientStub(guild=guild)
    return dg.DiscordGateway(client, dispatch, guild_id="1"), client


@pytest.mark.asyncio
async def test_gateway_registers_handlers_and_forwards_messages():
    received = []

    async def dispatch(event):
        received.append(event)

    gateway, client = _gateway(dispatch)
    assert set(client.handlers) == {
        "on_ready",
        "on_message",
        "on_raw_reaction_add",
        "on_raw_reaction_remove",
    }

    await gateway.on_message(_message())
    await gateway.on_message(_message(guild=SimpleNamespace(id=999)))
    await gateway.on_message(_message(guild=None))

    assert len(received) == 1
    assert isinstance(received[0], MessageCreated)
    assert received[0].message.reactions == ()


@pytest.mark.asyncio
async def test_gateway_reaction_events_with_member_and_partial_user():
    received = []

    async def dispatch(event):
        received.append(event)

    gateway, _ = _gateway(dispatch)
    base = dict(message_id=1, channel_id=22, emoji="🔥", user_id=7, guild_id=1)

    await gateway.on_raw_reaction_add(
        SimpleNamespace(member=_UserStub("alice#0001"), **base)
    )
    await gateway.on_raw_reaction_remove(SimpleNamespace(member=None, **base))
    await gateway.on_raw_reaction_add(
        SimpleNamespace(member=None, **{**base, "guild_id": 2})
    )

    added, removed = received
    assert isinstance(added, ReactionAdded)
    assert added.user_tag == "alice#0001"
    assert isinstance(removed, ReactionRemoved)
    assert removed.user_tag is None
    assert await removed.resolve_user() == "user7"


@pytest.mark.asyncio
async def test_handler_failure_does_not_escape():
    async def dispatch(event):
        raise RuntimeError("boom")

    gateway, _ = _gateway(dispatch)
    await gateway.on_message(_message())


@pytest.mark.asyncio
async def test_guild_not_found_on_ready_is_fatal():
    async def dispatch(event):
        assert isinstance(event, ReadyEvent)
        raise GuildNotFoundError("Guild not found", guild_id="1")

    gateway, client = _gateway(dispatch)
    await gateway.on_ready()

    assert isinstance(gateway.fatal_error, GuildNotFoundError)
    assert client.closed

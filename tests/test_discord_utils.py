"""Tests for the py-cord adapter in discord_utils.py."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from modsentry.datatypes.message_datatypes import MessageCapabilities
from modsentry.moderation.errors import ModerationPermissionError
from modsentry.util import discord_utils


class FakeMember:
    def __init__(self, member_id=42, *, position=1, roles=(), perms=None, bot=False) -> None:
        self.id = member_id
        self.display_name = "User"
        self.bot = bot
        self.top_role = SimpleNamespace(position=position)
        self.roles = [SimpleNamespace(id=role_id) for role_id in roles]
        self.guild_permissions = perms or SimpleNamespace(
            administrator=False, manage_guild=False, moderate_members=False
        )
        self.timeout = AsyncMock()


class FakeChannel:
    def __init__(self, perms=None) -> None:
        self.id = 77
        self.perms = perms or SimpleNamespace(view_channel=True, send_messages=True, manage_messages=True)
        self.send = AsyncMock()

    def permissions_for(self, member):
        return self.perms


def _message(author=None, me=None, channel=None, owner_id=1, content="hello", guild=True):
    me = me or FakeMember(
        999,
        position=10,
        perms=SimpleNamespace(administrator=False, manage_guild=False, moderate_members=True),
    )
    message = SimpleNamespace(
        id=101,
        content=content,
        author=author or FakeMember(roles=(5, 6)),
        channel=channel or FakeChannel(),
        guild=SimpleNamespace(me=me, owner_id=owner_id) if guild else None,
        reply=AsyncMock(),
        delete=AsyncMock(),
    )
    return message


@pytest.fixture(autouse=True)
def patch_discord_types(monkeypatch):
    monkeypatch.setattr(discord_utils.discord, "Member", FakeMember, raising=False)
    yield


def test_should_process_message():
    assert discord_utils.should_process_message(_message())
    assert not discord_utils.should_process_message(_message(guild=False))
    assert not discord_utils.should_process_message(_message(content=""))


def test_is_administrator():
    admin = FakeMember(perms=SimpleNamespace(administrator=True, manage_guild=False, moderate_members=False))
    assert discord_utils.is_administrator(admin)
    assert not discord_utils.is_administrator(FakeMember())
    assert not discord_utils.is_administrator(SimpleNamespace(guild_permissions=admin.guild_permissions))


def test_build_inbound_message():
    inbound = discord_utils.build_inbound_message(_message())

    assert inbound.message_id == "101"
    assert inbound.author_id == "42"
    assert inbound.author_display == "User"
    assert inbound.author_is_bot is False
    assert inbound.channel_id == "77"
    assert inbound.author_role_ids == frozenset({"5", "6"})
    assert isinstance(inbound.capabilities, MessageCapabilities)


def test_permission_queries_read_live_state():
    channel = FakeChannel()
    caps = discord_utils.DiscordMessageCapabilities(_message(channel=channel))

    assert caps.can_send_messages()
    assert caps.can_delete_messages()
    assert caps.can_restrict_members()

    channel.perms = SimpleNamespace(view_channel=True, send_messages=False, manage_messages=False)

    assert not caps.can_send_messages()
    assert not caps.can_delete_messages()


def test_ranks_and_exemption():
    author = FakeMember(position=3)
    caps = discord_utils.DiscordMessageCapabilities(_message(author=author))

    assert caps.agent_rank() == 10
    assert caps.author_rank() == 3
    assert not caps.author_is_exempt()

    owner_caps = discord_utils.DiscordMessageCapabilities(_message(author=author, owner_id=author.id))
    assert owner_caps.author_is_exempt()


def test_only_owner_or_administrator_is_exempt():
    moderator = FakeMember(perms=SimpleNamespace(administrator=False, manage_guild=False, moderate_members=True))
    manager = FakeMember(perms=SimpleNamespace(administrator=False, manage_guild=True, moderate_members=False))
    admin = FakeMember(perms=SimpleNamespace(administrator=True, manage_guild=False, moderate_members=False))

    assert not discord_utils.DiscordMessageCapabilities(_message(author=moderator)).author_is_exempt()
    assert not discord_utils.DiscordMessageCapabilities(_message(author=manager)).author_is_exempt()
    assert discord_utils.DiscordMessageCapabilities(_message(author=admin)).author_is_exempt()


@pytest.mark.asyncio
async def test_forbidden_becomes_permission_error():
    message = _message()
    message.reply = AsyncMock(side_effect=discord.Forbidden(MagicMock(), "Missing Access"))
    caps = discord_utils.DiscordMessageCapabilities(message)

    with pytest.raises(ModerationPermissionError, match="Missing Access"):
        await caps.reply("warning")


@pytest.mark.asyncio
async def test_delete_ignores_already_deleted():
    message = _message()
    message.delete = AsyncMock(side_effect=discord.NotFound(MagicMock(), "Unknown Message"))

    await discord_utils.DiscordMessageCapabilities(message).delete()

    message.delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_send_channel_message_uses_channel():
    message = _message()

    await discord_utils.DiscordMessageCapabilities(message).send_channel_message("notice")

    message.channel.send.assert_awaited_once_with("notice")


@pytest.mark.asyncio
async def test_restrict_author_caps_duration():
    author = FakeMember()
    message = _message(author=author)

    await discord_utils.DiscordMessageCapabilities(message).restrict_author(60 * 24 * 3600 * 1000, "bad words")

    until = author.timeout.await_args.args[0]
    assert author.timeout.await_args.kwargs["reason"] == "bad words"
    assert until - discord.utils.utcnow() <= discord_utils.MAX_TIMEOUT


@pytest.mark.asyncio
async def test_restrict_author_requires_member():
    message = _message(author=SimpleNamespace(id=1, display_name="Gone", bot=False))

    with pytest.raises(ModerationPermissionError):
        await discord_utils.DiscordMessageCapabilities(message).restrict_author(1000, "bad words")

"""
discord_utils.py
================

Py-cord adapter for the moderation core.

This module turns ``discord.Message`` objects into ``InboundMessage`` values
and implements the ``MessageCapabilities`` protocol on top of py-cord.
Permission and role-position lookups read the live guild state each time
they are called.
"""

import datetime
from typing import Union

import discord

from modsentry.datatypes.message_datatypes import InboundMessage
from modsentry.moderation.errors import ModerationPermissionError
from modsentry.util.logger import get_logger

logger = get_logger("discord_utils")

# Discord rejects timeouts longer than 28 days
MAX_TIMEOUT = datetime.timedelta(days=28)


def is_administrator(member: Union[discord.User, discord.Member]) -> bool:
    """
    Check if a member holds the guild administrator permission.

    Args:
        member (discord.User | discord.Member): The member to evaluate.

    Returns:
        bool: True if the member is a guild administrator, False otherwise.
    """
    if not isinstance(member, discord.Member):
        return False

    return bool(getattr(member.guild_permissions, "administrator", False))


def should_process_message(message: discord.Message) -> bool:
    """Return True for guild text messages that carry content worth scanning."""
    if message.guild is None:
        return False
    return bool(message.content)


class DiscordMessageCapabilities:
    """MessageCapabilities backed by a live ``discord.Message``."""

    def __init__(self, message: discord.Message) -> None:
        self._message = message

    # --------------------------
    # Permission queries
    # --------------------------
    def _bot_member(self) -> discord.Member | None:
        guild = self._message.guild
        return guild.me if guild is not None else None

    def _channel_permissions(self) -> discord.Permissions | None:
        me = self._bot_member()
        if me is None:
            return None
        try:
            return self._message.channel.permissions_for(me)
        except Exception as exc:  # pragma: no cover - discord internals guard
            logger.debug("Could not resolve channel permissions: %s", exc)
            return None

    def can_send_messages(self) -> bool:
        if self._message.guild is None:
            return True
        permissions = self._channel_permissions()
        return permissions is not None and permissions.view_channel and permissions.send_messages

    def can_delete_messages(self) -> bool:
        permissions = self._channel_permissions()
        return permissions is not None and permissions.manage_messages

    def can_restrict_members(self) -> bool:
        me = self._bot_member()
        return me is not None and me.guild_permissions.moderate_members

    def agent_rank(self) -> int:
        me = self._bot_member()
        return me.top_role.position if me is not None else -1

    def author_rank(self) -> int:
        author = self._message.author
        if isinstance(author, discord.Member):
            return author.top_role.position
        return 0

    def author_is_exempt(self) -> bool:
        author = self._message.author
        guild = self._message.guild
        if guild is not None and guild.owner_id == author.id:
            return True
        return is_administrator(author)

    # --------------------------
    # Platform calls
    # --------------------------
    async def reply(self, content: str) -> None:
        try:
            await self._message.reply(content)
        except discord.Forbidden as exc:
            raise ModerationPermissionError(f"Reply forbidden: {exc.text}") from exc

    async def delete(self) -> None:
        try:
            await self._message.delete()
        except discord.NotFound:
            logger.debug("Message %s already deleted", self._message.id)
        except discord.Forbidden as exc:
            raise ModerationPermissionError(f"Delete forbidden: {exc.text}") from exc

    async def send_channel_message(self, content: str) -> None:
        try:
            await self._message.channel.send(content)
        except discord.Forbidden as exc:
            raise ModerationPermissionError(f"Send forbidden: {exc.text}") from exc

    async def restrict_author(self, duration_ms: int, reason: str) -> None:
        author = self._message.author
        if not isinstance(author, discord.Member):
            raise ModerationPermissionError("Author is no longer a member of this guild")

        duration = min(datetime.timedelta(milliseconds=duration_ms), MAX_TIMEOUT)
        try:
            await author.timeout(discord.utils.utcnow() + duration, reason=reason)
        except discord.Forbidden as exc:
            raise ModerationPermissionError(f"Timeout forbidden: {exc.text}") from exc


def build_inbound_message(message: discord.Message) -> InboundMessage:
    """Convert a py-cord message into the pipeline's InboundMessage."""
    author = message.author
    role_ids: frozenset[str] = frozenset()
    if isinstance(author, discord.Member):
        role_ids = frozenset(str(role.id) for role in author.roles)

    return InboundMessage(
        message_id=str(message.id),
        author_id=str(author.id),
        author_display=author.display_name,
        author_is_bot=author.bot,
        content=message.content or "",
        channel_id=str(message.channel.id),
        capabilities=DiscordMessageCapabilities(message),
        author_role_ids=role_ids,
    )

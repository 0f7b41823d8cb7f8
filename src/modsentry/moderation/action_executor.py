"""
Enforcement actions against the chat platform.

Three escalating operations are available: warn (reply), delete (remove the
message and post a notice) and restrict (time the author out, remove the
message and post a notice). Each side-effecting platform call runs under a
RetryPolicy; permission problems are detected up front and never retried.
Any unrecoverable failure is escalated to the administrator channel before
it is re-raised to the caller.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import replace
from typing import Optional

import discord

from modsentry.datatypes.message_datatypes import InboundMessage
from modsentry.datatypes.moderation_datatypes import ActionContext, ActionType
from modsentry.moderation.errors import ModerationActionError, ModerationError, ModerationPermissionError
from modsentry.util import format_utils
from modsentry.util.logger import get_logger
from modsentry.util.retry import RetryPolicy

logger = get_logger("action_executor")


class ActionExecutor:
    """Run warn/delete/restrict actions with pre-flight checks and retries.

    Attributes:
        admin_channel_id: Channel receiving escalation notices, if any.
        retry_policy: Backoff policy applied to each platform call.
    """

    def __init__(
        self,
        admin_channel_id: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
        client: Optional[discord.Client] = None,
    ) -> None:
        self.admin_channel_id = admin_channel_id
        self.retry_policy = replace(retry_policy or RetryPolicy(), give_up_on=(ModerationPermissionError,))
        self._client = client

    # --------------------------
    # Configuration
    # --------------------------
    def set_client(self, client: Optional[discord.Client]) -> None:
        self._client = client

    def set_admin_channel(self, channel_id: Optional[str]) -> None:
        self.admin_channel_id = channel_id

    def set_retry_attempts(self, attempts: int) -> None:
        self.retry_policy = self.retry_policy.with_attempts(attempts)

    def set_retry_delay(self, delay_ms: int) -> None:
        self.retry_policy = self.retry_policy.with_base_delay(delay_ms)

    # --------------------------
    # Internal helpers
    # --------------------------
    async def _call(self, operation: Callable[[], Awaitable[None]], label: str) -> None:
        """Run one platform call under the retry policy."""
        try:
            await self.retry_policy.run(operation, label=label)
        except ModerationError:
            raise
        except Exception as exc:
            raise ModerationActionError(f"{label} failed: {exc}") from exc

    async def _escalate(self, message: InboundMessage, action: ActionType, reason: str, exc: BaseException) -> None:
        logger.error(
            "[ACTION EXECUTOR] %s for user %s (message %s): %s",
            reason,
            message.author_id,
            message.message_id,
            exc,
        )
        context = ActionContext(
            user_id=message.author_id,
            message_id=message.message_id,
            action=action,
            error=str(exc),
        )
        await self.notify_administrators(reason, context)

    # --------------------------
    # Actions
    # --------------------------
    async def execute_warn(self, message: InboundMessage, words: Sequence[str]) -> None:
        """Reply to the message with a warning."""
        capabilities = message.capabilities
        try:
            if not capabilities.can_send_messages():
                raise ModerationPermissionError("Bot lacks permission to send messages in this channel")

            warning = format_utils.build_warning_message(message.author_display, words)
            await self._call(lambda: capabilities.reply(warning), "warning reply")
        except Exception as exc:
            await self._escalate(message, ActionType.WARN, "Failed to send warning message", exc)
            raise

        logger.info("[ACTION EXECUTOR] Warned user %s for words: %s", message.author_id, ", ".join(words))

    async def execute_delete(self, message: InboundMessage, words: Sequence[str]) -> None:
        """Delete the message, then announce the deletion in the channel."""
        capabilities = message.capabilities
        try:
            if not capabilities.can_delete_messages():
                raise ModerationPermissionError("Bot lacks permission to manage messages")

            # A failed delete aborts before the notice is sent
            await self._call(capabilities.delete, "message delete")

            notice = format_utils.build_delete_notice(message.author_display, words)
            await self._call(lambda: capabilities.send_channel_message(notice), "delete notice")
        except Exception as exc:
            await self._escalate(message, ActionType.DELETE, "Failed to delete message", exc)
            raise

        logger.info("[ACTION EXECUTOR] Deleted message %s from user %s", message.message_id, message.author_id)

    async def execute_restrict(self, message: InboundMessage, words: Sequence[str], duration_ms: int) -> None:
        """Restrict the author for ``duration_ms``, delete the message and post a notice.

        The three preconditions are evaluated against live platform state
        before any call is made; a failed precondition is terminal.
        """
        capabilities = message.capabilities
        try:
            if not capabilities.can_restrict_members():
                raise ModerationPermissionError("Bot lacks permission to restrict members")
            if capabilities.author_rank() >= capabilities.agent_rank():
                raise ModerationPermissionError("Target member's top role is not below the bot's")
            if capabilities.author_is_exempt():
                raise ModerationPermissionError("Target member holds administrator-level permissions")

            reason = f"Inappropriate language: {format_utils.join_words(words)}"
            await self._call(lambda: capabilities.restrict_author(duration_ms, reason), "member restrict")
            await self._call(capabilities.delete, "message delete")

            notice = format_utils.build_restrict_notice(message.author_display, words, duration_ms)
            await self._call(lambda: capabilities.send_channel_message(notice), "restrict notice")
        except Exception as exc:
            await self._escalate(message, ActionType.RESTRICT, "Failed to restrict user", exc)
            raise

        logger.info(
            "[ACTION EXECUTOR] Restricted user %s for %s",
            message.author_id,
            format_utils.format_duration_ms(duration_ms),
        )

    # --------------------------
    # Escalation
    # --------------------------
    async def _send_admin_message(self, client: discord.Client, channel_id: str, content: str) -> None:
        channel = client.get_channel(int(channel_id))
        if channel is None:
            channel = await client.fetch_channel(int(channel_id))
        if not hasattr(channel, "send"):
            raise RuntimeError(f"Administrator channel {channel_id} cannot receive messages")
        await channel.send(content)

    async def notify_administrators(self, reason: str, context: ActionContext) -> None:
        """Post a failure notice to the administrator channel, best effort.

        Never raises: a failed notification is logged with the original
        failure details and dropped.
        """
        channel_id = self.admin_channel_id
        if not channel_id:
            logger.warning("[ACTION EXECUTOR] Administrator notification channel not configured")
            return

        client = self._client
        if client is None:
            logger.error(
                "[ACTION EXECUTOR] No client attached; cannot notify administrators of: %s (%s)",
                reason,
                context,
            )
            return

        content = format_utils.build_admin_notice(reason, context)
        try:
            await self.retry_policy.run(
                lambda: self._send_admin_message(client, channel_id, content),
                label="administrator notification",
            )
        except Exception as exc:
            logger.error(
                "[ACTION EXECUTOR] Failed to notify administrators: %s (original error: %s, context: %s)",
                exc,
                reason,
                context,
            )

"""
Inbound message type and the outbound capability boundary.

The moderation core never talks to py-cord directly. Each inbound message
carries a MessageCapabilities object through which the executor replies,
deletes, restricts and checks permissions in that message's context.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@runtime_checkable
class MessageCapabilities(Protocol):
    """Platform operations available in the context of one message.

    Permission and rank queries must reflect live platform state on every
    call; implementations must not cache them between messages.
    """

    async def reply(self, content: str) -> None: ...

    async def delete(self) -> None: ...

    async def send_channel_message(self, content: str) -> None: ...

    async def restrict_author(self, duration_ms: int, reason: str) -> None: ...

    def can_send_messages(self) -> bool: ...

    def can_delete_messages(self) -> bool: ...

    def can_restrict_members(self) -> bool: ...

    def agent_rank(self) -> int: ...

    def author_rank(self) -> int: ...

    def author_is_exempt(self) -> bool: ...


@dataclass(slots=True)
class InboundMessage:
    """A received chat message as seen by the moderation pipeline.

    Attributes:
        message_id: Platform message identifier, used for duplicate suppression.
        author_id: Author identifier.
        author_display: Author name shown in notices and audit records.
        author_is_bot: True for automated authors, including the agent itself.
        content: Raw message text, never altered by the pipeline.
        channel_id: Context (channel) identifier.
        capabilities: Outbound operations scoped to this message.
        author_role_ids: Role ids held by the author, if known.
    """

    message_id: str
    author_id: str
    author_display: str
    author_is_bot: bool
    content: str
    channel_id: str
    capabilities: MessageCapabilities
    author_role_ids: frozenset[str] = field(default_factory=frozenset)

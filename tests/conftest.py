"""
Pytest configuration and fixtures for ModSentry tests.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from modsentry.datatypes.message_datatypes import InboundMessage  # noqa: E402


class FakeCapabilities:
    """In-memory MessageCapabilities that records every platform call.

    ``failures`` maps an operation name (reply, delete, send, restrict) to
    the number of times it should raise before succeeding; a negative count
    fails forever.
    """

    def __init__(
        self,
        *,
        can_send: bool = True,
        can_delete: bool = True,
        can_restrict: bool = True,
        agent_rank: int = 10,
        author_rank: int = 1,
        author_exempt: bool = False,
        failures: dict | None = None,
    ) -> None:
        self.can_send = can_send
        self.can_delete = can_delete
        self.can_restrict = can_restrict
        self._agent_rank = agent_rank
        self._author_rank = author_rank
        self.author_exempt = author_exempt
        self.failures = dict(failures or {})
        self.calls: list[tuple] = []

    def _maybe_fail(self, name: str) -> None:
        remaining = self.failures.get(name, 0)
        if remaining == 0:
            return
        if remaining > 0:
            self.failures[name] = remaining - 1
        raise RuntimeError(f"{name} failed")

    async def reply(self, content: str) -> None:
        self.calls.append(("reply", content))
        self._maybe_fail("reply")

    async def delete(self) -> None:
        self.calls.append(("delete",))
        self._maybe_fail("delete")

    async def send_channel_message(self, content: str) -> None:
        self.calls.append(("send", content))
        self._maybe_fail("send")

    async def restrict_author(self, duration_ms: int, reason: str) -> None:
        self.calls.append(("restrict", duration_ms, reason))
        self._maybe_fail("restrict")

    def can_send_messages(self) -> bool:
        return self.can_send

    def can_delete_messages(self) -> bool:
        return self.can_delete

    def can_restrict_members(self) -> bool:
        return self.can_restrict

    def agent_rank(self) -> int:
        return self._agent_rank

    def author_rank(self) -> int:
        return self._author_rank

    def author_is_exempt(self) -> bool:
        return self.author_exempt

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture()
def make_message():
    """Factory for InboundMessage objects backed by FakeCapabilities."""

    def _make(
        content: str = "hello there",
        *,
        message_id: str = "msg-1",
        author_id: str = "user-1",
        author_display: str = "alice",
        author_is_bot: bool = False,
        channel_id: str = "chan-1",
        role_ids: frozenset = frozenset(),
        capabilities: FakeCapabilities | None = None,
        **capability_kwargs,
    ) -> InboundMessage:
        return InboundMessage(
            message_id=message_id,
            author_id=author_id,
            author_display=author_display,
            author_is_bot=author_is_bot,
            content=content,
            channel_id=channel_id,
            capabilities=capabilities or FakeCapabilities(**capability_kwargs),
            author_role_ids=role_ids,
        )

    return _make


@pytest.fixture()
def no_sleep(monkeypatch):
    """Replace asyncio.sleep in the retry helper and record requested delays."""
    from modsentry.util import retry

    delays: list[float] = []

    async def fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr(retry.asyncio, "sleep", fake_sleep)
    return delays

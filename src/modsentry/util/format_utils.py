import math
import re
from typing import Iterable

from modsentry.datatypes.moderation_datatypes import ActionContext

MAX_LOGGED_CONTENT_LENGTH = 500

_NEWLINES = re.compile(r"\r?\n")
_WHITESPACE = re.compile(r"\s+")


def sanitize_content(content: str | None, max_length: int = MAX_LOGGED_CONTENT_LENGTH) -> str:
    """Flatten message text for a single log line.

    Newlines become spaces, whitespace runs collapse to one space, the result
    is stripped and cut to ``max_length`` characters. Only ever applied to
    the logged copy of a message.
    """
    if not content:
        return ""
    flattened = _NEWLINES.sub(" ", content)
    flattened = _WHITESPACE.sub(" ", flattened).strip()
    return flattened[:max_length]


def format_duration_ms(duration_ms: int) -> str:
    """Return a restriction length as whole minutes, rounded up."""
    minutes = max(1, math.ceil(duration_ms / 60_000))
    return f"{minutes} minute{'s' if minutes != 1 else ''}"


def join_words(words: Iterable[str]) -> str:
    return ", ".join(words)


def build_warning_message(username: str, words: Iterable[str]) -> str:
    return (
        f"⚠️ {username}, your message contains language that is not allowed here.\n"
        f"Matched: {sanitize_content(join_words(words), 200)}\n"
        "Please follow the community guidelines."
    )


def build_delete_notice(username: str, words: Iterable[str]) -> str:
    return (
        f"🗑️ A message from {username} was removed automatically.\n"
        f"Reason: inappropriate language ({sanitize_content(join_words(words), 200)})\n"
        "Please follow the community guidelines."
    )


def build_restrict_notice(username: str, words: Iterable[str], duration_ms: int) -> str:
    return (
        f"⏱️ {username} has been temporarily restricted.\n"
        f"Duration: {format_duration_ms(duration_ms)}\n"
        f"Reason: inappropriate language ({sanitize_content(join_words(words), 200)})\n"
        "Please follow the community guidelines once the restriction ends."
    )


def build_admin_notice(reason: str, context: ActionContext) -> str:
    return (
        "🚨 **Moderation action failed**\n"
        f"Error: {reason}\n"
        f"User ID: {context.user_id}\n"
        f"Message ID: {context.message_id}\n"
        f"Action: {context.action.value}\n"
        f"Details: {context.error}"
    )

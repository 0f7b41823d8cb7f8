"""Tests for format_utils.py module."""

import pytest

from modsentry.datatypes.moderation_datatypes import ActionContext, ActionType
from modsentry.util import format_utils


def test_sanitize_content_flattens_and_truncates():
    assert format_utils.sanitize_content("line one\r\nline   two\n\tend ") == "line one line two end"
    assert format_utils.sanitize_content("x" * 600) == "x" * 500
    assert format_utils.sanitize_content("") == ""
    assert format_utils.sanitize_content(None) == ""


@pytest.mark.parametrize(
    ("duration_ms", "expected"),
    [
        (60_000, "1 minute"),
        (600_000, "10 minutes"),
        (90_000, "2 minutes"),
        (1, "1 minute"),
    ],
)
def test_format_duration_ms_rounds_up(duration_ms, expected):
    assert format_utils.format_duration_ms(duration_ms) == expected


def test_warning_message_names_user_and_words():
    text = format_utils.build_warning_message("alice", ["spam", "test"])
    assert "alice" in text
    assert "spam, test" in text


def test_restrict_notice_includes_duration():
    text = format_utils.build_restrict_notice("bob", ["scam"], 600_000)
    assert "bob" in text
    assert "10 minutes" in text
    assert "scam" in text


def test_admin_notice_contains_context():
    context = ActionContext(user_id="u1", message_id="m1", action=ActionType.DELETE, error="Forbidden")
    text = format_utils.build_admin_notice("Failed to delete message", context)

    assert text.startswith("🚨 **Moderation action failed**")
    assert "Error: Failed to delete message" in text
    assert "User ID: u1" in text
    assert "Message ID: m1" in text
    assert "Action: delete" in text
    assert "Details: Forbidden" in text

"""Tests for console.py module."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from modsentry.datatypes.moderation_datatypes import (
    ActionType,
    DetectionResult,
    HealthReport,
    HealthStatus,
    RuleSet,
)
from modsentry.ui import console


@pytest.fixture()
def pipeline():
    pipeline = MagicMock()
    pipeline.cleanup_logs = AsyncMock(return_value=3)
    pipeline.service_stats.return_value = {
        "rules_loaded": 2,
        "settings_configured": True,
        "exempt_channels": 1,
        "exempt_roles": 0,
        "seen_messages": 5,
    }
    pipeline.rule_store.config_path = "config/moderation_rules.yml"
    return pipeline


@pytest.fixture()
def printed():
    with patch("modsentry.ui.console.print_formatted_text") as mock_print:
        yield mock_print


def _output(mock_print) -> str:
    return "\n".join(str(call.args[0]) for call in mock_print.call_args_list)


def test_console_print_without_style(printed):
    console.console_print("Test message")
    printed.assert_called_once_with("Test message")


def test_console_control_shutdown(pipeline):
    control = console.ConsoleControl(pipeline)
    assert not control.is_shutdown_requested()
    control.request_shutdown()
    assert control.is_shutdown_requested()


@pytest.mark.asyncio
async def test_close_bot_instance_when_none():
    await console.close_bot_instance(None)
    await console.close_bot_instance(None, log_close=True)


@pytest.mark.asyncio
async def test_close_bot_instance_when_already_closed():
    bot = SimpleNamespace(is_closed=lambda: True, close=AsyncMock())

    await console.close_bot_instance(bot)

    bot.close.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_command_is_reported(pipeline, printed):
    await console.handle_console_command("frobnicate", console.ConsoleControl(pipeline))

    assert "Unknown command 'frobnicate'" in _output(printed)


@pytest.mark.asyncio
async def test_shutdown_alias_closes_bot(pipeline, printed):
    control = console.ConsoleControl(pipeline)
    bot = SimpleNamespace(is_closed=lambda: False, close=AsyncMock())
    control.set_bot(bot)

    await console.handle_console_command("quit", control)

    assert control.is_shutdown_requested()
    bot.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_reload_command_reports_rule_count(pipeline, printed):
    pipeline.reload_configuration.return_value = RuleSet(rules=(), from_defaults=True)

    await console.handle_console_command("reload", console.ConsoleControl(pipeline))

    pipeline.reload_configuration.assert_called_once()
    assert "Reloaded 0 rules from built-in defaults" in _output(printed)


@pytest.mark.asyncio
async def test_reload_errors_are_reported_not_raised(pipeline, printed):
    pipeline.reload_configuration.side_effect = RuntimeError("disk gone")

    await console.handle_console_command("reload", console.ConsoleControl(pipeline))

    assert "disk gone" in _output(printed)


@pytest.mark.asyncio
async def test_health_command(pipeline, printed):
    pipeline.health_check.return_value = HealthReport(
        status=HealthStatus.DEGRADED,
        components={"rule_store": True, "audit_logger": False},
        details="Unhealthy components: audit_logger",
    )

    await console.handle_console_command("health", console.ConsoleControl(pipeline))

    output = _output(printed)
    assert "degraded" in output
    assert "audit_logger" in output


@pytest.mark.asyncio
async def test_cleanup_uses_configured_retention(pipeline, printed):
    await console.handle_console_command("cleanup", console.ConsoleControl(pipeline, log_retention_days=14))

    pipeline.cleanup_logs.assert_awaited_once_with(14)
    assert "Deleted 3 audit log files older than 14 days" in _output(printed)


@pytest.mark.asyncio
async def test_cleanup_accepts_days_argument(pipeline, printed):
    await console.handle_console_command("purge 7", console.ConsoleControl(pipeline))

    pipeline.cleanup_logs.assert_awaited_once_with(7)


@pytest.mark.asyncio
async def test_cleanup_rejects_bad_days(pipeline, printed):
    await console.handle_console_command("cleanup soon", console.ConsoleControl(pipeline))

    pipeline.cleanup_logs.assert_not_awaited()
    assert "Invalid number of days" in _output(printed)


@pytest.mark.asyncio
async def test_cleanup_failure_is_reported(pipeline, printed):
    pipeline.cleanup_logs.return_value = -1

    await console.handle_console_command("cleanup", console.ConsoleControl(pipeline))

    assert "Log cleanup failed" in _output(printed)


@pytest.mark.asyncio
async def test_test_command_shows_detection(pipeline, printed):
    pipeline.test_detection.return_value = {
        "detection": DetectionResult(2, ("idiot",), ActionType.DELETE),
        "details": {"rules_checked": 3},
    }

    await console.handle_console_command("test you IDIOT", console.ConsoleControl(pipeline))

    pipeline.test_detection.assert_called_once_with("you IDIOT")
    assert "Level 2 -> delete (idiot)" in _output(printed)


@pytest.mark.asyncio
async def test_status_without_bot(pipeline, printed):
    await console.handle_console_command("status", console.ConsoleControl(pipeline))

    output = _output(printed)
    assert "Not initialized" in output
    assert "Rules:      2" in output


@pytest.mark.asyncio
async def test_help_lists_every_command(pipeline, printed):
    await console.handle_console_command("help", console.ConsoleControl(pipeline))

    output = _output(printed)
    for command in console.COMMANDS:
        assert command.name in output


@pytest.mark.asyncio
async def test_stats_command_prints_service_stats(pipeline, printed):
    await console.handle_console_command("stats", console.ConsoleControl(pipeline))

    output = _output(printed)
    pipeline.service_stats.assert_called_once()
    assert "Rules loaded" in output
    assert "Seen messages" in output

"""Interactive operator console for the running moderation bot."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
import os

import discord
from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import PromptSession

from modsentry.datatypes.moderation_datatypes import HealthStatus
from modsentry.moderation.moderation_pipeline import DEFAULT_LOG_RETENTION_DAYS, ModerationPipeline
from modsentry.util.logger import get_logger

# Box drawing helpers for aligned console output
BOX_WIDTH = 45

def box_title(title: str) -> list[str]:
    inner_width = BOX_WIDTH - 2
    pad_left = (inner_width - len(title)) // 2
    pad_right = inner_width - len(title) - pad_left
    return [
        f"╔{'═' * inner_width}╗",
        f"║{' ' * pad_left}{title}{' ' * pad_right}║",
        f"╚{'═' * inner_width}╝"
    ]

logger = get_logger("console")

# Type alias for command handler functions
CommandHandler = Callable[["ConsoleControl", list[str]], Awaitable[None]]

HEALTH_STYLES = {
    HealthStatus.HEALTHY: "ansigreen",
    HealthStatus.DEGRADED: "ansiyellow",
    HealthStatus.UNHEALTHY: "ansired",
}


@dataclass
class Command:
    """Definition of a console command."""
    name: str
    handler: CommandHandler
    aliases: list[str]
    description: str
    usage: str = ""

    def matches(self, input_cmd: str) -> bool:
        """Check if input matches this command or any alias."""
        return input_cmd == self.name or input_cmd in self.aliases


def console_print(message: str, style: str = "") -> None:
    """Render text via prompt_toolkit without breaking the active prompt."""
    formatted: FormattedText | str
    if style:
        formatted = FormattedText([(style, message)])
    else:
        formatted = message
    print_formatted_text(formatted)


class ConsoleControl:
    """Console-side handle on the running bot and its moderation pipeline."""

    def __init__(self, pipeline: ModerationPipeline, log_retention_days: int = DEFAULT_LOG_RETENTION_DAYS) -> None:
        self.shutdown_event = asyncio.Event()
        self.pipeline = pipeline
        self.log_retention_days = log_retention_days
        self._bot: discord.Bot | None = None

    def set_bot(self, bot: discord.Bot | None) -> None:
        self._bot = bot

    @property
    def bot(self) -> discord.Bot | None:  # pragma: no cover - trivial getter
        return self._bot

    def request_shutdown(self) -> None:
        self.shutdown_event.set()

    def is_shutdown_requested(self) -> bool:
        return self.shutdown_event.is_set()


async def close_bot_instance(bot: discord.Bot | None, *, log_close: bool = False) -> None:
    """Close the Discord bot instance if it is active."""
    if bot is None or bot.is_closed():
        return

    try:
        await bot.close()
        if log_close:
            logger.info("Discord bot connection closed.")
    except Exception as exc:  # pragma: no cover
        logger.exception("Error while closing Discord bot: %s", exc)


# ==================== Command Handlers ====================

async def cmd_help(control: ConsoleControl, args: list[str]) -> None:
    """Display available commands and their descriptions."""
    for line in box_title("Console Commands Reference"):
        console_print(line, "ansigreen")

    for cmd in COMMANDS:
        aliases_str = f" (aliases: {', '.join(cmd.aliases)})" if cmd.aliases else ""
        console_print(f"\n  {cmd.name}{aliases_str}", "ansicyan")
        console_print(f"    {cmd.description}")
        if cmd.usage:
            console_print(f"    Usage: {cmd.usage}", "ansibrightblack")

    console_print("")


async def cmd_status(control: ConsoleControl, args: list[str]) -> None:
    """Display bot connection and moderation status."""
    for line in box_title("Bot Status"):
        console_print(line, "ansiblue")

    if control.bot:
        bot_status = "🟢 Connected" if not control.bot.is_closed() else "🔴 Disconnected"
        console_print(f"  Bot:        {bot_status}")
        console_print(f"  Guilds:     {len(control.bot.guilds)}")
        console_print(f"  Latency:    {control.bot.latency * 1000:.0f}ms")
    else:
        console_print("  Bot:        🔴 Not initialized")

    stats = control.pipeline.service_stats()
    console_print(f"  Rules:      {stats['rules_loaded']}")
    console_print(f"  Exempt:     {stats['exempt_channels']} channels, {stats['exempt_roles']} roles")
    console_print("")


async def cmd_stats(control: ConsoleControl, args: list[str]) -> None:
    """Display moderation service statistics."""
    for line in box_title("Moderation Statistics"):
        console_print(line, "ansiblue")

    for key, value in control.pipeline.service_stats().items():
        console_print(f"  {key.replace('_', ' ').capitalize():<22}{value}")
    console_print("")


async def cmd_health(control: ConsoleControl, args: list[str]) -> None:
    """Show the pipeline health report."""
    report = control.pipeline.health_check()
    console_print(f"Moderation pipeline: {report.status.value}", HEALTH_STYLES[report.status])
    for name, healthy in report.components.items():
        console_print(f"  {'🟢' if healthy else '🔴'} {name}")
    if report.details:
        console_print(f"  {report.details}", "ansibrightblack")


async def cmd_reload(control: ConsoleControl, args: list[str]) -> None:
    """Reload moderation rules and settings from disk."""
    rule_set = control.pipeline.reload_configuration()
    source = "built-in defaults" if rule_set.from_defaults else str(control.pipeline.rule_store.config_path)
    console_print(f"Reloaded {len(rule_set.rules)} rules from {source}.", "ansigreen")


async def cmd_cleanup(control: ConsoleControl, args: list[str]) -> None:
    """Delete audit log files older than the retention period."""
    days = control.log_retention_days
    if args:
        try:
            days = int(args[0])
        except ValueError:
            console_print(f"Invalid number of days: {args[0]}", "ansired")
            return
        if days < 0:
            console_print("Number of days must not be negative.", "ansired")
            return

    deleted = await control.pipeline.cleanup_logs(days)
    if deleted < 0:
        console_print("Log cleanup failed; see the application log.", "ansired")
    else:
        console_print(f"Deleted {deleted} audit log files older than {days} days.", "ansigreen")


async def cmd_test(control: ConsoleControl, args: list[str]) -> None:
    """Run detection against sample text without taking action."""
    if not args:
        console_print("Usage: test <message text>", "ansiyellow")
        return

    result = control.pipeline.test_detection(" ".join(args))
    detection = result["detection"]
    if detection is None:
        console_print("No rule matched.", "ansigreen")
    else:
        console_print(
            f"Level {detection.level} -> {detection.action.value} ({', '.join(detection.matched_words)})",
            "ansiyellow",
        )
    console_print(f"  {result['details']}", "ansibrightblack")


async def cmd_clear(control: ConsoleControl, args: list[str]) -> None:
    """Clear the console screen."""
    os.system('cls' if os.name == 'nt' else 'clear')
    console_print("Console cleared.", "ansigreen")


async def cmd_shutdown(control: ConsoleControl, args: list[str]) -> None:
    """Request graceful bot shutdown."""
    console_print("Shutdown requested.", "ansiyellow")
    control.request_shutdown()
    await close_bot_instance(control.bot)


# ==================== Command Registry ====================

COMMANDS: list[Command] = [
    Command(
        name="help",
        handler=cmd_help,
        aliases=["h", "?"],
        description="Show this help message with all available commands",
    ),
    Command(
        name="status",
        handler=cmd_status,
        aliases=["stat", "info"],
        description="Display bot connection and rule statistics",
    ),
    Command(
        name="stats",
        handler=cmd_stats,
        aliases=["statistics"],
        description="Show rule, exemption and duplicate-window counts",
    ),
    Command(
        name="health",
        handler=cmd_health,
        aliases=["hc"],
        description="Report moderation pipeline health",
    ),
    Command(
        name="reload",
        handler=cmd_reload,
        aliases=["rl"],
        description="Reload moderation rules and settings",
    ),
    Command(
        name="cleanup",
        handler=cmd_cleanup,
        aliases=["purge"],
        description="Delete old audit log files",
        usage="cleanup [days]",
    ),
    Command(
        name="test",
        handler=cmd_test,
        aliases=["detect"],
        description="Show which rule a piece of text would trigger",
        usage="test <message text>",
    ),
    Command(
        name="clear",
        handler=cmd_clear,
        aliases=["cls"],
        description="Clear the console screen",
    ),
    Command(
        name="shutdown",
        handler=cmd_shutdown,
        aliases=["stop", "quit", "exit"],
        description="Gracefully shut down the bot",
    ),
]


# ==================== Command Dispatcher ====================

async def handle_console_command(command: str, control: ConsoleControl) -> None:
    """Interpret and execute a single console command line."""
    if not command.strip():
        return

    parts = command.strip().split()
    cmd_name = parts[0].lower()
    args = parts[1:]

    for cmd in COMMANDS:
        if cmd.matches(cmd_name):
            try:
                await cmd.handler(control, args)
            except Exception as exc:
                logger.exception("Error executing command '%s': %s", cmd_name, exc)
                console_print(f"Error executing command: {exc}", "ansired")
            return

    console_print(f"Unknown command '{cmd_name}'. Type 'help' for available commands.", "ansired")


async def run_console(control: ConsoleControl) -> None:
    """Run the interactive operator console until shutdown is requested."""
    session = PromptSession("> ")

    for line in box_title("ModSentry Interactive Console"):
        console_print(line, "ansigreen")
    console_print("Type 'help' for available commands or 'exit' to quit.\n", "ansibrightblack")

    with patch_stdout():
        while not control.is_shutdown_requested():
            try:
                line = await session.prompt_async()
                if line.strip():
                    await handle_console_command(line, control)
            except (EOFError, KeyboardInterrupt):
                console_print("\nShutdown requested by user.", "ansiyellow")
                control.request_shutdown()
                await close_bot_instance(control.bot)
                break
            except Exception as exc:  # pragma: no cover
                logger.exception("Error in console input loop: %s", exc)
                console_print(f"Error: {exc}", "ansired")


@asynccontextmanager
async def console_session(control: ConsoleControl) -> AsyncIterator[ConsoleControl]:
    """Run the console alongside the bot, cleaning up automatically."""
    console_task = asyncio.create_task(run_console(control))
    try:
        yield control
    finally:
        control.request_shutdown()
        console_task.cancel()
        try:
            await console_task
        except asyncio.CancelledError:
            pass

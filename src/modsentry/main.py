"""
ModSentry
=========

A Discord bot that scans guild messages for configured words and escalates
through warnings, message deletion and timeouts, recording every moderation
outcome in an audit log.
"""

import os
import sys
from pathlib import Path

def resolve_base_dir() -> Path:
    """Determine the base directory of the project.
    Resolution order:
    1. MODSENTRY_HOME environment variable, if set.
    2. If running in a frozen/compiled context (e.g., PyInstaller, Nuitka), use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("MODSENTRY_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]

BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from modsentry.configuration.app_configuration import CONFIG_PATH, AppConfig
from modsentry.configuration.rule_store import RuleStore
from modsentry.moderation.action_executor import ActionExecutor
from modsentry.moderation.audit_logger import AuditLogger
from modsentry.moderation.moderation_pipeline import ModerationPipeline
from modsentry.moderation.word_detector import MatchMode, WordDetector
from modsentry.ui.console import ConsoleControl, close_bot_instance, console_session
from modsentry.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Returns
    -------
    str
        Discord bot token extracted from the loaded environment.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Construct the Discord intents required for message moderation.

    Returns
    -------
    discord.Intents
        Intents enabling guild, member and message content events.
    """
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.members = True
    return intents


def build_pipeline(app_config: AppConfig) -> ModerationPipeline:
    """Wire the moderation components from the application configuration."""
    rule_store = RuleStore(app_config.rules_path)
    detector = WordDetector(rule_store, MatchMode.parse(app_config.match_mode))
    executor = ActionExecutor()
    executor.set_retry_attempts(app_config.retry_attempts)
    executor.set_retry_delay(app_config.retry_base_delay_ms)
    audit_logger = AuditLogger(app_config.log_directory)
    return ModerationPipeline(rule_store, detector, executor, audit_logger)


def load_cogs(discord_bot_instance: discord.Bot, pipeline: ModerationPipeline) -> None:
    """Register all operational cogs with the provided Discord bot instance."""
    from modsentry.cog.listener import message_listener

    message_listener.setup(discord_bot_instance, pipeline)

    logger.info("All cogs loaded successfully.")


def create_bot(pipeline: ModerationPipeline) -> discord.Bot:
    """Instantiate the Discord bot, register all cogs and hand it to the executor."""
    bot = discord.Bot(intents=build_intents())
    load_cogs(bot, pipeline)
    pipeline.executor.set_client(bot)
    return bot


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and handle lifecycle logging around the connection.

    Parameters
    ----------
    bot:
        Discord client to start.
    token:
        Authentication token used to connect to Discord.
    """
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None = None) -> None:
    """Gracefully stop the Discord bot."""
    await close_bot_instance(bot, log_close=True)
    logger.info("Shutdown complete.")


async def run_bot_session(bot: discord.Bot, token: str, control: ConsoleControl) -> int:
    """Run the bot alongside the console, returning an exit code."""
    control.set_bot(bot)
    exit_code = 0

    try:
        async with console_session(control):
            try:
                await start_bot(bot, token)
            except asyncio.CancelledError:
                logger.info("Bot start cancelled; proceeding to shutdown")
            except Exception as exc:
                logger.critical("Discord bot runtime error: %s", exc)
                exit_code = 1
    finally:
        control.set_bot(None)
        await shutdown_runtime(bot)

    return exit_code


async def async_main() -> int:
    """Bootstrap the moderation pipeline, bot and console, returning an exit code.

    Returns
    -------
    int
        Process exit code reflecting success or failure of initialization.
    """
    token = load_environment()
    app_config = AppConfig(CONFIG_PATH)

    try:
        pipeline = build_pipeline(app_config)
        rule_set = pipeline.initialize()
    except Exception as exc:
        logger.critical("Failed to initialize moderation pipeline: %s", exc)
        return 1

    if rule_set.from_defaults:
        logger.warning("Running with built-in default rules; check %s", app_config.rules_path)

    try:
        bot = create_bot(pipeline)
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        return 1

    control = ConsoleControl(pipeline, log_retention_days=app_config.log_retention_days)
    return await run_bot_session(bot, token, control)


def main() -> int:
    """Entrypoint that orchestrates the async runtime and returns the process code.

    Returns
    -------
    int
        Exit code propagated to the operating system.
    """
    logger.info("Starting ModSentry…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        if code is None:
            return 1
        try:
            return int(code)
        except (ValueError, TypeError):
            logger.warning("SystemExit.code is not an int (%r); defaulting to 1", code)
            return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    sys.exit(main())

"""Message listener Cog for ModSentry.

This cog has exactly ONE responsibility: listen to Discord message events and
hand qualifying messages to the ModerationPipeline.

Detection, enforcement and auditing live in the pipeline, NOT here.
"""

import discord
from discord.ext import commands

from modsentry.moderation.moderation_pipeline import ModerationPipeline
from modsentry.util import discord_utils
from modsentry.util.logger import get_logger

logger = get_logger("message_listener_cog")


class MessageListenerCog(commands.Cog):
    """
    Thin event listener that forwards messages to the moderation pipeline.

    Parameters
    ----------
    bot:
        Discord bot instance.
    pipeline:
        Processes every forwarded message.
    """

    def __init__(self, bot: discord.Bot, pipeline: ModerationPipeline) -> None:
        self.bot = bot
        self._pipeline = pipeline
        logger.info("[MESSAGE LISTENER] Message listener cog loaded")

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message) -> None:
        """Convert and forward the message; the pipeline never raises."""
        if not discord_utils.should_process_message(message):
            return

        logger.debug(
            "Received message from %s: %s",
            message.author,
            (message.clean_content or "[no text]")[:80],
        )

        await self._pipeline.process(discord_utils.build_inbound_message(message))


def setup(bot: discord.Bot, pipeline: ModerationPipeline) -> None:
    """Register the MessageListenerCog with the bot."""
    bot.add_cog(MessageListenerCog(bot, pipeline))

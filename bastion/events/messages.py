"""
Bastion - Message Events
========================

Handles message create, delete and edit events.

DESIGN:
    on_message runs the spam pipeline before prefix commands. A message
    that triggered a strike is not dispatched as a command, because it
    may already have been purged.
"""

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from bastion.commands.prefix import PrefixCommands
from bastion.core.config import get_config
from bastion.core.errors import StorageError
from bastion.core.logger import logger
from bastion.core.storage.models import MessageLogAction
from bastion.utils.error_handler import ErrorHandler, safe_execute

if TYPE_CHECKING:
    from bastion.bot import Bastion


NO_CONTENT = "No content"


def format_edit_content(before: str, after: str) -> str:
    return f"Old: {before or NO_CONTENT} | New: {after or NO_CONTENT}"


class MessageEvents(commands.Cog):
    """Message event handlers."""

    def __init__(self, bot: "Bastion") -> None:
        self.bot = bot
        self.config = get_config()
        self.storage = bot.storage
        self.prefix_commands = PrefixCommands(bot, self.storage)

    # =========================================================================
    # Create
    # =========================================================================

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or not message.guild:
            return

        try:
            outcome = await self.bot.anti_spam.check_message(message)
        except Exception as e:
            ErrorHandler.handle(e, location="MessageEvents.on_message.anti_spam", message=message)
            outcome = None

        if outcome is not None:
            return

        if message.content.startswith(self.config.command_prefix):
            await self.prefix_commands.handle(message)

    # =========================================================================
    # Delete / Edit Logging
    # =========================================================================

    def _log_message(self, message: discord.Message, content: str, action: MessageLogAction) -> None:
        try:
            self.storage.create_message_log(
                str(message.guild.id),
                str(message.channel.id),
                str(message.id),
                str(message.author.id),
                content,
                action.value,
            )
        except StorageError as e:
            logger.warning("Message Log Failed", [
                ("Action", action.value),
                ("Message ID", str(message.id)),
                ("Error", str(e)[:100]),
            ])

    @commands.Cog.listener()
    @safe_execute
    async def on_message_delete(self, message: discord.Message) -> None:
        if message.author.bot or not message.guild:
            return
        self._log_message(message, message.content or NO_CONTENT, MessageLogAction.DELETED)

    @commands.Cog.listener()
    @safe_execute
    async def on_message_edit(self, before: discord.Message, after: discord.Message) -> None:
        if after.author.bot or not after.guild:
            return
        # Embed unfurls fire edits without a content change
        if before.content == after.content:
            return
        self._log_message(after, format_edit_content(before.content, after.content), MessageLogAction.EDITED)


async def setup(bot: "Bastion") -> None:
    """Add the message events cog to the bot."""
    await bot.add_cog(MessageEvents(bot))
    logger.debug("Message Events Loaded")


__all__ = ["MessageEvents", "format_edit_content", "setup"]

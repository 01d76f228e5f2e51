"""
Bastion - Custom Commands
=========================

/custom add|remove|list for guild-defined prefix commands.

DESIGN:
    Names are lowercased by storage and may not be empty or contain
    whitespace, since the prefix router splits on whitespace.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands
from discord.ext import commands

from bastion.core.config import EmbedColors, get_config
from bastion.core.constants import MESSAGE_MAX_LENGTH
from bastion.core.errors import StorageError
from bastion.core.logger import logger
from bastion.utils.permissions import check_interaction_permission

if TYPE_CHECKING:
    from bastion.bot import Bastion


MAX_NAME_LENGTH = 32


def validate_command_name(name: str) -> Optional[str]:
    """Return an error message for an unusable command name, else None."""
    if not name or any(ch.isspace() for ch in name):
        return "❌ Command names cannot be empty or contain spaces."
    if len(name) > MAX_NAME_LENGTH:
        return f"❌ Command names must be {MAX_NAME_LENGTH} characters or fewer."
    return None


class CustomCommandsCog(commands.Cog):
    """Manage a guild's custom prefix commands."""

    custom = app_commands.Group(
        name="custom",
        description="Manage custom commands",
        guild_only=True,
    )

    def __init__(self, bot: "Bastion") -> None:
        self.bot = bot
        self.config = get_config()
        self.storage = bot.storage

    @custom.command(name="add", description="Add a custom command")
    @app_commands.describe(
        name="Command name (used as !name)",
        response="Text the bot replies with",
        description="Short description",
    )
    async def add(
        self,
        interaction: discord.Interaction,
        name: str,
        response: app_commands.Range[str, 1, MESSAGE_MAX_LENGTH],
        description: Optional[str] = None,
    ) -> None:
        server_config = self.storage.get_server_config(str(interaction.guild_id))
        if not await check_interaction_permission(interaction, server_config):
            return

        error = validate_command_name(name.strip())
        if error:
            await interaction.response.send_message(error, ephemeral=True)
            return

        try:
            command = self.storage.create_custom_command(
                str(interaction.guild_id),
                name.strip(),
                response,
                str(interaction.user.id),
                description,
            )
        except StorageError as e:
            await interaction.response.send_message(f"❌ {e}", ephemeral=True)
            return

        await interaction.response.send_message(
            f"✅ Custom command `{self.config.command_prefix}{command['name']}` created.",
            ephemeral=True,
        )

    @custom.command(name="remove", description="Remove a custom command")
    @app_commands.describe(name="Command name to remove")
    async def remove(self, interaction: discord.Interaction, name: str) -> None:
        server_config = self.storage.get_server_config(str(interaction.guild_id))
        if not await check_interaction_permission(interaction, server_config):
            return

        if not self.storage.delete_custom_command(str(interaction.guild_id), name.strip()):
            await interaction.response.send_message(f"❌ No custom command named `{name}`.", ephemeral=True)
            return

        logger.tree("Custom Command Removed", [
            ("Guild", str(interaction.guild_id)),
            ("Name", name.strip().lower()),
            ("By", str(interaction.user)),
        ], emoji="🗑️")
        await interaction.response.send_message(f"✅ Custom command `{name}` removed.", ephemeral=True)

    @custom.command(name="list", description="List custom commands")
    async def list_commands(self, interaction: discord.Interaction) -> None:
        commands_ = self.storage.get_custom_commands(str(interaction.guild_id))
        if not commands_:
            await interaction.response.send_message("This server has no custom commands.", ephemeral=True)
            return

        prefix = self.config.command_prefix
        lines = [
            f"`{prefix}{c['name']}`" + (f" - {c['description']}" if c.get("description") else "")
            for c in commands_
        ]
        embed = discord.Embed(
            title="📝 Custom Commands",
            description="\n".join(lines),
            color=EmbedColors.INFO,
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)


async def setup(bot: "Bastion") -> None:
    """Load the Custom Commands cog."""
    await bot.add_cog(CustomCommandsCog(bot))
    logger.tree("Custom Commands Cog Loaded", [
        ("Commands", "/custom add, /custom remove, /custom list"),
    ], emoji="📝")


__all__ = ["CustomCommandsCog", "validate_command_name", "setup"]

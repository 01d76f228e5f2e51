"""
Bastion - Utility Commands
==========================

Latency, uptime, server/user info, staff DMs and announcements.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands
from discord.ext import commands

from bastion.core.config import EmbedColors, get_config
from bastion.core.constants import MESSAGE_MAX_LENGTH
from bastion.core.logger import logger
from bastion.utils.embeds import build_server_info_embed, build_user_info_embed
from bastion.utils.permissions import check_interaction_permission
from bastion.utils.time_format import format_uptime

if TYPE_CHECKING:
    from bastion.bot import Bastion


class UtilityCog(commands.Cog):
    """Public info commands plus staff messaging."""

    def __init__(self, bot: "Bastion") -> None:
        self.bot = bot
        self.config = get_config()
        self.storage = bot.storage

    # =========================================================================
    # Information
    # =========================================================================

    @app_commands.command(name="ping", description="Check bot latency")
    async def ping(self, interaction: discord.Interaction) -> None:
        embed = discord.Embed(title="🏓 Pong!", color=EmbedColors.INFO)
        embed.add_field(name="API Ping", value=f"{round(self.bot.latency * 1000)}ms", inline=True)
        embed.add_field(name="Status", value="Online ✅", inline=True)
        await interaction.response.send_message(embed=embed)

    @app_commands.command(name="uptime", description="Show how long the bot has been running")
    async def uptime(self, interaction: discord.Interaction) -> None:
        delta = datetime.now(timezone.utc) - self.bot.start_time
        await interaction.response.send_message(f"⏱️ Uptime: **{format_uptime(delta)}**")

    @app_commands.command(name="serverinfo", description="Show information about this server")
    @app_commands.guild_only()
    async def serverinfo(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_message(embed=build_server_info_embed(interaction.guild))

    @app_commands.command(name="userinfo", description="Show information about a member")
    @app_commands.describe(user="The member to look up (defaults to you)")
    @app_commands.guild_only()
    async def userinfo(
        self,
        interaction: discord.Interaction,
        user: Optional[discord.Member] = None,
    ) -> None:
        await interaction.response.send_message(embed=build_user_info_embed(user or interaction.user))

    # =========================================================================
    # Messaging
    # =========================================================================

    @app_commands.command(name="dm", description="Send a DM to a user from server staff")
    @app_commands.describe(user="The user to message", message="The message to send")
    @app_commands.guild_only()
    async def dm(
        self,
        interaction: discord.Interaction,
        user: discord.User,
        message: app_commands.Range[str, 1, MESSAGE_MAX_LENGTH],
    ) -> None:
        server_config = self.storage.get_server_config(str(interaction.guild_id))
        if not await check_interaction_permission(interaction, server_config):
            return
        try:
            await user.send(f"📬 Message from **{interaction.guild.name}** staff:\n{message}")
        except discord.HTTPException:
            await interaction.response.send_message(
                "❌ Failed to send DM. User may have DMs disabled.",
                ephemeral=True,
            )
            return

        logger.tree("Staff DM Sent", [
            ("Moderator", str(interaction.user)),
            ("Target", str(user)),
            ("Guild", interaction.guild.name),
        ], emoji="📬")
        await interaction.response.send_message(f"✅ Message sent to {user.name}.", ephemeral=True)

    @app_commands.command(name="announce", description="Post an announcement")
    @app_commands.describe(
        message="The announcement text",
        channel="Channel to post in (defaults to the configured announcement channel)",
    )
    @app_commands.guild_only()
    async def announce(
        self,
        interaction: discord.Interaction,
        message: app_commands.Range[str, 1, MESSAGE_MAX_LENGTH],
        channel: Optional[discord.TextChannel] = None,
    ) -> None:
        server_config = self.storage.get_server_config(str(interaction.guild_id))
        if not await check_interaction_permission(interaction, server_config, admin=True):
            return

        if channel is None and server_config and server_config.get("announcement_channel_id"):
            channel = interaction.guild.get_channel(int(server_config["announcement_channel_id"]))
        channel = channel or interaction.channel

        embed = discord.Embed(title="📢 Announcement", description=message, color=EmbedColors.INFO)
        embed.set_footer(text=f"Announced by {interaction.user}")
        try:
            await channel.send(embed=embed)
        except discord.HTTPException:
            await interaction.response.send_message("❌ Failed to send announcement.", ephemeral=True)
            return
        await interaction.response.send_message(f"✅ Announcement sent to {channel.mention}.", ephemeral=True)


async def setup(bot: "Bastion") -> None:
    """Load the Utility cog."""
    await bot.add_cog(UtilityCog(bot))
    logger.tree("Utility Cog Loaded", [
        ("Commands", "/ping, /uptime, /serverinfo, /userinfo, /dm, /announce"),
    ], emoji="🧰")


__all__ = ["UtilityCog", "setup"]

"""
Bastion - Server Setup Commands
===============================

/setup to create or update a guild's configuration and /ticketpanel to
post the ticket button panel.

DESIGN:
    /setup only changes the options that were passed. The first run
    creates the configuration with defaults, later runs update it, so
    an admin can set the log channel today and the ticket category
    tomorrow without repeating everything.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

import discord
from discord import app_commands
from discord.ext import commands

from bastion.core.config import EmbedColors, get_config
from bastion.core.errors import StorageError
from bastion.core.logger import logger
from bastion.core.storage.models import ServerConfigInput, ServerConfigRecord
from bastion.services.tickets import TicketPanelView
from bastion.utils.permissions import check_interaction_permission

if TYPE_CHECKING:
    from bastion.bot import Bastion


def _role_ids(*roles: Optional[discord.Role]) -> Optional[List[str]]:
    ids = [str(role.id) for role in roles if role is not None]
    return ids or None


def _channel_value(channel_id: Optional[str]) -> str:
    return f"<#{channel_id}>" if channel_id else "Not set"


def build_config_embed(record: ServerConfigRecord) -> discord.Embed:
    embed = discord.Embed(title="⚙️ Server Configuration", color=EmbedColors.INFO)
    embed.add_field(name="Welcome Channel", value=_channel_value(record.get("welcome_channel_id")), inline=True)
    embed.add_field(name="Mod Log", value=_channel_value(record.get("moderation_log_channel_id")), inline=True)
    embed.add_field(
        name="Announcements",
        value=_channel_value(record.get("announcement_channel_id")),
        inline=True,
    )
    embed.add_field(name="Ticket Category", value=_channel_value(record.get("ticket_category_id")), inline=True)
    auto_role = record.get("auto_role_id")
    embed.add_field(name="Auto Role", value=f"<@&{auto_role}>" if auto_role else "Not set", inline=True)
    embed.add_field(
        name="Spam Protection",
        value=(
            f"On ({record.get('max_messages_per_minute')} msgs/min)"
            if record.get("enable_spam_protection") else "Off"
        ),
        inline=True,
    )
    mod_roles = " ".join(f"<@&{r}>" for r in record.get("moderator_role_ids") or []) or "None"
    admin_roles = " ".join(f"<@&{r}>" for r in record.get("admin_role_ids") or []) or "None"
    embed.add_field(name="Moderator Roles", value=mod_roles, inline=False)
    embed.add_field(name="Admin Roles", value=admin_roles, inline=False)
    return embed


class ServerConfigCog(commands.Cog):
    """Guild configuration commands. Admin only."""

    def __init__(self, bot: "Bastion") -> None:
        self.bot = bot
        self.config = get_config()
        self.storage = bot.storage

    @app_commands.command(name="setup", description="Configure the bot for this server")
    @app_commands.describe(
        welcome_channel="Channel for welcome and goodbye messages",
        welcome_message="Welcome text ({user}, {username}, {server}, {membercount})",
        goodbye_message="Goodbye text ({user}, {username}, {server}, {membercount})",
        auto_role="Role given to new members",
        mod_log_channel="Channel for moderation case logs",
        announcement_channel="Channel for announcements",
        ticket_category="Category where ticket channels are created",
        moderator_role="Role allowed to use moderator commands",
        admin_role="Role allowed to use admin commands",
        spam_protection="Enable automatic spam protection",
        max_messages_per_minute="Messages allowed per minute before a strike",
    )
    @app_commands.guild_only()
    async def setup(
        self,
        interaction: discord.Interaction,
        welcome_channel: Optional[discord.TextChannel] = None,
        welcome_message: Optional[str] = None,
        goodbye_message: Optional[str] = None,
        auto_role: Optional[discord.Role] = None,
        mod_log_channel: Optional[discord.TextChannel] = None,
        announcement_channel: Optional[discord.TextChannel] = None,
        ticket_category: Optional[discord.CategoryChannel] = None,
        moderator_role: Optional[discord.Role] = None,
        admin_role: Optional[discord.Role] = None,
        spam_protection: Optional[bool] = None,
        max_messages_per_minute: Optional[app_commands.Range[int, 1, 120]] = None,
    ) -> None:
        guild = interaction.guild
        existing = self.storage.get_server_config(str(guild.id))
        if not await check_interaction_permission(interaction, existing, admin=True):
            return

        settings = ServerConfigInput(
            name=guild.name,
            welcome_channel_id=str(welcome_channel.id) if welcome_channel else None,
            welcome_message=welcome_message,
            goodbye_message=goodbye_message,
            auto_role_id=str(auto_role.id) if auto_role else None,
            moderation_log_channel_id=str(mod_log_channel.id) if mod_log_channel else None,
            announcement_channel_id=str(announcement_channel.id) if announcement_channel else None,
            ticket_category_id=str(ticket_category.id) if ticket_category else None,
            moderator_role_ids=_role_ids(moderator_role),
            admin_role_ids=_role_ids(admin_role),
            enable_spam_protection=spam_protection,
            max_messages_per_minute=max_messages_per_minute,
        )

        try:
            if existing is None:
                record = self.storage.create_server_config(str(guild.id), guild.name, settings)
            else:
                record = self.storage.update_server_config(str(guild.id), settings)
        except StorageError as e:
            logger.error("Server Setup Failed", [
                ("Guild", guild.name),
                ("Error", str(e)[:100]),
            ])
            await interaction.response.send_message("❌ Failed to save configuration.", ephemeral=True)
            return

        logger.tree("Server Configured", [
            ("Guild", guild.name),
            ("By", str(interaction.user)),
            ("Changed", ", ".join(settings.changes()) or "nothing"),
        ], emoji="⚙️")
        await interaction.response.send_message(embed=build_config_embed(record), ephemeral=True)

    @app_commands.command(name="ticketpanel", description="Post the ticket creation panel")
    @app_commands.describe(channel="Channel to post the panel in (defaults to here)")
    @app_commands.guild_only()
    async def ticketpanel(
        self,
        interaction: discord.Interaction,
        channel: Optional[discord.TextChannel] = None,
    ) -> None:
        server_config = self.storage.get_server_config(str(interaction.guild_id))
        if not await check_interaction_permission(interaction, server_config, admin=True):
            return
        if not server_config or not server_config.get("ticket_category_id"):
            await interaction.response.send_message(
                "❌ Set a ticket category with /setup first.", ephemeral=True,
            )
            return

        service = self.bot.ticket_service
        target = channel or interaction.channel
        try:
            await target.send(embed=service.build_panel_embed(), view=TicketPanelView(service))
        except discord.HTTPException:
            await interaction.response.send_message("❌ Failed to post the ticket panel.", ephemeral=True)
            return
        await interaction.response.send_message(f"✅ Ticket panel posted in {target.mention}.", ephemeral=True)


async def setup(bot: "Bastion") -> None:
    """Load the Server Config cog."""
    await bot.add_cog(ServerConfigCog(bot))
    logger.tree("Server Config Cog Loaded", [
        ("Commands", "/setup, /ticketpanel"),
    ], emoji="⚙️")


__all__ = ["ServerConfigCog", "build_config_embed", "setup"]

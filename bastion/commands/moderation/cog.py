"""
Bastion - Moderation Cog
========================

Slash commands for manual moderation and case lookup.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands
from discord.ext import commands

from bastion.core.config import EmbedColors, get_config
from bastion.core.constants import CASES_DISPLAY_LIMIT, PURGE_MAX, PURGE_MIN, SLOWMODE_MAX_SECONDS
from bastion.core.errors import SanctionApplicationFailure, StorageError
from bastion.core.logger import logger
from bastion.services.moderation import build_case_embed, validate_target
from bastion.utils.embeds import build_warnings_embed
from bastion.utils.permissions import check_interaction_permission

if TYPE_CHECKING:
    from bastion.bot import Bastion


class ModerationCog(commands.Cog):
    """Cog for kick, ban, warn, clean, slowmode and case lookup."""

    def __init__(self, bot: "Bastion") -> None:
        self.bot = bot
        self.config = get_config()
        self.storage = bot.storage
        self.moderation = bot.moderation

    def _server_config(self, interaction: discord.Interaction):
        return self.storage.get_server_config(str(interaction.guild_id))

    async def _check_target(self, interaction: discord.Interaction, member: discord.Member) -> bool:
        error = validate_target(interaction.user, member, interaction.guild)
        if error:
            await interaction.response.send_message(error, ephemeral=True)
            return False
        return True

    # =========================================================================
    # Sanctions
    # =========================================================================

    @app_commands.command(name="kick", description="Kick a member from the server")
    @app_commands.describe(user="The member to kick", reason="Reason for the kick")
    @app_commands.guild_only()
    async def kick(
        self,
        interaction: discord.Interaction,
        user: discord.Member,
        reason: Optional[str] = None,
    ) -> None:
        if not await check_interaction_permission(interaction, self._server_config(interaction)):
            return
        if not await self._check_target(interaction, user):
            return

        await interaction.response.defer()
        try:
            record = await self.moderation.kick(interaction.guild, user, interaction.user, reason)
        except SanctionApplicationFailure:
            await interaction.followup.send("❌ Failed to kick user. Check permissions and try again.")
            return
        await interaction.followup.send(embed=build_case_embed(record, user, interaction.user))

    @app_commands.command(name="ban", description="Ban a user from the server")
    @app_commands.describe(
        user="The user to ban",
        reason="Reason for the ban",
        delete_messages="Delete the user's messages from the last 7 days",
    )
    @app_commands.guild_only()
    async def ban(
        self,
        interaction: discord.Interaction,
        user: discord.User,
        reason: Optional[str] = None,
        delete_messages: bool = False,
    ) -> None:
        if not await check_interaction_permission(interaction, self._server_config(interaction), admin=True):
            return
        member = interaction.guild.get_member(user.id)
        if member is not None and not await self._check_target(interaction, member):
            return

        await interaction.response.defer()
        try:
            record = await self.moderation.ban(
                interaction.guild, user, interaction.user, reason, delete_messages=delete_messages,
            )
        except SanctionApplicationFailure:
            await interaction.followup.send("❌ Failed to ban user. Check permissions and try again.")
            return
        await interaction.followup.send(embed=build_case_embed(record, user, interaction.user))

    @app_commands.command(name="warn", description="Issue a warning to a member")
    @app_commands.describe(user="The member to warn", reason="Reason for the warning")
    @app_commands.guild_only()
    async def warn(
        self,
        interaction: discord.Interaction,
        user: discord.Member,
        reason: Optional[str] = None,
    ) -> None:
        if not await check_interaction_permission(interaction, self._server_config(interaction)):
            return

        await interaction.response.defer()
        try:
            _, record = await self.moderation.warn(interaction.guild, user, interaction.user, reason)
        except StorageError:
            await interaction.followup.send("❌ Failed to warn user.")
            return
        await interaction.followup.send(embed=build_case_embed(record, user, interaction.user))

    # =========================================================================
    # Lookup
    # =========================================================================

    @app_commands.command(name="warnings", description="Show a user's warnings")
    @app_commands.describe(user="The user to check")
    @app_commands.guild_only()
    async def warnings(self, interaction: discord.Interaction, user: discord.User) -> None:
        if not await check_interaction_permission(interaction, self._server_config(interaction)):
            return
        warnings = self.storage.get_user_warnings(str(interaction.guild_id), str(user.id))
        if not warnings:
            await interaction.response.send_message(f"{user.name} has no warnings.", ephemeral=True)
            return
        await interaction.response.send_message(embed=build_warnings_embed(user, warnings), ephemeral=True)

    @app_commands.command(name="case", description="Look up a moderation case")
    @app_commands.describe(number="The case number")
    @app_commands.guild_only()
    async def case(self, interaction: discord.Interaction, number: app_commands.Range[int, 1]) -> None:
        if not await check_interaction_permission(interaction, self._server_config(interaction)):
            return
        record = self.moderation.ledger.get_by_case_number(str(interaction.guild_id), number)
        if record is None:
            await interaction.response.send_message(f"Case #{number} not found.", ephemeral=True)
            return
        await interaction.response.send_message(embed=build_case_embed(record), ephemeral=True)

    @app_commands.command(name="cases", description="List recent moderation cases")
    @app_commands.guild_only()
    async def cases(self, interaction: discord.Interaction) -> None:
        if not await check_interaction_permission(interaction, self._server_config(interaction)):
            return
        records = self.moderation.ledger.list(str(interaction.guild_id), limit=CASES_DISPLAY_LIMIT)
        if not records:
            await interaction.response.send_message("No moderation cases yet.", ephemeral=True)
            return

        lines = [
            f"**#{r.case_number}** {r.action.value} <@{r.target_user_id}> "
            f"by <@{r.moderator_user_id}> <t:{int(r.created_at)}:R>"
            for r in records
        ]
        embed = discord.Embed(
            title="📁 Recent Cases",
            description="\n".join(lines),
            color=EmbedColors.INFO,
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    # =========================================================================
    # Channel Tools
    # =========================================================================

    @app_commands.command(name="clean", description="Delete recent messages in this channel")
    @app_commands.describe(amount="Number of messages to delete (1-100)")
    @app_commands.guild_only()
    async def clean(
        self,
        interaction: discord.Interaction,
        amount: app_commands.Range[int, PURGE_MIN, PURGE_MAX],
    ) -> None:
        if not await check_interaction_permission(interaction, self._server_config(interaction)):
            return
        await interaction.response.defer(ephemeral=True)
        try:
            deleted = await self.moderation.purge(interaction.channel, amount)
        except SanctionApplicationFailure:
            await interaction.followup.send("❌ Failed to delete messages.", ephemeral=True)
            return
        await interaction.followup.send(f"🧹 Deleted {deleted} messages.", ephemeral=True)

    @app_commands.command(name="slowmode", description="Set this channel's slowmode")
    @app_commands.describe(seconds="Delay between messages in seconds (0 disables)")
    @app_commands.guild_only()
    async def slowmode(
        self,
        interaction: discord.Interaction,
        seconds: app_commands.Range[int, 0, SLOWMODE_MAX_SECONDS],
    ) -> None:
        if not await check_interaction_permission(interaction, self._server_config(interaction)):
            return
        try:
            await interaction.channel.edit(
                slowmode_delay=seconds,
                reason=f"Slowmode set by {interaction.user}",
            )
        except discord.HTTPException as e:
            logger.warning("Slowmode Failed", [
                ("Channel", str(interaction.channel_id)),
                ("Error", str(e)[:100]),
            ])
            await interaction.response.send_message("❌ Failed to set slowmode.", ephemeral=True)
            return

        if seconds:
            await interaction.response.send_message(f"🐌 Slowmode set to {seconds} seconds.")
        else:
            await interaction.response.send_message("✅ Slowmode disabled.")


__all__ = ["ModerationCog"]

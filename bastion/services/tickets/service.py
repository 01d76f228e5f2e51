"""
Bastion - Ticket Service
========================

Private support channels opened and closed from persistent buttons.

DESIGN:
    A panel message carries a "create_ticket" button. Pressing it creates
    a private channel under the guild's configured ticket category that
    only the opener, the bot and the configured moderator/admin roles can
    see. Each user may hold one open ticket per guild. Closing records a
    ticket_close case and deletes the channel after TICKET_CLOSE_DELAY
    seconds.
"""

import asyncio
import re
from typing import Dict, Optional, Set, Tuple, TYPE_CHECKING

import discord

from bastion.core.config import EmbedColors, get_config
from bastion.core.constants import TICKET_DEFAULT_SUBJECT
from bastion.core.errors import StorageError
from bastion.core.logger import logger
from bastion.core.storage import Storage, get_storage
from bastion.core.storage.models import (
    ModerationAction,
    NewModerationRecord,
    ServerConfigRecord,
    TicketRecord,
    TicketStatus,
)
from bastion.services.case_log import CaseLedger
from bastion.utils.async_utils import create_safe_task

if TYPE_CHECKING:
    from bastion.bot import Bastion


_CHANNEL_NAME_PATTERN = re.compile(r"[^a-z0-9-]")


def ticket_channel_name(username: str) -> str:
    """Discord-safe channel name for a user's ticket."""
    slug = _CHANNEL_NAME_PATTERN.sub("", username.lower().replace(" ", "-"))
    return f"ticket-{slug or 'user'}"[:100]


class TicketService:
    """Create and close support tickets."""

    def __init__(self, bot: "Bastion", storage: Optional[Storage] = None) -> None:
        self.bot = bot
        self.config = get_config()
        self.storage = storage or get_storage()
        self.ledger = CaseLedger(self.storage)
        # Strong refs so scheduled channel deletes are not garbage collected
        self._pending_deletes: Set[asyncio.Task] = set()
        # (guild, user) pairs whose ticket channel is still being created
        self._opening: Set[Tuple[str, str]] = set()

    # =========================================================================
    # Queries
    # =========================================================================

    def get_open_ticket(self, server_id: str, user_id: str) -> Optional[TicketRecord]:
        for ticket in self.storage.get_tickets(str(server_id), TicketStatus.OPEN.value):
            if ticket["user_id"] == str(user_id):
                return ticket
        return None

    # =========================================================================
    # Panel
    # =========================================================================

    def build_panel_embed(self) -> discord.Embed:
        embed = discord.Embed(
            title="🎫 Support Tickets",
            description="Need help? Press the button below to open a private ticket with the staff team.",
            color=EmbedColors.TICKET,
        )
        return embed

    # =========================================================================
    # Open
    # =========================================================================

    async def open_ticket(self, interaction: discord.Interaction) -> Optional[TicketRecord]:
        """
        Handle the create_ticket button.

        Returns:
            The stored ticket, or None when the request was refused.
        """
        guild = interaction.guild
        user = interaction.user
        if guild is None:
            return None

        config = self.storage.get_server_config(str(guild.id))
        category_id = config.get("ticket_category_id") if config else None
        if not category_id:
            await interaction.response.send_message(
                "❌ Tickets are not configured on this server.", ephemeral=True,
            )
            return None

        # Check and claim with no await in between
        key = (str(guild.id), str(user.id))
        if key in self._opening:
            await interaction.response.send_message(
                "⏳ Your ticket is already being created.", ephemeral=True,
            )
            return None

        existing = self.get_open_ticket(str(guild.id), str(user.id))
        if existing:
            await interaction.response.send_message(
                f"❌ You already have an open ticket: <#{existing['channel_id']}>", ephemeral=True,
            )
            return None

        self._opening.add(key)
        try:
            return await self._create_ticket(interaction, config, category_id)
        finally:
            self._opening.discard(key)

    async def _create_ticket(
        self,
        interaction: discord.Interaction,
        config: ServerConfigRecord,
        category_id: str,
    ) -> Optional[TicketRecord]:
        guild = interaction.guild
        user = interaction.user

        category = guild.get_channel(int(category_id))
        if not isinstance(category, discord.CategoryChannel):
            await interaction.response.send_message(
                "❌ The ticket category no longer exists. Please contact an admin.", ephemeral=True,
            )
            logger.warning("Ticket Category Missing", [
                ("Guild", str(guild.id)),
                ("Category ID", str(category_id)),
            ])
            return None

        await interaction.response.defer(ephemeral=True)

        try:
            channel = await guild.create_text_channel(
                ticket_channel_name(user.name),
                category=category,
                overwrites=self._build_overwrites(guild, user, config),
                reason=f"Ticket opened by {user}",
            )
        except discord.HTTPException as e:
            logger.error("Ticket Channel Create Failed", [
                ("Guild", str(guild.id)),
                ("User", str(user)),
                ("Error", str(e)[:100]),
            ])
            await interaction.followup.send("❌ Failed to create your ticket.", ephemeral=True)
            return None

        ticket = self.storage.create_ticket(
            str(guild.id), str(channel.id), str(user.id), TICKET_DEFAULT_SUBJECT,
        )

        from .views import TicketCloseView

        embed = discord.Embed(
            title=f"Ticket #{ticket['id']}",
            description=f"{user.mention}, thanks for reaching out. Staff will be with you shortly.",
            color=EmbedColors.TICKET,
        )
        embed.add_field(name="Subject", value=ticket["subject"], inline=False)
        await channel.send(content=user.mention, embed=embed, view=TicketCloseView(self))
        await interaction.followup.send(f"✅ Ticket created: {channel.mention}", ephemeral=True)

        logger.tree("Ticket Opened", [
            ("Guild", guild.name),
            ("User", str(user)),
            ("Channel", channel.name),
            ("Ticket ID", str(ticket["id"])),
        ], emoji="🎫")
        return ticket

    def _build_overwrites(
        self,
        guild: discord.Guild,
        user: discord.abc.User,
        config: ServerConfigRecord,
    ) -> Dict[discord.abc.Snowflake, discord.PermissionOverwrite]:
        overwrites = {
            guild.default_role: discord.PermissionOverwrite(view_channel=False),
            user: discord.PermissionOverwrite(view_channel=True, send_messages=True, read_message_history=True),
            guild.me: discord.PermissionOverwrite(view_channel=True, send_messages=True, manage_channels=True),
        }
        role_ids = list(config.get("moderator_role_ids") or []) + list(config.get("admin_role_ids") or [])
        for role_id in role_ids:
            role = guild.get_role(int(role_id))
            if role:
                overwrites[role] = discord.PermissionOverwrite(view_channel=True, send_messages=True)
        return overwrites

    # =========================================================================
    # Close
    # =========================================================================

    async def close_ticket(self, interaction: discord.Interaction) -> Optional[TicketRecord]:
        """Handle the close_ticket button."""
        channel = interaction.channel
        ticket = self.storage.get_ticket_by_channel(str(channel.id)) if channel else None
        if ticket is None or ticket["status"] == TicketStatus.CLOSED.value:
            await interaction.response.send_message("❌ This is not an open ticket.", ephemeral=True)
            return None

        ticket = self.storage.update_ticket(ticket["id"], TicketStatus.CLOSED.value)

        try:
            self.ledger.append(NewModerationRecord(
                guild_id=ticket["server_id"],
                target_user_id=ticket["user_id"],
                moderator_user_id=str(interaction.user.id),
                action=ModerationAction.TICKET_CLOSE,
                reason="Ticket closed",
            ))
        except StorageError as e:
            logger.error("Ticket Close Case Failed", [
                ("Ticket ID", str(ticket["id"])),
                ("Error", str(e)[:100]),
            ])

        delay = self.config.ticket_close_delay
        await interaction.response.send_message(
            f"🔒 Ticket closed by {interaction.user.mention}. This channel will be deleted in {delay} seconds.",
        )

        task = create_safe_task(self._delete_channel_later(channel, delay), "Ticket Channel Delete")
        self._pending_deletes.add(task)
        task.add_done_callback(self._pending_deletes.discard)

        logger.tree("Ticket Closed", [
            ("Ticket ID", str(ticket["id"])),
            ("Closed By", str(interaction.user)),
            ("Delete In", f"{delay}s"),
        ], emoji="🔒")
        return ticket

    async def _delete_channel_later(self, channel: discord.abc.GuildChannel, delay: int) -> None:
        await asyncio.sleep(delay)
        try:
            await channel.delete(reason="Ticket closed")
        except discord.NotFound:
            pass
        except discord.HTTPException as e:
            logger.warning("Ticket Channel Delete Failed", [
                ("Channel", str(channel.id)),
                ("Error", str(e)[:100]),
            ])


__all__ = ["TicketService", "ticket_channel_name"]

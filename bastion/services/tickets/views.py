"""
Bastion - Ticket Views
======================

Persistent button views for the ticket panel and ticket channels.

DESIGN:
    Both views use fixed custom_ids and timeout=None so the bot can
    re-register them on startup and keep buttons working across restarts.
"""

from typing import TYPE_CHECKING

import discord

from bastion.core.constants import TICKET_CLOSE_CUSTOM_ID, TICKET_CREATE_CUSTOM_ID

if TYPE_CHECKING:
    from .service import TicketService


class TicketPanelView(discord.ui.View):
    """Panel with the create ticket button."""

    def __init__(self, service: "TicketService") -> None:
        super().__init__(timeout=None)
        self.service = service

    @discord.ui.button(
        label="Create Ticket",
        emoji="🎫",
        style=discord.ButtonStyle.primary,
        custom_id=TICKET_CREATE_CUSTOM_ID,
    )
    async def create_ticket(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await self.service.open_ticket(interaction)


class TicketCloseView(discord.ui.View):
    """Close button posted inside each ticket channel."""

    def __init__(self, service: "TicketService") -> None:
        super().__init__(timeout=None)
        self.service = service

    @discord.ui.button(
        label="Close Ticket",
        emoji="🔒",
        style=discord.ButtonStyle.danger,
        custom_id=TICKET_CLOSE_CUSTOM_ID,
    )
    async def close_ticket(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await self.service.close_ticket(interaction)


def setup_ticket_views(bot, service: "TicketService") -> None:
    """Register persistent views so old buttons keep working."""
    bot.add_view(TicketPanelView(service))
    bot.add_view(TicketCloseView(service))


__all__ = ["TicketPanelView", "TicketCloseView", "setup_ticket_views"]

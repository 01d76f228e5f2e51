"""
Bastion - Ticket Package
========================

Support tickets with persistent buttons.
"""

from .service import TicketService, ticket_channel_name
from .views import TicketCloseView, TicketPanelView, setup_ticket_views

__all__ = [
    "TicketService",
    "TicketPanelView",
    "TicketCloseView",
    "setup_ticket_views",
    "ticket_channel_name",
]

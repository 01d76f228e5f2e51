"""
Bastion - Database Ticket Operations Module
===========================================

Support ticket rows.
"""

import time
from typing import List, Optional, TYPE_CHECKING

from bastion.core.errors import NotFoundError
from bastion.core.logger import logger
from bastion.core.storage.models import TicketRecord, TicketStatus

if TYPE_CHECKING:
    from bastion.core.storage.database.manager import DatabaseStorage


class TicketsMixin:
    """Mixin for ticket operations."""

    def get_tickets(
        self: "DatabaseStorage",
        server_id: str,
        status: Optional[str] = None,
    ) -> List[TicketRecord]:
        if status is None:
            rows = self.fetchall(
                "SELECT * FROM tickets WHERE server_id = ? ORDER BY id DESC",
                (str(server_id),),
            )
        else:
            rows = self.fetchall(
                "SELECT * FROM tickets WHERE server_id = ? AND status = ? ORDER BY id DESC",
                (str(server_id), status),
            )
        return [dict(row) for row in rows]

    def get_ticket_by_channel(self: "DatabaseStorage", channel_id: str) -> Optional[TicketRecord]:
        row = self.fetchone("SELECT * FROM tickets WHERE channel_id = ?", (str(channel_id),))
        return dict(row) if row else None

    def create_ticket(
        self: "DatabaseStorage",
        server_id: str,
        channel_id: str,
        user_id: str,
        subject: str,
    ) -> TicketRecord:
        cursor = self.execute(
            """INSERT INTO tickets (server_id, channel_id, user_id, subject, status, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (str(server_id), str(channel_id), str(user_id), subject, TicketStatus.OPEN.value, time.time()),
        )

        logger.tree("Ticket Stored", [
            ("Ticket ID", str(cursor.lastrowid)),
            ("User ID", str(user_id)),
            ("Channel ID", str(channel_id)),
        ], emoji="🎫")

        row = self.fetchone("SELECT * FROM tickets WHERE id = ?", (cursor.lastrowid,))
        return dict(row)

    def update_ticket(self: "DatabaseStorage", ticket_id: int, status: str) -> TicketRecord:
        """
        Set a ticket's status.

        Raises:
            NotFoundError: If no ticket has this ID.
        """
        if status == TicketStatus.CLOSED.value:
            cursor = self.execute(
                "UPDATE tickets SET status = ?, closed_at = ? WHERE id = ?",
                (status, time.time(), ticket_id),
            )
        else:
            cursor = self.execute(
                "UPDATE tickets SET status = ? WHERE id = ?",
                (status, ticket_id),
            )
        if cursor.rowcount == 0:
            raise NotFoundError(f"Ticket {ticket_id} not found")

        row = self.fetchone("SELECT * FROM tickets WHERE id = ?", (ticket_id,))
        return dict(row)

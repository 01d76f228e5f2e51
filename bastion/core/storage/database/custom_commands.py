"""
Bastion - Database Custom Command Module
========================================

Guild-defined text commands.
"""

import time
from typing import List, Optional, TYPE_CHECKING

from bastion.core.errors import StorageError
from bastion.core.logger import logger
from bastion.core.storage.models import CustomCommandRecord

if TYPE_CHECKING:
    from bastion.core.storage.database.manager import DatabaseStorage


class CustomCommandsMixin:
    """Mixin for custom command operations. Names are stored lowercase."""

    def get_custom_commands(self: "DatabaseStorage", server_id: str) -> List[CustomCommandRecord]:
        rows = self.fetchall(
            "SELECT * FROM custom_commands WHERE server_id = ? ORDER BY name",
            (str(server_id),),
        )
        return [dict(row) for row in rows]

    def get_custom_command(
        self: "DatabaseStorage",
        server_id: str,
        name: str,
    ) -> Optional[CustomCommandRecord]:
        row = self.fetchone(
            "SELECT * FROM custom_commands WHERE server_id = ? AND name = ?",
            (str(server_id), name.lower()),
        )
        return dict(row) if row else None

    def create_custom_command(
        self: "DatabaseStorage",
        server_id: str,
        name: str,
        response: str,
        created_by: str,
        description: Optional[str] = None,
    ) -> CustomCommandRecord:
        """
        Create a custom command.

        Raises:
            StorageError: If the guild already has a command with this name.
        """
        name = name.lower()
        if self.get_custom_command(server_id, name):
            raise StorageError(f"Custom command '{name}' already exists")

        cursor = self.execute(
            """INSERT INTO custom_commands (server_id, name, description, response, created_by, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (str(server_id), name, description, response, str(created_by), time.time()),
        )

        logger.tree("Custom Command Created", [
            ("Server", str(server_id)),
            ("Name", name),
            ("Created By", str(created_by)),
        ], emoji="📝")

        row = self.fetchone("SELECT * FROM custom_commands WHERE id = ?", (cursor.lastrowid,))
        return dict(row)

    def delete_custom_command(self: "DatabaseStorage", server_id: str, name: str) -> bool:
        cursor = self.execute(
            "DELETE FROM custom_commands WHERE server_id = ? AND name = ?",
            (str(server_id), name.lower()),
        )
        return cursor.rowcount > 0

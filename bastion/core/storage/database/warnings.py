"""
Bastion - Database Warning Operations Module
============================================

Warning database operations.
"""

import time
from typing import List, TYPE_CHECKING

from bastion.core.logger import logger
from bastion.core.storage.models import WarningRecord

if TYPE_CHECKING:
    from bastion.core.storage.database.manager import DatabaseStorage


class WarningsMixin:
    """Mixin for warning-related database operations."""

    def create_user_warning(
        self: "DatabaseStorage",
        server_id: str,
        user_id: str,
        moderator_id: str,
        reason: str,
    ) -> WarningRecord:
        """
        Add a warning to the database.

        Args:
            server_id: Guild where the warning was issued.
            user_id: User being warned.
            moderator_id: Moderator who issued the warning.
            reason: Reason for the warning.

        Returns:
            The stored warning.
        """
        cursor = self.execute(
            """INSERT INTO user_warnings (server_id, user_id, moderator_id, reason, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (str(server_id), str(user_id), str(moderator_id), reason, time.time()),
        )

        logger.tree("Warning Added", [
            ("User ID", str(user_id)),
            ("Moderator ID", str(moderator_id)),
            ("Reason", (reason or "None")[:50]),
        ], emoji="⚠️")

        row = self.fetchone("SELECT * FROM user_warnings WHERE id = ?", (cursor.lastrowid,))
        return dict(row)

    def get_user_warnings(
        self: "DatabaseStorage",
        server_id: str,
        user_id: str,
    ) -> List[WarningRecord]:
        rows = self.fetchall(
            """SELECT * FROM user_warnings
               WHERE server_id = ? AND user_id = ?
               ORDER BY id DESC""",
            (str(server_id), str(user_id)),
        )
        return [dict(row) for row in rows]

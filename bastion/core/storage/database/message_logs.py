"""
Bastion - Database Message Log Module
=====================================

Deleted and edited message history.
"""

import time
from typing import List, Optional, TYPE_CHECKING

from bastion.core.constants import MESSAGE_LOG_LIMIT
from bastion.core.storage.models import MessageLogRecord

if TYPE_CHECKING:
    from bastion.core.storage.database.manager import DatabaseStorage


class MessageLogsMixin:
    """Mixin for message log operations."""

    def get_message_logs(
        self: "DatabaseStorage",
        server_id: str,
        limit: int = MESSAGE_LOG_LIMIT,
    ) -> List[MessageLogRecord]:
        rows = self.fetchall(
            "SELECT * FROM message_logs WHERE server_id = ? ORDER BY id DESC LIMIT ?",
            (str(server_id), limit),
        )
        return [dict(row) for row in rows]

    def create_message_log(
        self: "DatabaseStorage",
        server_id: str,
        channel_id: str,
        message_id: str,
        user_id: str,
        content: Optional[str],
        action: str,
    ) -> MessageLogRecord:
        cursor = self.execute(
            """INSERT INTO message_logs
               (server_id, channel_id, message_id, user_id, content, action, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (str(server_id), str(channel_id), str(message_id), str(user_id), content, action, time.time()),
        )
        row = self.fetchone("SELECT * FROM message_logs WHERE id = ?", (cursor.lastrowid,))
        return dict(row)

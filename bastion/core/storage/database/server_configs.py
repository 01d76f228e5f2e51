"""
Bastion - Database Server Config Module
=======================================

Per-guild configuration rows.
"""

import json
import sqlite3
import time
from typing import Optional, TYPE_CHECKING

from bastion.core.errors import NotFoundError
from bastion.core.logger import logger
from bastion.core.storage.database.base import _safe_json_loads
from bastion.core.storage.models import ServerConfigInput, ServerConfigRecord, default_server_config

if TYPE_CHECKING:
    from bastion.core.storage.database.manager import DatabaseStorage


_LIST_FIELDS = ("moderator_role_ids", "admin_role_ids")


def _row_to_config(row: sqlite3.Row) -> ServerConfigRecord:
    record = dict(row)
    for list_field in _LIST_FIELDS:
        record[list_field] = [str(v) for v in _safe_json_loads(record.get(list_field), [])]
    record["enable_spam_protection"] = bool(record["enable_spam_protection"])
    return record


def _to_column(key: str, value):
    if key in _LIST_FIELDS:
        return json.dumps([str(v) for v in value])
    if key == "enable_spam_protection":
        return 1 if value else 0
    return value


class ServerConfigsMixin:
    """Mixin for server configuration operations."""

    def get_server_config(self: "DatabaseStorage", server_id: str) -> Optional[ServerConfigRecord]:
        row = self.fetchone("SELECT * FROM server_configs WHERE id = ?", (str(server_id),))
        return _row_to_config(row) if row else None

    def create_server_config(
        self: "DatabaseStorage",
        server_id: str,
        name: str,
        settings: Optional[ServerConfigInput] = None,
    ) -> ServerConfigRecord:
        """
        Create the configuration row for a guild with defaults applied.

        Args:
            server_id: Guild ID.
            name: Guild name at creation time.
            settings: Optional overrides for the defaults.

        Returns:
            The stored configuration.
        """
        record = default_server_config(str(server_id), name, time.time())
        if settings:
            record.update(settings.changes())
            record["name"] = settings.name or name

        columns = list(record.keys())
        self.execute(
            f"INSERT INTO server_configs ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})",
            tuple(_to_column(c, record[c]) for c in columns),
        )

        logger.tree("Server Config Created", [
            ("Server", f"{name} ({server_id})"),
            ("Spam Protection", "On" if record["enable_spam_protection"] else "Off"),
            ("Max Messages", str(record["max_messages_per_minute"])),
        ], emoji="⚙️")

        return self.get_server_config(server_id)

    def update_server_config(
        self: "DatabaseStorage",
        server_id: str,
        settings: ServerConfigInput,
    ) -> ServerConfigRecord:
        changes = settings.changes()
        changes["updated_at"] = time.time()

        assignments = ", ".join(f"{key} = ?" for key in changes)
        cursor = self.execute(
            f"UPDATE server_configs SET {assignments} WHERE id = ?",
            tuple(_to_column(k, v) for k, v in changes.items()) + (str(server_id),),
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"Server config {server_id} not found")

        logger.tree("Server Config Updated", [
            ("Server", str(server_id)),
            ("Fields", ", ".join(k for k in changes if k != "updated_at") or "None"),
        ], emoji="⚙️")

        return self.get_server_config(server_id)

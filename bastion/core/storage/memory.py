"""
Bastion - In-Memory Storage
===========================

Process-local storage backend with JSON persistence for server configs.

DESIGN:
    Everything lives in dicts guarded by a single lock. Server
    configurations are written to DATA_DIR/servers.json after every
    change so guild setup survives restarts; cases, tickets, warnings and
    message logs are kept for the lifetime of the process only.

    Case numbers are assigned inside the lock from the guild's current
    maximum, which makes read-increment-write one atomic step.
"""

import json
import threading
import time
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional

from bastion.core.constants import MESSAGE_LOG_LIMIT, MODERATION_LOG_LIMIT, SERVER_CONFIG_FILE
from bastion.core.errors import NotFoundError, StorageError
from bastion.core.logger import logger
from bastion.core.storage.base import Storage
from bastion.core.storage.models import (
    CustomCommandRecord,
    MessageLogRecord,
    ModerationRecord,
    NewModerationRecord,
    ServerConfigInput,
    ServerConfigRecord,
    TicketRecord,
    TicketStatus,
    WarningRecord,
    default_server_config,
)


class MemoryStorage(Storage):
    """
    Dict-backed storage.

    Args:
        data_dir: Directory for servers.json. None disables persistence.
    """

    def __init__(self, data_dir: Optional[Path] = None) -> None:
        self._lock = threading.Lock()
        self._config_file: Optional[Path] = data_dir / SERVER_CONFIG_FILE if data_dir else None

        self._server_configs: Dict[str, ServerConfigRecord] = {}
        self._custom_commands: Dict[int, CustomCommandRecord] = {}
        self._moderation_logs: Dict[str, List[ModerationRecord]] = defaultdict(list)
        self._tickets: Dict[int, TicketRecord] = {}
        self._warnings: List[WarningRecord] = []
        self._message_logs: List[MessageLogRecord] = []

        # Row id sequences, one per table
        self._ids: Dict[str, int] = defaultdict(int)

        self._load_server_configs()

    # =========================================================================
    # Persistence
    # =========================================================================

    def _load_server_configs(self) -> None:
        if not self._config_file or not self._config_file.exists():
            return
        try:
            with open(self._config_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Server Config File Unreadable", [
                ("File", str(self._config_file)),
                ("Error", str(e)[:100]),
            ])
            return

        for server_id, record in data.items():
            self._server_configs[str(server_id)] = ServerConfigRecord(**record)

        logger.tree("Server Configs Loaded", [
            ("File", str(self._config_file)),
            ("Servers", str(len(self._server_configs))),
        ], emoji="💾")

    def _commit_server_configs(self, configs: Dict[str, ServerConfigRecord]) -> None:
        """
        Write configs to disk, then make them the live set.

        Caller must hold the lock. A failed write leaves memory untouched.
        """
        if self._config_file:
            self._write_server_configs(configs)
        self._server_configs = configs

    def _write_server_configs(self, configs: Dict[str, ServerConfigRecord]) -> None:
        try:
            self._config_file.parent.mkdir(parents=True, exist_ok=True)
            tmp_file = self._config_file.with_suffix(".tmp")
            with open(tmp_file, "w", encoding="utf-8") as f:
                json.dump(configs, f, indent=2)
            tmp_file.replace(self._config_file)
        except OSError as e:
            raise StorageError(f"Failed to save server configs: {e}") from e

    def _next_id(self, table: str) -> int:
        self._ids[table] += 1
        return self._ids[table]

    # =========================================================================
    # Server Configuration
    # =========================================================================

    def get_server_config(self, server_id: str) -> Optional[ServerConfigRecord]:
        with self._lock:
            record = self._server_configs.get(str(server_id))
            return _copy_config(record) if record else None

    def create_server_config(
        self,
        server_id: str,
        name: str,
        settings: Optional[ServerConfigInput] = None,
    ) -> ServerConfigRecord:
        now = time.time()
        record = default_server_config(str(server_id), name, now)
        if settings:
            record.update(settings.changes())
            record["name"] = settings.name or name

        with self._lock:
            if str(server_id) in self._server_configs:
                raise StorageError(f"Server config {server_id} already exists")
            self._commit_server_configs({**self._server_configs, str(server_id): record})
            return _copy_config(record)

    def update_server_config(
        self,
        server_id: str,
        settings: ServerConfigInput,
    ) -> ServerConfigRecord:
        with self._lock:
            current = self._server_configs.get(str(server_id))
            if current is None:
                raise NotFoundError(f"Server config {server_id} not found")
            record = _copy_config(current)
            record.update(settings.changes())
            record["updated_at"] = time.time()
            self._commit_server_configs({**self._server_configs, str(server_id): record})
            return _copy_config(record)

    # =========================================================================
    # Custom Commands
    # =========================================================================

    def get_custom_commands(self, server_id: str) -> List[CustomCommandRecord]:
        with self._lock:
            commands = [dict(c) for c in self._custom_commands.values() if c["server_id"] == str(server_id)]
        return sorted(commands, key=lambda c: c["name"])

    def get_custom_command(self, server_id: str, name: str) -> Optional[CustomCommandRecord]:
        name = name.lower()
        with self._lock:
            for command in self._custom_commands.values():
                if command["server_id"] == str(server_id) and command["name"] == name:
                    return dict(command)
        return None

    def create_custom_command(
        self,
        server_id: str,
        name: str,
        response: str,
        created_by: str,
        description: Optional[str] = None,
    ) -> CustomCommandRecord:
        name = name.lower()
        with self._lock:
            for command in self._custom_commands.values():
                if command["server_id"] == str(server_id) and command["name"] == name:
                    raise StorageError(f"Custom command '{name}' already exists")
            command = CustomCommandRecord(
                id=self._next_id("custom_commands"),
                server_id=str(server_id),
                name=name,
                description=description,
                response=response,
                created_by=str(created_by),
                created_at=time.time(),
            )
            self._custom_commands[command["id"]] = command
            return dict(command)

    def delete_custom_command(self, server_id: str, name: str) -> bool:
        name = name.lower()
        with self._lock:
            for command_id, command in list(self._custom_commands.items()):
                if command["server_id"] == str(server_id) and command["name"] == name:
                    del self._custom_commands[command_id]
                    return True
        return False

    # =========================================================================
    # Moderation Logs
    # =========================================================================

    def get_moderation_logs(
        self,
        server_id: str,
        limit: int = MODERATION_LOG_LIMIT,
    ) -> List[ModerationRecord]:
        with self._lock:
            records = list(self._moderation_logs.get(str(server_id), []))
        records.sort(key=lambda r: r.case_number, reverse=True)
        return records[:limit]

    def get_moderation_log(self, server_id: str, case_number: int) -> Optional[ModerationRecord]:
        with self._lock:
            for record in self._moderation_logs.get(str(server_id), []):
                if record.case_number == case_number:
                    return record
        return None

    def get_max_case_number(self, server_id: str) -> int:
        with self._lock:
            return self._max_case_number(str(server_id))

    def _max_case_number(self, server_id: str) -> int:
        records = self._moderation_logs.get(server_id)
        return max((r.case_number for r in records), default=0) if records else 0

    def create_moderation_log(self, record: NewModerationRecord) -> ModerationRecord:
        guild_id = str(record.guild_id)
        with self._lock:
            case_number = self._max_case_number(guild_id) + 1
            stored = ModerationRecord.from_new(
                record,
                record_id=self._next_id("moderation_logs"),
                case_number=case_number,
                created_at=time.time(),
            )
            self._moderation_logs[guild_id].append(stored)
        return stored

    # =========================================================================
    # Tickets
    # =========================================================================

    def get_tickets(self, server_id: str, status: Optional[str] = None) -> List[TicketRecord]:
        with self._lock:
            tickets = [
                dict(t) for t in self._tickets.values()
                if t["server_id"] == str(server_id) and (status is None or t["status"] == status)
            ]
        return sorted(tickets, key=lambda t: t["id"], reverse=True)

    def get_ticket_by_channel(self, channel_id: str) -> Optional[TicketRecord]:
        with self._lock:
            for ticket in self._tickets.values():
                if ticket["channel_id"] == str(channel_id):
                    return dict(ticket)
        return None

    def create_ticket(
        self,
        server_id: str,
        channel_id: str,
        user_id: str,
        subject: str,
    ) -> TicketRecord:
        with self._lock:
            ticket = TicketRecord(
                id=self._next_id("tickets"),
                server_id=str(server_id),
                channel_id=str(channel_id),
                user_id=str(user_id),
                subject=subject,
                status=TicketStatus.OPEN.value,
                created_at=time.time(),
                closed_at=None,
            )
            self._tickets[ticket["id"]] = ticket
            return dict(ticket)

    def update_ticket(self, ticket_id: int, status: str) -> TicketRecord:
        with self._lock:
            ticket = self._tickets.get(ticket_id)
            if ticket is None:
                raise NotFoundError(f"Ticket {ticket_id} not found")
            ticket["status"] = status
            if status == TicketStatus.CLOSED.value:
                ticket["closed_at"] = time.time()
            return dict(ticket)

    # =========================================================================
    # Warnings
    # =========================================================================

    def get_user_warnings(self, server_id: str, user_id: str) -> List[WarningRecord]:
        with self._lock:
            warnings = [
                dict(w) for w in self._warnings
                if w["server_id"] == str(server_id) and w["user_id"] == str(user_id)
            ]
        return sorted(warnings, key=lambda w: w["id"], reverse=True)

    def create_user_warning(
        self,
        server_id: str,
        user_id: str,
        moderator_id: str,
        reason: str,
    ) -> WarningRecord:
        with self._lock:
            warning = WarningRecord(
                id=self._next_id("warnings"),
                server_id=str(server_id),
                user_id=str(user_id),
                moderator_id=str(moderator_id),
                reason=reason,
                created_at=time.time(),
            )
            self._warnings.append(warning)
            return dict(warning)

    # =========================================================================
    # Message Logs
    # =========================================================================

    def get_message_logs(
        self,
        server_id: str,
        limit: int = MESSAGE_LOG_LIMIT,
    ) -> List[MessageLogRecord]:
        with self._lock:
            logs = [dict(m) for m in self._message_logs if m["server_id"] == str(server_id)]
        logs.sort(key=lambda m: m["id"], reverse=True)
        return logs[:limit]

    def create_message_log(
        self,
        server_id: str,
        channel_id: str,
        message_id: str,
        user_id: str,
        content: Optional[str],
        action: str,
    ) -> MessageLogRecord:
        with self._lock:
            entry = MessageLogRecord(
                id=self._next_id("message_logs"),
                server_id=str(server_id),
                channel_id=str(channel_id),
                message_id=str(message_id),
                user_id=str(user_id),
                content=content,
                action=action,
                created_at=time.time(),
            )
            self._message_logs.append(entry)
            return dict(entry)


def _copy_config(record: ServerConfigRecord) -> ServerConfigRecord:
    """Copy a config so callers cannot mutate stored role lists."""
    copied = dict(record)
    copied["moderator_role_ids"] = list(record.get("moderator_role_ids") or [])
    copied["admin_role_ids"] = list(record.get("admin_role_ids") or [])
    return copied


__all__ = ["MemoryStorage"]

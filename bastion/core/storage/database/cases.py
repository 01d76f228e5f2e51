"""
Bastion - Database Case Operations Module
=========================================

Moderation log rows with per-guild case numbers.
"""

import sqlite3
import time
from typing import List, Optional, TYPE_CHECKING

from bastion.core.constants import MODERATION_LOG_LIMIT
from bastion.core.errors import InvariantViolation, StorageError
from bastion.core.storage.models import ModerationAction, ModerationRecord, NewModerationRecord

if TYPE_CHECKING:
    from bastion.core.storage.database.manager import DatabaseStorage


def _row_to_record(row: sqlite3.Row) -> ModerationRecord:
    return ModerationRecord(
        id=row["id"],
        case_number=row["case_number"],
        guild_id=row["server_id"],
        target_user_id=row["target_user_id"],
        moderator_user_id=row["moderator_user_id"],
        action=ModerationAction(row["action"]),
        reason=row["reason"],
        duration_minutes=row["duration"],
        created_at=row["created_at"],
    )


class CasesMixin:
    """Mixin for moderation log operations."""

    def get_moderation_logs(
        self: "DatabaseStorage",
        server_id: str,
        limit: int = MODERATION_LOG_LIMIT,
    ) -> List[ModerationRecord]:
        rows = self.fetchall(
            """SELECT * FROM moderation_logs
               WHERE server_id = ?
               ORDER BY case_number DESC
               LIMIT ?""",
            (str(server_id), limit),
        )
        return [_row_to_record(row) for row in rows]

    def get_moderation_log(
        self: "DatabaseStorage",
        server_id: str,
        case_number: int,
    ) -> Optional[ModerationRecord]:
        row = self.fetchone(
            "SELECT * FROM moderation_logs WHERE server_id = ? AND case_number = ?",
            (str(server_id), case_number),
        )
        return _row_to_record(row) if row else None

    def get_max_case_number(self: "DatabaseStorage", server_id: str) -> int:
        row = self.fetchone(
            "SELECT COALESCE(MAX(case_number), 0) AS max_case FROM moderation_logs WHERE server_id = ?",
            (str(server_id),),
        )
        return row["max_case"] if row else 0

    def create_moderation_log(
        self: "DatabaseStorage",
        record: NewModerationRecord,
    ) -> ModerationRecord:
        """
        Store a moderation action under the guild's next case number.

        DESIGN:
            The max lookup and the insert run inside one BEGIN IMMEDIATE
            transaction while holding the connection lock, so no other
            writer can slip a row in between. UNIQUE(server_id, case_number)
            backs this up; hitting it means the locking was bypassed.

        Raises:
            InvariantViolation: If the case number was already taken.
            StorageError: On any other database failure.
        """
        guild_id = str(record.guild_id)
        action = ModerationAction(record.action)
        now = time.time()

        try:
            with self.transaction() as tx:
                tx.execute(
                    "SELECT COALESCE(MAX(case_number), 0) AS max_case FROM moderation_logs WHERE server_id = ?",
                    (guild_id,),
                )
                case_number = tx.fetchone()["max_case"] + 1
                tx.execute(
                    """INSERT INTO moderation_logs
                       (case_number, server_id, target_user_id, moderator_user_id,
                        action, reason, duration, created_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        case_number,
                        guild_id,
                        str(record.target_user_id),
                        str(record.moderator_user_id),
                        action.value,
                        record.reason,
                        record.duration_minutes,
                        now,
                    ),
                )
                record_id = tx.lastrowid
        except sqlite3.IntegrityError as e:
            raise InvariantViolation(f"Duplicate case number in guild {guild_id}: {e}") from e
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e

        return ModerationRecord.from_new(record, record_id=record_id, case_number=case_number, created_at=now)

"""
Bastion - Case Ledger
=====================

Per-guild moderation case numbering on top of the storage interface.

DESIGN:
    The ledger never computes the number it stores: the backend assigns
    it inside create_moderation_log, atomically with the insert.
    next_case_number() is informational (used for previews and logs)
    and can be stale the moment it returns.
"""

from typing import List, Optional

from bastion.core.constants import MODERATION_LOG_LIMIT
from bastion.core.logger import logger
from bastion.core.storage import Storage
from bastion.core.storage.models import ModerationRecord, NewModerationRecord


class CaseLedger:
    """Appends and reads moderation cases."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def next_case_number(self, guild_id: str) -> int:
        return self.storage.get_max_case_number(str(guild_id)) + 1

    def append(self, record: NewModerationRecord) -> ModerationRecord:
        """
        Store a record under the guild's next case number.

        Raises:
            StorageError: If the backend fails. Not retried.
            InvariantViolation: If the number was somehow already taken.
        """
        stored = self.storage.create_moderation_log(record)

        logger.tree("Case Recorded", [
            ("Guild", stored.guild_id),
            ("Case", f"#{stored.case_number}"),
            ("Action", stored.action.value),
            ("Target", stored.target_user_id),
            ("Moderator", stored.moderator_user_id),
            ("Reason", (stored.reason or "None")[:50]),
        ], emoji="📋")

        return stored

    def get_by_case_number(self, guild_id: str, case_number: int) -> Optional[ModerationRecord]:
        return self.storage.get_moderation_log(str(guild_id), case_number)

    def list(self, guild_id: str, limit: int = MODERATION_LOG_LIMIT) -> List[ModerationRecord]:
        """Newest first."""
        return self.storage.get_moderation_logs(str(guild_id), limit)

"""
Bastion - Storage Interface
===========================

Abstract interface implemented by the SQLite and in-memory backends.

DESIGN:
    Both backends give identical ordering and uniqueness guarantees:
    - lists are returned newest first
    - create_moderation_log assigns the case number atomically, so
      concurrent callers in one guild always get distinct, gap-free numbers
    - update methods raise NotFoundError for unknown rows

    Methods are synchronous and hold no await points, which makes every
    call atomic from the point of view of the asyncio event loop.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from bastion.core.constants import MESSAGE_LOG_LIMIT, MODERATION_LOG_LIMIT
from bastion.core.storage.models import (
    CustomCommandRecord,
    MessageLogRecord,
    ModerationRecord,
    NewModerationRecord,
    ServerConfigInput,
    ServerConfigRecord,
    TicketRecord,
    WarningRecord,
)


class Storage(ABC):
    """Persistence operations used by services and commands."""

    # =========================================================================
    # Server Configuration
    # =========================================================================

    @abstractmethod
    def get_server_config(self, server_id: str) -> Optional[ServerConfigRecord]:
        ...

    @abstractmethod
    def create_server_config(
        self,
        server_id: str,
        name: str,
        settings: Optional[ServerConfigInput] = None,
    ) -> ServerConfigRecord:
        ...

    @abstractmethod
    def update_server_config(
        self,
        server_id: str,
        settings: ServerConfigInput,
    ) -> ServerConfigRecord:
        ...

    # =========================================================================
    # Custom Commands
    # =========================================================================

    @abstractmethod
    def get_custom_commands(self, server_id: str) -> List[CustomCommandRecord]:
        ...

    @abstractmethod
    def get_custom_command(self, server_id: str, name: str) -> Optional[CustomCommandRecord]:
        ...

    @abstractmethod
    def create_custom_command(
        self,
        server_id: str,
        name: str,
        response: str,
        created_by: str,
        description: Optional[str] = None,
    ) -> CustomCommandRecord:
        ...

    @abstractmethod
    def delete_custom_command(self, server_id: str, name: str) -> bool:
        ...

    # =========================================================================
    # Moderation Logs
    # =========================================================================

    @abstractmethod
    def get_moderation_logs(
        self,
        server_id: str,
        limit: int = MODERATION_LOG_LIMIT,
    ) -> List[ModerationRecord]:
        ...

    @abstractmethod
    def get_moderation_log(self, server_id: str, case_number: int) -> Optional[ModerationRecord]:
        ...

    @abstractmethod
    def get_max_case_number(self, server_id: str) -> int:
        """Highest case number in the guild, 0 when there are none."""

    @abstractmethod
    def create_moderation_log(self, record: NewModerationRecord) -> ModerationRecord:
        """Assign the next case number and store the record in one atomic step."""

    # =========================================================================
    # Tickets
    # =========================================================================

    @abstractmethod
    def get_tickets(self, server_id: str, status: Optional[str] = None) -> List[TicketRecord]:
        ...

    @abstractmethod
    def get_ticket_by_channel(self, channel_id: str) -> Optional[TicketRecord]:
        ...

    @abstractmethod
    def create_ticket(
        self,
        server_id: str,
        channel_id: str,
        user_id: str,
        subject: str,
    ) -> TicketRecord:
        ...

    @abstractmethod
    def update_ticket(self, ticket_id: int, status: str) -> TicketRecord:
        """Set ticket status; closing stamps closed_at."""

    # =========================================================================
    # Warnings
    # =========================================================================

    @abstractmethod
    def get_user_warnings(self, server_id: str, user_id: str) -> List[WarningRecord]:
        ...

    @abstractmethod
    def create_user_warning(
        self,
        server_id: str,
        user_id: str,
        moderator_id: str,
        reason: str,
    ) -> WarningRecord:
        ...

    # =========================================================================
    # Message Logs
    # =========================================================================

    @abstractmethod
    def get_message_logs(
        self,
        server_id: str,
        limit: int = MESSAGE_LOG_LIMIT,
    ) -> List[MessageLogRecord]:
        ...

    @abstractmethod
    def create_message_log(
        self,
        server_id: str,
        channel_id: str,
        message_id: str,
        user_id: str,
        content: Optional[str],
        action: str,
    ) -> MessageLogRecord:
        ...

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Release backend resources."""


__all__ = ["Storage"]

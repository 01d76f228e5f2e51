"""
Bastion - Storage Type Definitions
==================================

Record types shared by every storage backend.

DESIGN:
    Moderation records are frozen dataclasses because they are an
    append-only audit trail: once a case number is assigned nothing may
    change it. The remaining records are TypedDicts, returned as plain
    dicts from both backends.

    All Discord IDs are stored as strings.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, TypedDict


# =============================================================================
# Moderation Records
# =============================================================================

class ModerationAction(str, Enum):
    """Closed set of actions that produce a case."""

    WARN = "warn"
    TIMEOUT = "timeout"
    KICK = "kick"
    BAN = "ban"
    TICKET_CLOSE = "ticket_close"


@dataclass(frozen=True)
class NewModerationRecord:
    """A moderation action waiting for its case number."""

    guild_id: str
    target_user_id: str
    moderator_user_id: str
    action: ModerationAction
    reason: Optional[str] = None
    duration_minutes: Optional[int] = None


@dataclass(frozen=True)
class ModerationRecord:
    """
    A stored moderation case.

    case_number is unique and strictly increasing within guild_id.
    """

    id: int
    case_number: int
    guild_id: str
    target_user_id: str
    moderator_user_id: str
    action: ModerationAction
    reason: Optional[str]
    duration_minutes: Optional[int]
    created_at: float

    @classmethod
    def from_new(
        cls,
        record: NewModerationRecord,
        record_id: int,
        case_number: int,
        created_at: float,
    ) -> "ModerationRecord":
        return cls(
            id=record_id,
            case_number=case_number,
            guild_id=record.guild_id,
            target_user_id=record.target_user_id,
            moderator_user_id=record.moderator_user_id,
            action=ModerationAction(record.action),
            reason=record.reason,
            duration_minutes=record.duration_minutes,
            created_at=created_at,
        )


# =============================================================================
# Server Configuration
# =============================================================================

@dataclass
class ServerConfigInput:
    """
    Fields accepted when creating or updating a server configuration.

    Only fields explicitly set are applied on update; everything left as
    None keeps its stored value.
    """

    name: Optional[str] = None
    welcome_channel_id: Optional[str] = None
    welcome_message: Optional[str] = None
    goodbye_message: Optional[str] = None
    auto_role_id: Optional[str] = None
    moderation_log_channel_id: Optional[str] = None
    announcement_channel_id: Optional[str] = None
    ticket_category_id: Optional[str] = None
    moderator_role_ids: Optional[List[str]] = None
    admin_role_ids: Optional[List[str]] = None
    enable_spam_protection: Optional[bool] = None
    max_messages_per_minute: Optional[int] = None

    def changes(self) -> dict:
        """Return only the fields that were set."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


class ServerConfigRecord(TypedDict, total=False):
    """Type for stored server configuration."""
    id: str
    name: str
    welcome_channel_id: Optional[str]
    welcome_message: Optional[str]
    goodbye_message: Optional[str]
    auto_role_id: Optional[str]
    moderation_log_channel_id: Optional[str]
    announcement_channel_id: Optional[str]
    ticket_category_id: Optional[str]
    moderator_role_ids: List[str]
    admin_role_ids: List[str]
    enable_spam_protection: bool
    max_messages_per_minute: int
    created_at: float
    updated_at: float


# =============================================================================
# Other Records
# =============================================================================

class CustomCommandRecord(TypedDict, total=False):
    """Type for guild custom text commands."""
    id: int
    server_id: str
    name: str
    description: Optional[str]
    response: str
    created_by: str
    created_at: float


class TicketStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class TicketRecord(TypedDict, total=False):
    """Type for support ticket records."""
    id: int
    server_id: str
    channel_id: str
    user_id: str
    subject: str
    status: str
    created_at: float
    closed_at: Optional[float]


class WarningRecord(TypedDict, total=False):
    """Type for user warning records."""
    id: int
    server_id: str
    user_id: str
    moderator_id: str
    reason: str
    created_at: float


class MessageLogAction(str, Enum):
    DELETED = "deleted"
    EDITED = "edited"


class MessageLogRecord(TypedDict, total=False):
    """Type for deleted/edited message log records."""
    id: int
    server_id: str
    channel_id: str
    message_id: str
    user_id: str
    content: Optional[str]
    action: str
    created_at: float


def default_server_config(server_id: str, name: str, now: float) -> ServerConfigRecord:
    """Build a server configuration with every default applied."""
    return ServerConfigRecord(
        id=server_id,
        name=name,
        welcome_channel_id=None,
        welcome_message=None,
        goodbye_message=None,
        auto_role_id=None,
        moderation_log_channel_id=None,
        announcement_channel_id=None,
        ticket_category_id=None,
        moderator_role_ids=[],
        admin_role_ids=[],
        enable_spam_protection=True,
        max_messages_per_minute=10,
        created_at=now,
        updated_at=now,
    )


__all__ = [
    "ModerationAction",
    "NewModerationRecord",
    "ModerationRecord",
    "ServerConfigInput",
    "ServerConfigRecord",
    "CustomCommandRecord",
    "TicketStatus",
    "TicketRecord",
    "WarningRecord",
    "MessageLogAction",
    "MessageLogRecord",
    "default_server_config",
]

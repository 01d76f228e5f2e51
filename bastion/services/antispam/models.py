"""
Anti-Spam Data Models
=====================

Dataclasses passed between the tracker, the escalation engine and the
service pipeline. None of these reference discord.py objects.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from bastion.core.storage.models import ModerationAction, ModerationRecord, ServerConfigRecord

from .constants import DEFAULT_MAX_MESSAGES


@dataclass(frozen=True)
class MessageEvent:
    """A guild message reduced to what spam tracking needs."""
    guild_id: str
    user_id: str
    channel_id: str
    timestamp_ms: int
    content: str = ""


@dataclass(frozen=True)
class WindowResult:
    """Outcome of recording one event in the sliding window."""
    within_limit: bool
    event_count: int


@dataclass
class StrikeState:
    """Escalation state for one (guild, user)."""
    strikes: int = 0
    last_escalation: float = 0.0


@dataclass(frozen=True)
class SanctionDecision:
    """What the escalation engine decided for one over-limit event."""
    strike_ordinal: int
    action: ModerationAction
    messages_to_purge: int
    event_count: int
    timeout_minutes: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.action == ModerationAction.KICK


class StrikeResetMode(str, Enum):
    """How strikes are forgotten."""

    SWEEP = "sweep"  # every sweep tick clears all strikes
    INACTIVITY = "inactivity"  # each key expires after a cooldown


@dataclass(frozen=True)
class ServerPolicy:
    """Per-guild spam policy snapshot."""
    guild_id: str
    enable_spam_protection: bool = True
    max_messages_per_minute: int = DEFAULT_MAX_MESSAGES
    moderator_role_ids: List[str] = field(default_factory=list)
    admin_role_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_config(
        cls,
        record: ServerConfigRecord,
        default_max: int = DEFAULT_MAX_MESSAGES,
    ) -> "ServerPolicy":
        """Build a policy, falling back to default_max for unset or non-positive limits."""
        limit = record.get("max_messages_per_minute")
        if not limit or limit <= 0:
            limit = default_max
        return cls(
            guild_id=str(record["id"]),
            enable_spam_protection=bool(record.get("enable_spam_protection", True)),
            max_messages_per_minute=limit,
            moderator_role_ids=list(record.get("moderator_role_ids") or []),
            admin_role_ids=list(record.get("admin_role_ids") or []),
        )


@dataclass
class SpamOutcome:
    """
    Everything one over-limit event produced.

    Failures are recorded rather than raised so the caller can log a
    single summary.
    """
    decision: SanctionDecision
    messages_deleted: int = 0
    sanction_applied: bool = True
    announced: bool = True
    record: Optional[ModerationRecord] = None
    errors: List[str] = field(default_factory=list)

"""
Bastion - Anti-Spam Package
===========================

Sliding-window spam detection and strike escalation.
"""

from .escalation import EscalationEngine
from .handlers import MessageSanctionApplier, SanctionApplier
from .models import (
    MessageEvent,
    SanctionDecision,
    ServerPolicy,
    SpamOutcome,
    StrikeResetMode,
    StrikeState,
    WindowResult,
)
from .service import AntiSpamService
from .tracker import RateWindowTracker

__all__ = [
    "AntiSpamService",
    "EscalationEngine",
    "MessageEvent",
    "MessageSanctionApplier",
    "RateWindowTracker",
    "SanctionApplier",
    "SanctionDecision",
    "ServerPolicy",
    "SpamOutcome",
    "StrikeResetMode",
    "StrikeState",
    "WindowResult",
]

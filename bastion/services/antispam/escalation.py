"""
Anti-Spam Escalation Engine
===========================

Strike state machine: warn, then timeout, then kick.

DESIGN:
    Clean (0) -> Warned (1) -> TimedOut (2) -> removed after the kick.
    Each escalate() call advances exactly one step. Reading, advancing
    and writing the state happen under one lock, so two over-limit
    events racing for the same user always receive consecutive
    ordinals. A transition is never rolled back when a later step
    (Discord call, storage write) fails.
"""

import threading
import time
from typing import TYPE_CHECKING, Callable, Dict, Optional, Tuple

from bastion.core.storage.models import ModerationAction, ModerationRecord, NewModerationRecord

from .constants import CASE_REASONS, STRIKE_LADDER, TERMINAL_STRIKE
from .models import SanctionDecision, StrikeResetMode, StrikeState

if TYPE_CHECKING:
    from bastion.services.case_log import CaseLedger

Key = Tuple[str, str]


class EscalationEngine:
    """
    Per-(guild, user) strike tracking.

    Args:
        clock: Monotonic clock in seconds, replaceable in tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._states: Dict[Key, StrikeState] = {}
        self._lock = threading.Lock()
        self._clock = clock

    # =========================================================================
    # Transitions
    # =========================================================================

    def escalate(self, guild_id: str, user_id: str, current_event_count: int) -> SanctionDecision:
        """
        Advance the user's strike state by one step.

        Args:
            guild_id: Guild the spam happened in.
            user_id: Spamming user.
            current_event_count: Window count that triggered the escalation.

        Returns:
            The sanction for the new strike ordinal.
        """
        key = (str(guild_id), str(user_id))
        with self._lock:
            state = self._states.get(key)
            if state is None:
                state = StrikeState()
                self._states[key] = state

            ordinal = state.strikes + 1
            if ordinal >= TERMINAL_STRIKE:
                del self._states[key]
            else:
                state.strikes = ordinal
                state.last_escalation = self._clock()

        action, purge, timeout_minutes = STRIKE_LADDER[ordinal]
        return SanctionDecision(
            strike_ordinal=ordinal,
            action=ModerationAction(action),
            messages_to_purge=purge,
            event_count=current_event_count,
            timeout_minutes=timeout_minutes,
        )

    def build_record(
        self,
        decision: SanctionDecision,
        guild_id: str,
        user_id: str,
        actor_id: str,
    ) -> NewModerationRecord:
        """Build the case record describing a transition."""
        reason = CASE_REASONS[decision.action.value].format(count=decision.event_count)
        return NewModerationRecord(
            guild_id=str(guild_id),
            target_user_id=str(user_id),
            moderator_user_id=str(actor_id),
            action=decision.action,
            reason=reason,
            duration_minutes=decision.timeout_minutes,
        )

    def record_transition(
        self,
        decision: SanctionDecision,
        guild_id: str,
        user_id: str,
        actor_id: str,
        ledger: "CaseLedger",
    ) -> ModerationRecord:
        """
        Append exactly one case for a transition.

        Raises:
            StorageError: If the ledger cannot store the record.
        """
        return ledger.append(self.build_record(decision, guild_id, user_id, actor_id))

    # =========================================================================
    # State Inspection
    # =========================================================================

    def strikes(self, guild_id: str, user_id: str) -> int:
        with self._lock:
            state = self._states.get((str(guild_id), str(user_id)))
            return state.strikes if state else 0

    def tracked_count(self) -> int:
        with self._lock:
            return len(self._states)

    # =========================================================================
    # Reset Policy
    # =========================================================================

    def reset(self, guild_id: str, user_id: str) -> bool:
        with self._lock:
            return self._states.pop((str(guild_id), str(user_id)), None) is not None

    def reset_all(self) -> int:
        """Forget every strike. Returns the number of keys cleared."""
        with self._lock:
            cleared = len(self._states)
            self._states.clear()
        return cleared

    def expire_idle(self, cooldown_seconds: float, now: Optional[float] = None) -> int:
        """Forget strikes whose last escalation is at least cooldown_seconds old."""
        now = self._clock() if now is None else now
        expired = 0
        with self._lock:
            for key, state in list(self._states.items()):
                if now - state.last_escalation >= cooldown_seconds:
                    del self._states[key]
                    expired += 1
        return expired

    def apply_reset_policy(self, mode: StrikeResetMode, cooldown_seconds: float) -> int:
        """Run one sweep tick of the configured reset policy."""
        if StrikeResetMode(mode) == StrikeResetMode.INACTIVITY:
            return self.expire_idle(cooldown_seconds)
        return self.reset_all()

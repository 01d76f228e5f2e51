"""
Bastion - Escalation Engine Tests
=================================

Strike ladder transitions, case records and reset policies.
"""

import threading

import pytest

from bastion.core.storage.models import ModerationAction
from bastion.services.antispam import EscalationEngine, StrikeResetMode
from bastion.services.case_log import CaseLedger


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestStrikeLadder:
    """Tests for escalate() transitions."""

    def test_three_strikes_warn_timeout_kick(self):
        """Test consecutive escalations walk the ladder."""
        engine = EscalationEngine()
        decisions = [engine.escalate("g", "u", 11) for _ in range(3)]

        assert [d.action for d in decisions] == [
            ModerationAction.WARN, ModerationAction.TIMEOUT, ModerationAction.KICK,
        ]
        assert [d.strike_ordinal for d in decisions] == [1, 2, 3]
        assert [d.messages_to_purge for d in decisions] == [5, 10, 15]
        assert [d.timeout_minutes for d in decisions] == [None, 5, None]

    def test_kick_removes_state(self):
        """Test the terminal strike deletes the user's state."""
        engine = EscalationEngine()
        for _ in range(3):
            engine.escalate("g", "u", 11)
        assert engine.strikes("g", "u") == 0
        assert engine.tracked_count() == 0

    def test_fourth_escalation_starts_over(self):
        """Test a user escalated after a kick begins again at warn."""
        engine = EscalationEngine()
        for _ in range(3):
            engine.escalate("g", "u", 11)
        decision = engine.escalate("g", "u", 11)
        assert decision.action == ModerationAction.WARN
        assert decision.strike_ordinal == 1

    def test_only_kick_is_terminal(self):
        engine = EscalationEngine()
        decisions = [engine.escalate("g", "u", 11) for _ in range(3)]
        assert [d.is_terminal for d in decisions] == [False, False, True]

    def test_event_count_carried_into_decision(self):
        engine = EscalationEngine()
        assert engine.escalate("g", "u", 17).event_count == 17

    def test_guilds_are_isolated(self):
        """Test strikes in one guild do not advance another."""
        engine = EscalationEngine()
        engine.escalate("g1", "u", 11)
        engine.escalate("g1", "u", 11)

        assert engine.escalate("g2", "u", 11).action == ModerationAction.WARN
        assert engine.strikes("g1", "u") == 2

    def test_concurrent_escalations_get_distinct_ordinals(self):
        """Test racing escalations for one user never share an ordinal."""
        engine = EscalationEngine()
        barrier = threading.Barrier(3)
        ordinals = []
        lock = threading.Lock()

        def worker():
            barrier.wait()
            decision = engine.escalate("g", "u", 11)
            with lock:
                ordinals.append(decision.strike_ordinal)

        threads = [threading.Thread(target=worker) for _ in range(3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(ordinals) == [1, 2, 3]
        assert engine.tracked_count() == 0


class TestCaseRecords:
    """Tests for build_record() and record_transition()."""

    def test_warn_record_reason(self):
        engine = EscalationEngine()
        decision = engine.escalate("g", "u", 12)
        record = engine.build_record(decision, "g", "u", "bot")

        assert record.action == ModerationAction.WARN
        assert record.moderator_user_id == "bot"
        assert record.reason == "Auto-moderation: Spam detected (12 messages/minute)"
        assert record.duration_minutes is None

    def test_timeout_record_has_duration(self):
        engine = EscalationEngine()
        engine.escalate("g", "u", 11)
        decision = engine.escalate("g", "u", 11)
        record = engine.build_record(decision, "g", "u", "bot")

        assert record.action == ModerationAction.TIMEOUT
        assert record.duration_minutes == 5

    def test_record_transition_appends_one_case(self, memory_storage):
        """Test each transition writes exactly one case."""
        engine = EscalationEngine()
        ledger = CaseLedger(memory_storage)

        decision = engine.escalate("g", "u", 11)
        stored = engine.record_transition(decision, "g", "u", "bot", ledger)

        assert stored.case_number == 1
        assert len(ledger.list("g")) == 1


class TestResetPolicy:
    """Tests for sweep and inactivity reset modes."""

    def test_sweep_mode_clears_everyone(self):
        engine = EscalationEngine()
        engine.escalate("g", "u1", 11)
        engine.escalate("g", "u2", 11)

        cleared = engine.apply_reset_policy(StrikeResetMode.SWEEP, cooldown_seconds=3600)

        assert cleared == 2
        assert engine.tracked_count() == 0

    def test_inactivity_mode_keeps_recent_offenders(self):
        """Test only keys idle for the cooldown are forgotten."""
        clock = FakeClock()
        engine = EscalationEngine(clock=clock)
        engine.escalate("g", "old", 11)
        clock.now += 3000
        engine.escalate("g", "recent", 11)
        clock.now += 700

        cleared = engine.apply_reset_policy(StrikeResetMode.INACTIVITY, cooldown_seconds=3600)

        assert cleared == 1
        assert engine.strikes("g", "old") == 0
        assert engine.strikes("g", "recent") == 1

    def test_inactivity_cooldown_restarts_on_escalation(self):
        clock = FakeClock()
        engine = EscalationEngine(clock=clock)
        engine.escalate("g", "u", 11)
        clock.now += 3000
        engine.escalate("g", "u", 11)
        clock.now += 3000

        assert engine.expire_idle(3600) == 0
        assert engine.strikes("g", "u") == 2

    def test_reset_single_key(self):
        engine = EscalationEngine()
        engine.escalate("g", "u", 11)
        assert engine.reset("g", "u") is True
        assert engine.reset("g", "u") is False

    @pytest.mark.parametrize("mode", ["sweep", "inactivity"])
    def test_mode_accepts_plain_strings(self, mode):
        engine = EscalationEngine()
        assert engine.apply_reset_policy(mode, cooldown_seconds=3600) == 0

"""
Bastion - Case Ledger Tests
===========================

Per-guild case numbering on both storage backends.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from bastion.core.errors import InvariantViolation, NotFoundError, StorageError
from bastion.core.storage.models import ModerationAction, NewModerationRecord
from bastion.services.case_log import CaseLedger

from conftest import GUILD_ID, MOD_ID, OTHER_GUILD_ID, USER_ID


def _record(guild_id=GUILD_ID, action=ModerationAction.WARN, reason="test"):
    return NewModerationRecord(
        guild_id=guild_id,
        target_user_id=USER_ID,
        moderator_user_id=MOD_ID,
        action=action,
        reason=reason,
    )


class TestCaseNumbering:
    """Tests for case number assignment."""

    def test_first_case_is_one(self, storage):
        ledger = CaseLedger(storage)
        assert ledger.next_case_number(GUILD_ID) == 1
        assert ledger.append(_record()).case_number == 1

    def test_sequential_appends_increment(self, storage):
        ledger = CaseLedger(storage)
        numbers = [ledger.append(_record()).case_number for _ in range(5)]
        assert numbers == [1, 2, 3, 4, 5]
        assert ledger.next_case_number(GUILD_ID) == 6

    def test_concurrent_appends_have_no_gaps_or_duplicates(self, storage):
        """Test 50 parallel appends produce exactly 1..50."""
        ledger = CaseLedger(storage)
        with ThreadPoolExecutor(max_workers=10) as pool:
            stored = list(pool.map(lambda _: ledger.append(_record()), range(50)))

        assert sorted(r.case_number for r in stored) == list(range(1, 51))

    def test_concurrent_appends_continue_from_existing_cases(self, storage):
        ledger = CaseLedger(storage)
        for _ in range(3):
            ledger.append(_record())

        with ThreadPoolExecutor(max_workers=8) as pool:
            stored = list(pool.map(lambda _: ledger.append(_record()), range(20)))

        assert sorted(r.case_number for r in stored) == list(range(4, 24))

    def test_guild_numbering_is_independent(self, storage):
        """Test heavy traffic in one guild does not move another's counter."""
        ledger = CaseLedger(storage)
        for _ in range(10):
            ledger.append(_record(guild_id=OTHER_GUILD_ID))

        assert ledger.append(_record()).case_number == 1
        assert ledger.next_case_number(OTHER_GUILD_ID) == 11


class TestCaseReads:
    """Tests for lookups and listing."""

    def test_stored_record_round_trips_fields(self, storage):
        ledger = CaseLedger(storage)
        stored = ledger.append(NewModerationRecord(
            guild_id=GUILD_ID,
            target_user_id=USER_ID,
            moderator_user_id=MOD_ID,
            action=ModerationAction.TIMEOUT,
            reason="Repeated spam",
            duration_minutes=5,
        ))

        fetched = ledger.get_by_case_number(GUILD_ID, stored.case_number)
        assert fetched.action == ModerationAction.TIMEOUT
        assert fetched.duration_minutes == 5
        assert fetched.reason == "Repeated spam"
        assert fetched.target_user_id == USER_ID
        assert fetched.created_at > 0

    def test_missing_case_returns_none(self, storage):
        assert CaseLedger(storage).get_by_case_number(GUILD_ID, 99) is None

    def test_list_is_newest_first_and_limited(self, storage):
        ledger = CaseLedger(storage)
        for _ in range(5):
            ledger.append(_record())

        records = ledger.list(GUILD_ID, limit=3)
        assert [r.case_number for r in records] == [5, 4, 3]

    def test_records_are_immutable(self, storage):
        stored = CaseLedger(storage).append(_record())
        with pytest.raises(AttributeError):
            stored.case_number = 10


class TestStorageErrors:
    """Tests for error hierarchy used by the ledger."""

    def test_invariant_violation_is_storage_error(self):
        assert issubclass(InvariantViolation, StorageError)
        assert issubclass(NotFoundError, StorageError)

    def test_duplicate_case_number_rejected_by_schema(self, db_storage):
        """Test the UNIQUE(server_id, case_number) constraint backs the ledger."""
        CaseLedger(db_storage).append(_record())
        with pytest.raises(StorageError):
            db_storage.execute(
                """INSERT INTO moderation_logs
                   (case_number, server_id, target_user_id, moderator_user_id, action, reason, created_at)
                   VALUES (1, ?, ?, ?, 'warn', 'dup', 0)""",
                (GUILD_ID, USER_ID, MOD_ID),
            )

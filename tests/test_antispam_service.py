"""
Bastion - Anti-Spam Service Tests
=================================

End-to-end spam pipeline with a fake sanction applier, plus the
discord.py applier against mocked channels.
"""

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from bastion.core.errors import SanctionApplicationFailure, StorageError
from bastion.core.storage.models import ModerationAction, ServerConfigInput
from bastion.services.antispam import (
    AntiSpamService,
    MessageEvent,
    MessageSanctionApplier,
    StrikeResetMode,
)

from conftest import BOT_ID, GUILD_ID, OTHER_GUILD_ID, USER_ID, FakeApplier


BURST_GAP_MS = 120_000


@pytest.fixture
def service(mock_bot, configured_storage):
    configured_storage.update_server_config(GUILD_ID, ServerConfigInput(max_messages_per_minute=5))
    return AntiSpamService(mock_bot, configured_storage)


def _event(ts, guild_id=GUILD_ID, user_id=USER_ID):
    return MessageEvent(guild_id=guild_id, user_id=user_id, channel_id="1", timestamp_ms=ts, content="spam")


async def _burst(service, applier, start_ms, size=6, guild_id=GUILD_ID):
    outcomes = []
    for i in range(size):
        outcomes.append(await service.process_event(
            _event(start_ms + i * 1000, guild_id=guild_id), applier, mention="<@u>", actor_id=BOT_ID,
        ))
    return outcomes


class TestSpamScenario:
    """Three bursts walk the ladder: warn, timeout, kick."""

    @pytest.mark.asyncio
    async def test_three_bursts(self, service, fake_applier):
        first = await _burst(service, fake_applier, 0)
        assert first[:5] == [None] * 5
        warn = first[5]
        assert warn.decision.action == ModerationAction.WARN
        assert warn.record.case_number == 1
        assert fake_applier.purges == [5]
        assert fake_applier.timeouts == []

        timeout = (await _burst(service, fake_applier, BURST_GAP_MS))[5]
        assert timeout.record.action == ModerationAction.TIMEOUT
        assert timeout.record.case_number == 2
        assert timeout.record.duration_minutes == 5
        assert fake_applier.purges == [5, 10]
        assert fake_applier.timeouts[0][2] == 5

        kick = (await _burst(service, fake_applier, 2 * BURST_GAP_MS))[5]
        assert kick.record.action == ModerationAction.KICK
        assert kick.record.case_number == 3
        assert fake_applier.purges == [5, 10, 15]
        assert len(fake_applier.kicks) == 1
        assert service.engine.strikes(GUILD_ID, USER_ID) == 0

    @pytest.mark.asyncio
    async def test_announcements_use_mention(self, service, fake_applier):
        await _burst(service, fake_applier, 0)
        assert fake_applier.announcements == ["<@u>, please slow down your messages. Warning 1/3"]

    @pytest.mark.asyncio
    async def test_kick_announcement_uses_username(self, service, fake_applier):
        """Test the kicked member is named, not mentioned."""
        for burst in range(3):
            for i in range(6):
                await service.process_event(
                    _event(burst * BURST_GAP_MS + i * 1000), fake_applier,
                    mention="<@u>", actor_id=BOT_ID, username="spammer",
                )

        assert fake_applier.announcements[-1] == "spammer has been kicked for excessive spam."
        assert "<@u>" in fake_applier.announcements[0]

    @pytest.mark.asyncio
    async def test_cases_recorded_as_bot(self, service, fake_applier):
        outcome = (await _burst(service, fake_applier, 0))[5]
        assert outcome.record.moderator_user_id == BOT_ID
        assert "6 messages/minute" in outcome.record.reason

    @pytest.mark.asyncio
    async def test_continued_spam_cascades_without_reset(self, service, fake_applier):
        """Test every over-limit message inside one window escalates again."""
        outcomes = await _burst(service, fake_applier, 0, size=8)
        actions = [o.decision.action for o in outcomes if o is not None]
        assert actions == [ModerationAction.WARN, ModerationAction.TIMEOUT, ModerationAction.KICK]


class TestPolicy:
    """Tests for disabled and unconfigured guilds."""

    @pytest.mark.asyncio
    async def test_disabled_guild_is_untouched(self, service, fake_applier, configured_storage):
        configured_storage.update_server_config(GUILD_ID, ServerConfigInput(enable_spam_protection=False))

        outcomes = await _burst(service, fake_applier, 0, size=30)

        assert outcomes == [None] * 30
        assert service.tracker.tracked_keys() == []
        assert configured_storage.get_moderation_logs(GUILD_ID) == []

    @pytest.mark.asyncio
    async def test_unconfigured_guild_is_untouched(self, service, fake_applier):
        outcomes = await _burst(service, fake_applier, 0, size=20, guild_id=OTHER_GUILD_ID)
        assert outcomes == [None] * 20
        assert service.tracker.tracked_keys() == []

    @pytest.mark.asyncio
    async def test_other_guild_traffic_does_not_affect_strikes(self, service, fake_applier, configured_storage):
        configured_storage.create_server_config(
            OTHER_GUILD_ID, "Other", ServerConfigInput(max_messages_per_minute=5),
        )
        for start in range(0, 5 * BURST_GAP_MS, BURST_GAP_MS):
            await _burst(service, fake_applier, start, guild_id=OTHER_GUILD_ID)

        outcome = (await _burst(service, fake_applier, 0))[5]
        assert outcome.decision.action == ModerationAction.WARN
        assert outcome.record.case_number == 1

    def test_policy_falls_back_to_default_limit(self, service, configured_storage):
        configured_storage.update_server_config(GUILD_ID, ServerConfigInput(max_messages_per_minute=0))
        policy = service.get_policy(GUILD_ID)
        assert policy.max_messages_per_minute == service.config.default_max_messages

    def test_policy_lookup_failure_returns_none(self, mock_bot):
        storage = MagicMock()
        storage.get_server_config.side_effect = StorageError("disk I/O error")
        assert AntiSpamService(mock_bot, storage).get_policy(GUILD_ID) is None


class TestFailureTolerance:
    """Tests that later steps run when an earlier one fails."""

    @pytest.mark.asyncio
    async def test_failed_timeout_still_records_case(self, service):
        applier = FakeApplier(failing={"timeout"})
        await _burst(service, applier, 0)
        outcome = (await _burst(service, applier, BURST_GAP_MS))[5]

        assert outcome.sanction_applied is False
        assert outcome.announced is True
        assert outcome.record.action == ModerationAction.TIMEOUT
        assert any(e.startswith("Sanction") for e in outcome.errors)

    @pytest.mark.asyncio
    async def test_failed_purge_still_sanctions(self, service):
        applier = FakeApplier(failing={"purge"})
        outcome = (await _burst(service, applier, 0))[5]

        assert outcome.messages_deleted == 0
        assert outcome.record is not None
        assert applier.announcements

    @pytest.mark.asyncio
    async def test_ledger_failure_keeps_strike(self, mock_bot, fake_applier, configured_storage):
        """Test a storage failure does not roll back the escalation."""
        configured_storage.update_server_config(GUILD_ID, ServerConfigInput(max_messages_per_minute=5))
        service = AntiSpamService(mock_bot, configured_storage)
        service.ledger = MagicMock()
        service.ledger.append.side_effect = StorageError("database is locked")

        outcome = (await _burst(service, fake_applier, 0))[5]

        assert outcome.record is None
        assert any(e.startswith("Case") for e in outcome.errors)
        assert service.engine.strikes(GUILD_ID, USER_ID) == 1


class TestSweep:
    """Tests for the periodic sweep."""

    @pytest.mark.asyncio
    async def test_sweep_mode_clears_strikes_and_stale_windows(self, service, fake_applier):
        await _burst(service, fake_applier, 0)

        keys_removed, strikes_cleared = service.sweep(now_ms=BURST_GAP_MS)

        assert keys_removed == 1
        assert strikes_cleared == 1
        assert service.engine.tracked_count() == 0

    @pytest.mark.asyncio
    async def test_inactivity_mode_keeps_recent_strikes(self, service, fake_applier):
        service.reset_mode = StrikeResetMode.INACTIVITY
        await _burst(service, fake_applier, 0)

        _, strikes_cleared = service.sweep(now_ms=BURST_GAP_MS)

        assert strikes_cleared == 0
        assert service.engine.strikes(GUILD_ID, USER_ID) == 1


class TestCheckMessage:
    """Tests for the discord.Message entry point."""

    @pytest.mark.asyncio
    async def test_ignores_bots(self, service, mock_message):
        mock_message.author.bot = True
        assert await service.check_message(mock_message) is None
        assert service.tracker.tracked_keys() == []

    @pytest.mark.asyncio
    async def test_ignores_direct_messages(self, service, mock_message):
        mock_message.guild = None
        assert await service.check_message(mock_message) is None

    @pytest.mark.asyncio
    async def test_records_guild_message(self, service, mock_message):
        assert await service.check_message(mock_message) is None
        assert service.tracker.count(GUILD_ID, USER_ID) == 1


# =============================================================================
# Discord Applier
# =============================================================================

class _History:
    """Async iterator standing in for channel.history()."""

    def __init__(self, messages):
        self._messages = messages

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self._messages:
            yield message


def _authored(user_id):
    message = MagicMock()
    message.author.id = int(user_id)
    return message


def _http_error(cls=discord.Forbidden):
    response = MagicMock()
    response.status = 403
    response.reason = "Forbidden"
    return cls(response, "Missing Permissions")


class TestMessageSanctionApplier:
    """Tests for the discord.py sanction applier."""

    @pytest.mark.asyncio
    async def test_purge_deletes_only_offender_messages(self, mock_message, mock_channel):
        history = [_authored(USER_ID), _authored("42"), _authored(USER_ID)]
        mock_channel.history = MagicMock(return_value=_History(history))

        deleted = await MessageSanctionApplier(mock_message).delete_recent_messages(GUILD_ID, USER_ID, 5)

        assert deleted == 2
        mock_channel.history.assert_called_once_with(limit=5)
        sent = mock_channel.delete_messages.call_args.args[0]
        assert len(sent) == 2

    @pytest.mark.asyncio
    async def test_purge_with_nothing_to_delete(self, mock_message, mock_channel):
        mock_channel.history = MagicMock(return_value=_History([_authored("42")]))
        assert await MessageSanctionApplier(mock_message).delete_recent_messages(GUILD_ID, USER_ID, 5) == 0
        mock_channel.delete_messages.assert_not_called()

    @pytest.mark.asyncio
    async def test_timeout_uses_member(self, mock_message, mock_guild, mock_member):
        mock_guild.get_member.return_value = mock_member
        await MessageSanctionApplier(mock_message).apply_timeout(GUILD_ID, USER_ID, 5, "spam")

        duration = mock_member.timeout.call_args.args[0]
        assert duration.total_seconds() == 300

    @pytest.mark.asyncio
    async def test_missing_member_raises(self, mock_message, mock_guild):
        mock_guild.get_member.return_value = None
        with pytest.raises(SanctionApplicationFailure) as exc:
            await MessageSanctionApplier(mock_message).kick(GUILD_ID, USER_ID, "spam")
        assert exc.value.action == "kick"

    @pytest.mark.asyncio
    async def test_discord_error_becomes_sanction_failure(self, mock_message, mock_guild, mock_member):
        mock_guild.get_member.return_value = mock_member
        mock_member.kick = AsyncMock(side_effect=_http_error())
        with pytest.raises(SanctionApplicationFailure):
            await MessageSanctionApplier(mock_message).kick(GUILD_ID, USER_ID, "spam")

    @pytest.mark.asyncio
    async def test_announce_failure_raises(self, mock_message, mock_channel):
        mock_channel.send = AsyncMock(side_effect=_http_error())
        with pytest.raises(SanctionApplicationFailure):
            await MessageSanctionApplier(mock_message).announce("slow down")

"""
Bastion - Anti-Spam Service
===========================

Message-rate spam detection with a warn, timeout, kick strike ladder.

DESIGN:
    Pipeline for one guild message:
    1. Look up the guild's policy (no config or disabled -> stop, untracked)
    2. Record the event in the sliding window
    3. Within limit -> stop; over limit -> advance the strike state
    4. Purge the user's recent messages
    5. Apply the timeout or kick
    6. Announce in the channel
    7. Append the moderation case

    Steps 4-7 are best effort: a failure is logged and the remaining
    steps still run. The strike transition from step 3 stands even if
    everything after it fails.

    A background sweep evicts stale windows and applies the strike reset
    policy every SPAM_SWEEP_INTERVAL seconds.
"""

import asyncio
import time
from typing import Optional, Tuple, TYPE_CHECKING

import discord

from bastion.core.config import get_config
from bastion.core.constants import MS_PER_SECOND
from bastion.core.errors import SanctionApplicationFailure, StorageError
from bastion.core.logger import logger
from bastion.core.storage import Storage, get_storage
from bastion.core.storage.models import ModerationAction
from bastion.services.case_log import CaseLedger
from bastion.utils.async_utils import create_safe_task

from .constants import ANNOUNCEMENTS, DISCORD_REASONS
from .escalation import EscalationEngine
from .handlers import MessageSanctionApplier, SanctionApplier
from .models import MessageEvent, ServerPolicy, SpamOutcome, StrikeResetMode
from .tracker import RateWindowTracker

if TYPE_CHECKING:
    from bastion.bot import Bastion


class AntiSpamService:
    """
    Owns the tracker, the escalation engine and the case ledger.

    Args:
        bot: Main bot instance, used for the bot's own user ID.
        storage: Storage backend, defaults to the shared instance.
    """

    def __init__(self, bot: "Bastion", storage: Optional[Storage] = None) -> None:
        self.bot = bot
        self.config = get_config()
        self.storage = storage or get_storage()

        self.tracker = RateWindowTracker()
        self.engine = EscalationEngine()
        self.ledger = CaseLedger(self.storage)

        self.window_ms = self.config.spam_window_seconds * MS_PER_SECOND
        self.reset_mode = StrikeResetMode(self.config.strike_reset_mode)

        self._sweep_task: Optional[asyncio.Task] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Start the background sweep loop."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = create_safe_task(self._sweep_loop(), "AntiSpam Sweep Loop")

        logger.tree("Anti-Spam Service Started", [
            ("Window", f"{self.config.spam_window_seconds}s"),
            ("Sweep Interval", f"{self.config.spam_sweep_interval}s"),
            ("Strike Reset", self.reset_mode.value),
        ], emoji="🛡️")

    def stop(self) -> None:
        if self._sweep_task and not self._sweep_task.done():
            self._sweep_task.cancel()
        self._sweep_task = None

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.spam_sweep_interval)
            try:
                self.sweep()
            except Exception as e:
                logger.warning("Anti-Spam Sweep Error", [
                    ("Error Type", type(e).__name__),
                    ("Error", str(e)[:100]),
                ])

    def sweep(self, now_ms: Optional[int] = None) -> Tuple[int, int]:
        """
        Evict stale windows and apply the strike reset policy.

        Returns:
            (window keys removed, strike states cleared).
        """
        now_ms = int(time.time() * MS_PER_SECOND) if now_ms is None else now_ms
        keys_removed = self.tracker.sweep(now_ms, self.window_ms)
        strikes_cleared = self.engine.apply_reset_policy(
            self.reset_mode, self.config.strike_cooldown_seconds,
        )

        if keys_removed or strikes_cleared:
            logger.debug("Anti-Spam Sweep", [
                ("Windows Removed", str(keys_removed)),
                ("Strikes Cleared", str(strikes_cleared)),
                ("Mode", self.reset_mode.value),
            ])
        return keys_removed, strikes_cleared

    # =========================================================================
    # Policy
    # =========================================================================

    def get_policy(self, guild_id: str) -> Optional[ServerPolicy]:
        """
        Get the guild's spam policy.

        Returns:
            None when the guild has no configuration or it cannot be read.
        """
        try:
            record = self.storage.get_server_config(str(guild_id))
        except StorageError as e:
            logger.warning("Spam Policy Lookup Failed", [
                ("Guild", str(guild_id)),
                ("Error", str(e)[:100]),
            ])
            return None
        if record is None:
            return None
        return ServerPolicy.from_config(record, self.config.default_max_messages)

    # =========================================================================
    # Discord Entry Point
    # =========================================================================

    async def check_message(self, message: discord.Message) -> Optional[SpamOutcome]:
        """Run the spam pipeline for a guild message from a human."""
        if not message.guild or message.author.bot:
            return None

        event = MessageEvent(
            guild_id=str(message.guild.id),
            user_id=str(message.author.id),
            channel_id=str(message.channel.id),
            timestamp_ms=int(message.created_at.timestamp() * MS_PER_SECOND),
            content=message.content or "",
        )
        actor_id = str(self.bot.user.id) if self.bot.user else "0"

        return await self.process_event(
            event,
            MessageSanctionApplier(message),
            mention=message.author.mention,
            actor_id=actor_id,
            username=message.author.name,
        )

    # =========================================================================
    # Pipeline
    # =========================================================================

    async def process_event(
        self,
        event: MessageEvent,
        applier: SanctionApplier,
        mention: str,
        actor_id: str,
        username: Optional[str] = None,
    ) -> Optional[SpamOutcome]:
        """
        Run one message event through the pipeline.

        Args:
            event: The message event.
            applier: Performs Discord actions for this event.
            mention: Text used to address the user in announcements.
            actor_id: ID recorded as the moderator (the bot itself).
            username: Name used in the kick announcement; defaults to mention.

        Returns:
            SpamOutcome when a sanction was decided, otherwise None.
        """
        policy = self.get_policy(event.guild_id)
        if policy is None or not policy.enable_spam_protection:
            return None

        result = self.tracker.record(
            event.guild_id,
            event.user_id,
            event.timestamp_ms,
            self.window_ms,
            policy.max_messages_per_minute,
        )
        if result.within_limit:
            return None

        decision = self.engine.escalate(event.guild_id, event.user_id, result.event_count)
        outcome = SpamOutcome(decision=decision)

        logger.tree("Spam Detected", [
            ("Guild", event.guild_id),
            ("User ID", event.user_id),
            ("Messages", f"{result.event_count}/{policy.max_messages_per_minute}"),
            ("Strike", f"{decision.strike_ordinal}/3"),
            ("Action", decision.action.value),
        ], emoji="🛡️")

        # Purge
        try:
            outcome.messages_deleted = await applier.delete_recent_messages(
                event.guild_id, event.user_id, decision.messages_to_purge,
            )
        except SanctionApplicationFailure as e:
            self._record_failure(outcome, event, "Purge", e)

        # Sanction
        try:
            if decision.action == ModerationAction.TIMEOUT:
                await applier.apply_timeout(
                    event.guild_id, event.user_id,
                    decision.timeout_minutes, DISCORD_REASONS["timeout"],
                )
            elif decision.action == ModerationAction.KICK:
                await applier.kick(event.guild_id, event.user_id, DISCORD_REASONS["kick"])
        except SanctionApplicationFailure as e:
            outcome.sanction_applied = False
            self._record_failure(outcome, event, "Sanction", e)

        # Announce
        try:
            await applier.announce(ANNOUNCEMENTS[decision.action.value].format(
                mention=mention,
                username=username or mention,
                minutes=decision.timeout_minutes,
            ))
        except SanctionApplicationFailure as e:
            outcome.announced = False
            self._record_failure(outcome, event, "Announce", e)

        # Case
        try:
            outcome.record = self.engine.record_transition(
                decision, event.guild_id, event.user_id, actor_id, self.ledger,
            )
        except StorageError as e:
            outcome.errors.append(f"Case: {e}")
            logger.error("Spam Case Not Recorded", [
                ("Guild", event.guild_id),
                ("User ID", event.user_id),
                ("Action", decision.action.value),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])

        return outcome

    def _record_failure(
        self,
        outcome: SpamOutcome,
        event: MessageEvent,
        step: str,
        error: Exception,
    ) -> None:
        outcome.errors.append(f"{step}: {error}")
        logger.warning(f"Spam {step} Failed", [
            ("Guild", event.guild_id),
            ("User ID", event.user_id),
            ("Action", outcome.decision.action.value),
            ("Error", str(error)[:100]),
        ])


__all__ = ["AntiSpamService"]

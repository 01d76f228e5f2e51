"""
Bastion - Moderation Service
============================

Manual moderation actions shared by prefix and slash commands.

DESIGN:
    Every action runs the Discord call first and records a case only
    when it succeeded, so the case log never claims a kick that did not
    happen. Discord failures surface as SanctionApplicationFailure for
    the calling command to report.
"""

from datetime import timedelta
from typing import Optional, Tuple

import discord

from bastion.core.config import EmbedColors
from bastion.core.constants import (
    BAN_DELETE_MESSAGE_SECONDS,
    MAX_TIMEOUT_MINUTES,
    PURGE_MAX,
    PURGE_MIN,
    REASON_MAX_LENGTH,
)
from bastion.core.errors import SanctionApplicationFailure
from bastion.core.logger import logger
from bastion.core.storage import Storage, get_storage
from bastion.core.storage.models import ModerationAction, ModerationRecord, NewModerationRecord, WarningRecord
from bastion.services.case_log import CaseLedger
from bastion.utils.time_format import format_duration


NO_REASON = "No reason provided"

_ACTION_COLORS = {
    ModerationAction.WARN: EmbedColors.LOG_WARNING,
    ModerationAction.TIMEOUT: EmbedColors.LOG_WARNING,
    ModerationAction.KICK: EmbedColors.LOG_NEGATIVE,
    ModerationAction.BAN: EmbedColors.LOG_NEGATIVE,
    ModerationAction.TICKET_CLOSE: EmbedColors.TICKET,
}


def validate_target(
    moderator: discord.Member,
    target: discord.Member,
    guild: discord.Guild,
) -> Optional[str]:
    """
    Check whether moderator may act on target.

    Returns:
        An error message, or None when the action is allowed.
    """
    if target.id == moderator.id:
        return "❌ You cannot moderate yourself."
    if guild.me is not None and target.id == guild.me.id:
        return "❌ I cannot moderate myself."
    if target.id == guild.owner_id:
        return "❌ You cannot moderate the server owner."
    if moderator.id != guild.owner_id and target.top_role >= moderator.top_role:
        return "❌ You cannot moderate someone with an equal or higher role."
    return None


def clamp_timeout_minutes(minutes: int) -> int:
    return max(1, min(int(minutes), MAX_TIMEOUT_MINUTES))


class ModerationService:
    """Kick, ban, warn, timeout and purge with case logging."""

    def __init__(self, storage: Optional[Storage] = None) -> None:
        self.storage = storage or get_storage()
        self.ledger = CaseLedger(self.storage)

    # =========================================================================
    # Actions
    # =========================================================================

    async def kick(
        self,
        guild: discord.Guild,
        member: discord.Member,
        moderator: discord.abc.User,
        reason: Optional[str] = None,
    ) -> ModerationRecord:
        reason = _clean_reason(reason)
        try:
            await member.kick(reason=f"{moderator}: {reason}")
        except discord.HTTPException as e:
            raise SanctionApplicationFailure("kick", str(e)) from e
        return await self._record(guild, member, moderator, ModerationAction.KICK, reason)

    async def ban(
        self,
        guild: discord.Guild,
        user: discord.abc.User,
        moderator: discord.abc.User,
        reason: Optional[str] = None,
        delete_messages: bool = False,
    ) -> ModerationRecord:
        reason = _clean_reason(reason)
        try:
            await guild.ban(
                user,
                reason=f"{moderator}: {reason}",
                delete_message_seconds=BAN_DELETE_MESSAGE_SECONDS if delete_messages else 0,
            )
        except discord.HTTPException as e:
            raise SanctionApplicationFailure("ban", str(e)) from e
        return await self._record(guild, user, moderator, ModerationAction.BAN, reason)

    async def timeout(
        self,
        guild: discord.Guild,
        member: discord.Member,
        moderator: discord.abc.User,
        minutes: int,
        reason: Optional[str] = None,
    ) -> ModerationRecord:
        """Time out a member, clamping the duration to Discord's 28 day cap."""
        reason = _clean_reason(reason)
        minutes = clamp_timeout_minutes(minutes)
        try:
            await member.timeout(timedelta(minutes=minutes), reason=f"{moderator}: {reason}")
        except discord.HTTPException as e:
            raise SanctionApplicationFailure("timeout", str(e)) from e
        return await self._record(guild, member, moderator, ModerationAction.TIMEOUT, reason, minutes)

    async def warn(
        self,
        guild: discord.Guild,
        member: discord.abc.User,
        moderator: discord.abc.User,
        reason: Optional[str] = None,
    ) -> Tuple[WarningRecord, ModerationRecord]:
        """Store a warning plus its case, then DM the member (best effort)."""
        reason = _clean_reason(reason)
        warning = self.storage.create_user_warning(
            str(guild.id), str(member.id), str(moderator.id), reason,
        )
        record = await self._record(guild, member, moderator, ModerationAction.WARN, reason)

        try:
            await member.send(f"⚠️ You have been warned in **{guild.name}**: {reason}")
        except discord.HTTPException:
            logger.debug("Warn DM Failed", [("User ID", str(member.id))])

        return warning, record

    async def purge(self, channel: discord.TextChannel, amount: int) -> int:
        """
        Bulk delete the last `amount` messages.

        Raises:
            ValueError: If amount is outside 1-100.
            SanctionApplicationFailure: If Discord refuses.
        """
        if not PURGE_MIN <= amount <= PURGE_MAX:
            raise ValueError(f"Amount must be between {PURGE_MIN} and {PURGE_MAX}")
        try:
            deleted = await channel.purge(limit=amount)
        except discord.HTTPException as e:
            raise SanctionApplicationFailure("purge", str(e)) from e

        logger.tree("Messages Purged", [
            ("Channel", f"#{getattr(channel, 'name', channel.id)}"),
            ("Requested", str(amount)),
            ("Deleted", str(len(deleted))),
        ], emoji="🗑️")
        return len(deleted)

    # =========================================================================
    # Case Recording
    # =========================================================================

    async def _record(
        self,
        guild: discord.Guild,
        target: discord.abc.User,
        moderator: discord.abc.User,
        action: ModerationAction,
        reason: str,
        duration_minutes: Optional[int] = None,
    ) -> ModerationRecord:
        record = self.ledger.append(NewModerationRecord(
            guild_id=str(guild.id),
            target_user_id=str(target.id),
            moderator_user_id=str(moderator.id),
            action=action,
            reason=reason,
            duration_minutes=duration_minutes,
        ))
        await self.post_mod_log(guild, record, target, moderator)
        return record

    async def post_mod_log(
        self,
        guild: discord.Guild,
        record: ModerationRecord,
        target: Optional[discord.abc.User] = None,
        moderator: Optional[discord.abc.User] = None,
    ) -> None:
        """Post a case to the guild's moderation log channel if one is set."""
        config = self.storage.get_server_config(str(guild.id))
        channel_id = config.get("moderation_log_channel_id") if config else None
        if not channel_id:
            return

        channel = guild.get_channel(int(channel_id))
        if channel is None:
            logger.warning("Mod Log Channel Missing", [
                ("Guild", str(guild.id)),
                ("Channel ID", str(channel_id)),
            ])
            return

        try:
            await channel.send(embed=build_case_embed(record, target, moderator))
        except discord.HTTPException as e:
            logger.warning("Mod Log Post Failed", [
                ("Guild", str(guild.id)),
                ("Case", f"#{record.case_number}"),
                ("Error", str(e)[:100]),
            ])


def build_case_embed(
    record: ModerationRecord,
    target: Optional[discord.abc.User] = None,
    moderator: Optional[discord.abc.User] = None,
) -> discord.Embed:
    embed = discord.Embed(
        title=f"Case #{record.case_number} | {record.action.value.replace('_', ' ').title()}",
        color=_ACTION_COLORS.get(record.action, EmbedColors.INFO),
    )
    embed.add_field(name="User", value=target.mention if target else f"<@{record.target_user_id}>", inline=True)
    embed.add_field(
        name="Moderator",
        value=moderator.mention if moderator else f"<@{record.moderator_user_id}>",
        inline=True,
    )
    if record.duration_minutes:
        embed.add_field(name="Duration", value=format_duration(record.duration_minutes), inline=True)
    embed.add_field(name="Reason", value=record.reason or NO_REASON, inline=False)
    embed.set_footer(text=f"User ID: {record.target_user_id}")
    return embed


def _clean_reason(reason: Optional[str]) -> str:
    reason = (reason or "").strip()
    return reason[:REASON_MAX_LENGTH] if reason else NO_REASON


__all__ = [
    "ModerationService",
    "build_case_embed",
    "clamp_timeout_minutes",
    "validate_target",
]

"""
Bastion - Anti-Spam Sanction Handlers
=====================================

The boundary between spam decisions and Discord.

DESIGN:
    The pipeline in service.py only talks to the SanctionApplier
    protocol, so tests can drive it with a fake. MessageSanctionApplier
    is the discord.py implementation bound to the message that tripped
    the limit: purges look at that message's channel and sanctions
    target its author.
"""

from datetime import timedelta
from typing import List, Optional, Protocol

import discord

from bastion.core.errors import SanctionApplicationFailure
from bastion.core.logger import logger


class SanctionApplier(Protocol):
    """Operations the spam pipeline performs against Discord."""

    async def apply_timeout(self, guild_id: str, user_id: str, minutes: int, reason: str) -> None:
        ...

    async def kick(self, guild_id: str, user_id: str, reason: str) -> None:
        ...

    async def delete_recent_messages(self, guild_id: str, user_id: str, count: int) -> int:
        ...

    async def announce(self, text: str) -> None:
        ...


class MessageSanctionApplier:
    """
    Applies sanctions in the guild and channel of one message.

    Args:
        message: The message that pushed the author over the limit.
    """

    def __init__(self, message: discord.Message) -> None:
        self.message = message
        self.channel = message.channel
        self.guild = message.guild

    def _resolve_member(self, user_id: str, action: str) -> discord.Member:
        author = self.message.author
        if isinstance(author, discord.Member) and str(author.id) == str(user_id):
            return author
        member = self.guild.get_member(int(user_id)) if self.guild else None
        if member is None:
            raise SanctionApplicationFailure(action, f"member {user_id} not found")
        return member

    async def apply_timeout(self, guild_id: str, user_id: str, minutes: int, reason: str) -> None:
        member = self._resolve_member(user_id, "timeout")
        try:
            await member.timeout(timedelta(minutes=minutes), reason=reason)
        except discord.HTTPException as e:
            raise SanctionApplicationFailure("timeout", str(e)) from e

    async def kick(self, guild_id: str, user_id: str, reason: str) -> None:
        member = self._resolve_member(user_id, "kick")
        try:
            await member.kick(reason=reason)
        except discord.HTTPException as e:
            raise SanctionApplicationFailure("kick", str(e)) from e

    async def delete_recent_messages(self, guild_id: str, user_id: str, count: int) -> int:
        """
        Delete the user's messages among the last `count` in the channel.

        Returns:
            Number of messages deleted.
        """
        try:
            to_delete: List[discord.Message] = [
                msg async for msg in self.channel.history(limit=count)
                if str(msg.author.id) == str(user_id)
            ]
            if not to_delete:
                return 0
            await self.channel.delete_messages(to_delete, reason="Auto-moderation: spam cleanup")
        except discord.HTTPException as e:
            raise SanctionApplicationFailure("purge", str(e)) from e

        logger.debug("Spam Messages Purged", [
            ("Channel", str(self.channel.id)),
            ("User ID", str(user_id)),
            ("Deleted", str(len(to_delete))),
        ])
        return len(to_delete)

    async def announce(self, text: str) -> Optional[discord.Message]:
        try:
            return await self.channel.send(text)
        except discord.HTTPException as e:
            raise SanctionApplicationFailure("announce", str(e)) from e


__all__ = ["SanctionApplier", "MessageSanctionApplier"]

"""
Bastion - Prefix Commands
=========================

Text commands such as "!kick @user reason", dispatched from the message
event cog.

DESIGN:
    Custom commands are checked before built-ins, so a guild may shadow a
    built-in name. Unknown names are ignored silently.
"""

from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, TYPE_CHECKING

import discord

from bastion.core.config import EmbedColors, get_config
from bastion.core.constants import DEFAULT_MUTE_MINUTES, PURGE_MAX, PURGE_MIN, SLOWMODE_MAX_SECONDS
from bastion.core.errors import SanctionApplicationFailure, StorageError
from bastion.core.logger import logger
from bastion.core.storage import Storage, get_storage
from bastion.core.storage.models import ServerConfigRecord
from bastion.services.moderation import ModerationService, build_case_embed, validate_target
from bastion.utils.embeds import (
    build_help_embed,
    build_server_info_embed,
    build_user_info_embed,
    build_warnings_embed,
)
from bastion.utils.error_handler import ErrorHandler
from bastion.utils.permissions import has_admin_permission, has_moderator_permission
from bastion.utils.time_format import format_duration, format_uptime

if TYPE_CHECKING:
    from bastion.bot import Bastion


Handler = Callable[[discord.Message, List[str], Optional[ServerConfigRecord]], Awaitable[None]]

NO_PERMISSION = "❌ You don't have permission to use this command."


def parse_command(content: str, prefix: str) -> Optional[tuple]:
    """
    Split "!name arg1 arg2" into ("name", ["arg1", "arg2"]).

    Returns:
        None when the content does not start with the prefix or has no name.
    """
    if not content.startswith(prefix):
        return None
    parts = content[len(prefix):].split()
    if not parts:
        return None
    return parts[0].lower(), parts[1:]


class PrefixCommands:
    """Routes prefix commands to their handlers."""

    def __init__(self, bot: "Bastion", storage: Optional[Storage] = None) -> None:
        self.bot = bot
        self.config = get_config()
        self.storage = storage or get_storage()
        self.moderation = ModerationService(self.storage)

        self._handlers: Dict[str, Handler] = {
            "ping": self.ping,
            "help": self.help,
            "kick": self.kick,
            "ban": self.ban,
            "warn": self.warn,
            "mute": self.mute,
            "purge": self.purge,
            "clear": self.purge,
            "dm": self.dm,
            "say": self.say,
            "serverinfo": self.serverinfo,
            "userinfo": self.userinfo,
            "announce": self.announce,
            "warnings": self.warnings,
            "case": self.case,
            "uptime": self.uptime,
            "slowmode": self.slowmode,
        }

    @property
    def names(self) -> List[str]:
        return sorted(self._handlers)

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def handle(self, message: discord.Message) -> bool:
        """
        Run the command in a message, if any.

        Returns:
            True when a custom or built-in command handled the message.
        """
        if not message.guild or message.author.bot:
            return False

        parsed = parse_command(message.content or "", self.config.command_prefix)
        if parsed is None:
            return False
        name, args = parsed

        guild_id = str(message.guild.id)
        try:
            custom = self.storage.get_custom_command(guild_id, name)
        except StorageError as e:
            logger.warning("Custom Command Lookup Failed", [
                ("Guild", guild_id),
                ("Command", name),
                ("Error", str(e)[:100]),
            ])
            custom = None

        if custom:
            await message.reply(custom["response"])
            return True

        handler = self._handlers.get(name)
        if handler is None:
            return False

        try:
            server_config = self.storage.get_server_config(guild_id)
            await handler(message, args, server_config)
        except Exception as e:
            ErrorHandler.handle(e, location=f"PrefixCommands.{name}", message=message)
            try:
                await message.reply("❌ Something went wrong running that command.")
            except discord.HTTPException:
                pass

        logger.tree("Prefix Command", [
            ("Command", name),
            ("User", str(message.author)),
            ("Guild", message.guild.name),
        ], emoji="⌨️")
        return True

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _require(
        self,
        message: discord.Message,
        server_config: Optional[ServerConfigRecord],
        admin: bool = False,
    ) -> bool:
        check = has_admin_permission if admin else has_moderator_permission
        if check(message.author, server_config):
            return True
        await message.reply(NO_PERMISSION)
        return False

    async def _mentioned_member(self, message: discord.Message, action: str) -> Optional[discord.Member]:
        target = message.mentions[0] if message.mentions else None
        if target is None:
            await message.reply(f"❌ Please mention a user to {action}.")
            return None
        if isinstance(target, discord.Member):
            return target
        member = message.guild.get_member(target.id)
        if member is None:
            await message.reply("❌ That user is not a member of this server.")
        return member

    # =========================================================================
    # Information
    # =========================================================================

    async def ping(self, message: discord.Message, args: List[str], server_config) -> None:
        sent = await message.reply("🏓 Pinging...")
        round_trip = int((sent.created_at - message.created_at).total_seconds() * 1000)

        embed = discord.Embed(title="🏓 Pong!", color=EmbedColors.INFO)
        embed.add_field(name="Latency", value=f"{round_trip}ms", inline=True)
        embed.add_field(name="API Ping", value=f"{round(self.bot.latency * 1000)}ms", inline=True)
        embed.add_field(name="Status", value="Online ✅", inline=True)
        await sent.edit(content=None, embed=embed)

    async def help(self, message: discord.Message, args: List[str], server_config) -> None:
        await message.reply(embed=build_help_embed(self.config.command_prefix))

    async def serverinfo(self, message: discord.Message, args: List[str], server_config) -> None:
        await message.reply(embed=build_server_info_embed(message.guild))

    async def userinfo(self, message: discord.Message, args: List[str], server_config) -> None:
        target = message.mentions[0] if message.mentions else message.author
        member = target if isinstance(target, discord.Member) else message.guild.get_member(target.id)
        if member is None:
            await message.reply("❌ Failed to fetch user information.")
            return
        await message.reply(embed=build_user_info_embed(member))

    async def uptime(self, message: discord.Message, args: List[str], server_config) -> None:
        delta = datetime.now(timezone.utc) - self.bot.start_time
        await message.reply(f"⏱️ Uptime: **{format_uptime(delta)}**")

    async def case(self, message: discord.Message, args: List[str], server_config) -> None:
        if not args or not args[0].lstrip("#").isdigit():
            await message.reply("❌ Please provide a valid case number.")
            return
        case_number = int(args[0].lstrip("#"))
        record = self.moderation.ledger.get_by_case_number(str(message.guild.id), case_number)
        if record is None:
            await message.reply(f"Case #{case_number} not found.")
            return
        await message.reply(embed=build_case_embed(record))

    # =========================================================================
    # Moderation
    # =========================================================================

    async def kick(self, message: discord.Message, args: List[str], server_config) -> None:
        if not await self._require(message, server_config):
            return
        member = await self._mentioned_member(message, "kick")
        if member is None:
            return
        error = validate_target(message.author, member, message.guild)
        if error:
            await message.reply(error)
            return

        reason = " ".join(args[1:]) or None
        try:
            record = await self.moderation.kick(message.guild, member, message.author, reason)
        except SanctionApplicationFailure:
            await message.reply("❌ Failed to kick user. Check permissions and try again.")
            return
        await message.reply(embed=build_case_embed(record, member, message.author))

    async def ban(self, message: discord.Message, args: List[str], server_config) -> None:
        if not await self._require(message, server_config, admin=True):
            return
        target = message.mentions[0] if message.mentions else None
        if target is None:
            await message.reply("❌ Please mention a user to ban.")
            return
        if isinstance(target, discord.Member):
            error = validate_target(message.author, target, message.guild)
            if error:
                await message.reply(error)
                return

        reason = " ".join(args[1:]) or None
        try:
            record = await self.moderation.ban(message.guild, target, message.author, reason)
        except SanctionApplicationFailure:
            await message.reply("❌ Failed to ban user. Check permissions and try again.")
            return
        await message.reply(embed=build_case_embed(record, target, message.author))

    async def warn(self, message: discord.Message, args: List[str], server_config) -> None:
        if not await self._require(message, server_config):
            return
        member = await self._mentioned_member(message, "warn")
        if member is None:
            return

        reason = " ".join(args[1:]) or None
        try:
            _, record = await self.moderation.warn(message.guild, member, message.author, reason)
        except StorageError:
            await message.reply("❌ Failed to warn user.")
            return
        await message.reply(embed=build_case_embed(record, member, message.author))

    async def mute(self, message: discord.Message, args: List[str], server_config) -> None:
        if not await self._require(message, server_config):
            return
        member = await self._mentioned_member(message, "mute")
        if member is None:
            return
        error = validate_target(message.author, member, message.guild)
        if error:
            await message.reply(error)
            return

        minutes = DEFAULT_MUTE_MINUTES
        reason_args = args[1:]
        if reason_args and reason_args[0].isdigit():
            minutes = int(reason_args[0])
            reason_args = reason_args[1:]
        reason = " ".join(reason_args) or None

        try:
            record = await self.moderation.timeout(message.guild, member, message.author, minutes, reason)
        except SanctionApplicationFailure:
            await message.reply("❌ Failed to mute user. Check permissions and try again.")
            return
        await message.reply(
            content=f"🔇 {member.mention} muted for {format_duration(record.duration_minutes)}.",
            embed=build_case_embed(record, member, message.author),
        )

    async def purge(self, message: discord.Message, args: List[str], server_config) -> None:
        if not await self._require(message, server_config):
            return
        amount = int(args[0]) if args and args[0].isdigit() else 0
        if not PURGE_MIN <= amount <= PURGE_MAX:
            await message.reply(f"❌ Please provide a number between {PURGE_MIN} and {PURGE_MAX}.")
            return

        try:
            await message.delete()
            deleted = await self.moderation.purge(message.channel, amount)
        except (SanctionApplicationFailure, discord.HTTPException):
            await message.channel.send("❌ Failed to delete messages.")
            return
        await message.channel.send(f"🧹 Deleted {deleted} messages.", delete_after=5)

    async def warnings(self, message: discord.Message, args: List[str], server_config) -> None:
        if not await self._require(message, server_config):
            return
        target = message.mentions[0] if message.mentions else None
        if target is None:
            await message.reply("❌ Please mention a user to check warnings for.")
            return
        warnings = self.storage.get_user_warnings(str(message.guild.id), str(target.id))
        if not warnings:
            await message.reply(f"{target.name} has no warnings.")
            return
        await message.reply(embed=build_warnings_embed(target, warnings))

    async def slowmode(self, message: discord.Message, args: List[str], server_config) -> None:
        if not await self._require(message, server_config):
            return
        seconds = int(args[0]) if args and args[0].isdigit() else 0
        if seconds > SLOWMODE_MAX_SECONDS:
            await message.reply(f"❌ Slowmode must be between 0 and {SLOWMODE_MAX_SECONDS} seconds (6 hours).")
            return
        try:
            await message.channel.edit(slowmode_delay=seconds, reason=f"Slowmode set by {message.author}")
        except discord.HTTPException:
            await message.reply("❌ Failed to set slowmode.")
            return
        if seconds:
            await message.reply(f"🐌 Slowmode set to {seconds} seconds.")
        else:
            await message.reply("✅ Slowmode disabled.")

    # =========================================================================
    # Messaging
    # =========================================================================

    async def dm(self, message: discord.Message, args: List[str], server_config) -> None:
        if not await self._require(message, server_config):
            return
        target = message.mentions[0] if message.mentions else None
        if target is None:
            await message.reply("❌ Please mention a user to DM.")
            return
        text = " ".join(args[1:])
        if not text:
            await message.reply("❌ Please provide a message to send.")
            return
        try:
            await target.send(f"📬 Message from **{message.guild.name}** staff:\n{text}")
        except discord.HTTPException:
            await message.reply("❌ Failed to send DM. User may have DMs disabled.")
            return
        await message.reply(f"✅ Message sent to {target.name}.")

    async def say(self, message: discord.Message, args: List[str], server_config) -> None:
        if not await self._require(message, server_config):
            return
        text = " ".join(args)
        if not text:
            await message.reply("❌ Please provide text for me to say.")
            return
        try:
            await message.delete()
        except discord.HTTPException:
            logger.debug("Say Command Delete Failed", [("Channel", str(message.channel.id))])
        await message.channel.send(text, allowed_mentions=discord.AllowedMentions.none())

    async def announce(self, message: discord.Message, args: List[str], server_config) -> None:
        if not await self._require(message, server_config, admin=True):
            return
        text = " ".join(args)
        if not text:
            await message.reply("❌ Please provide an announcement message.")
            return

        channel = message.channel
        channel_id = server_config.get("announcement_channel_id") if server_config else None
        if channel_id:
            channel = message.guild.get_channel(int(channel_id)) or channel

        embed = discord.Embed(title="📢 Announcement", description=text, color=EmbedColors.INFO)
        embed.set_footer(text=f"Announced by {message.author}")
        try:
            await channel.send(embed=embed)
        except discord.HTTPException:
            await message.reply("❌ Failed to send announcement.")
            return
        if channel != message.channel:
            await message.reply(f"✅ Announcement sent to {channel.mention}.")


__all__ = ["PrefixCommands", "parse_command"]

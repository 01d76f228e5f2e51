"""
Bastion - Member Events
=======================

Auto-role plus welcome and goodbye messages.

DESIGN:
    Guilds without a configuration are ignored. When a welcome channel
    is set but no message text, the default welcome/goodbye text is used.
    Placeholders: {user}, {username}, {server}, {membercount}.
"""

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from bastion.core.config import EmbedColors, get_config
from bastion.core.constants import DEFAULT_GOODBYE_MESSAGE, DEFAULT_WELCOME_MESSAGE
from bastion.core.logger import logger
from bastion.utils.error_handler import safe_execute

if TYPE_CHECKING:
    from bastion.bot import Bastion


def render_member_message(template: str, member: discord.Member, mention: bool = True) -> str:
    """Fill welcome/goodbye placeholders. Goodbyes use the name, not a mention."""
    return (
        template
        .replace("{user}", member.mention if mention else member.name)
        .replace("{username}", member.name)
        .replace("{server}", member.guild.name)
        .replace("{membercount}", str(member.guild.member_count or 0))
    )


def build_member_embed(title: str, description: str, member: discord.Member, color: int) -> discord.Embed:
    embed = discord.Embed(title=title, description=description, color=color)
    embed.set_thumbnail(url=member.display_avatar.url)
    return embed


class MemberEvents(commands.Cog):
    """Member event handlers."""

    def __init__(self, bot: "Bastion") -> None:
        self.bot = bot
        self.config = get_config()
        self.storage = bot.storage

    def _welcome_channel(self, guild: discord.Guild, channel_id):
        if not channel_id:
            return None
        channel = guild.get_channel(int(channel_id))
        return channel if isinstance(channel, discord.abc.Messageable) else None

    @commands.Cog.listener()
    @safe_execute
    async def on_member_join(self, member: discord.Member) -> None:
        server_config = self.storage.get_server_config(str(member.guild.id))
        if not server_config:
            return

        # -----------------------------------------------------------------
        # Auto Role
        # -----------------------------------------------------------------
        auto_role_id = server_config.get("auto_role_id")
        if auto_role_id:
            role = member.guild.get_role(int(auto_role_id))
            if role is None:
                logger.warning("Auto Role Missing", [
                    ("Guild", member.guild.name),
                    ("Role ID", str(auto_role_id)),
                ])
            else:
                try:
                    await member.add_roles(role, reason="Auto role")
                    logger.tree("Auto Role Assigned", [
                        ("User", str(member)),
                        ("Role", role.name),
                    ], emoji="🎭")
                except discord.HTTPException as e:
                    logger.warning("Auto Role Failed", [
                        ("User", str(member)),
                        ("Role", role.name),
                        ("Error", str(e)[:100]),
                    ])

        # -----------------------------------------------------------------
        # Welcome Message
        # -----------------------------------------------------------------
        channel = self._welcome_channel(member.guild, server_config.get("welcome_channel_id"))
        if channel is None:
            return

        text = render_member_message(
            server_config.get("welcome_message") or DEFAULT_WELCOME_MESSAGE, member,
        )
        try:
            await channel.send(embed=build_member_embed("Welcome!", text, member, EmbedColors.GREEN))
        except discord.HTTPException as e:
            logger.warning("Welcome Message Failed", [
                ("Guild", member.guild.name),
                ("Error", str(e)[:100]),
            ])

    @commands.Cog.listener()
    @safe_execute
    async def on_member_remove(self, member: discord.Member) -> None:
        server_config = self.storage.get_server_config(str(member.guild.id))
        if not server_config:
            return

        channel = self._welcome_channel(member.guild, server_config.get("welcome_channel_id"))
        if channel is None:
            return

        text = render_member_message(
            server_config.get("goodbye_message") or DEFAULT_GOODBYE_MESSAGE, member, mention=False,
        )
        try:
            await channel.send(embed=build_member_embed("Goodbye", text, member, EmbedColors.GOLD))
        except discord.HTTPException as e:
            logger.warning("Goodbye Message Failed", [
                ("Guild", member.guild.name),
                ("Error", str(e)[:100]),
            ])


async def setup(bot: "Bastion") -> None:
    """Add the member events cog to the bot."""
    await bot.add_cog(MemberEvents(bot))
    logger.debug("Member Events Loaded")


__all__ = ["MemberEvents", "render_member_message", "setup"]

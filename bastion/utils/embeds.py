"""
Bastion - Embed Builders
========================

Embeds shared by prefix and slash commands.
"""

from typing import List

import discord

from bastion.core.config import EmbedColors
from bastion.core.constants import WARNINGS_DISPLAY_LIMIT
from bastion.core.storage.models import WarningRecord


def build_help_embed(prefix: str) -> discord.Embed:
    embed = discord.Embed(title="📋 Bot Commands", color=EmbedColors.INFO)
    embed.add_field(
        name="Moderation Commands",
        value=(
            f"{prefix}kick @user [reason]\n"
            f"{prefix}ban @user [reason]\n"
            f"{prefix}warn @user [reason]\n"
            f"{prefix}mute @user [minutes] [reason]\n"
            f"{prefix}warnings @user"
        ),
        inline=False,
    )
    embed.add_field(
        name="Utility Commands",
        value=(
            f"{prefix}ping - Check bot latency\n"
            f"{prefix}purge/{prefix}clear [amount] - Delete messages\n"
            f"{prefix}help - Show this help\n"
            f"{prefix}case [number] - Look up case\n"
            f"{prefix}uptime - Bot uptime\n"
            f"{prefix}slowmode [seconds] - Set channel slowmode"
        ),
        inline=False,
    )
    embed.add_field(
        name="Information Commands",
        value=f"{prefix}serverinfo - Server information\n{prefix}userinfo [@user] - User information",
        inline=False,
    )
    embed.add_field(
        name="Admin Commands",
        value=(
            f"{prefix}say [message] - Make the bot say something\n"
            f"{prefix}dm @user [message] - Send a DM\n"
            f"{prefix}announce [message] - Send an announcement"
        ),
        inline=False,
    )
    embed.set_footer(text=f"All commands use the {prefix} prefix")
    return embed


def build_server_info_embed(guild: discord.Guild) -> discord.Embed:
    embed = discord.Embed(title=f"📊 {guild.name}", color=EmbedColors.INFO)
    if guild.icon:
        embed.set_thumbnail(url=guild.icon.url)
    embed.add_field(name="Owner", value=f"<@{guild.owner_id}>", inline=True)
    embed.add_field(name="Members", value=str(guild.member_count or 0), inline=True)
    embed.add_field(name="Channels", value=str(len(guild.channels)), inline=True)
    embed.add_field(name="Roles", value=str(len(guild.roles)), inline=True)
    embed.add_field(name="Created", value=discord.utils.format_dt(guild.created_at, "D"), inline=True)
    embed.add_field(name="Boost Level", value=str(guild.premium_tier), inline=True)
    embed.set_footer(text=f"Server ID: {guild.id}")
    return embed


def build_user_info_embed(member: discord.Member) -> discord.Embed:
    embed = discord.Embed(title=f"👤 {member}", color=EmbedColors.INFO)
    embed.set_thumbnail(url=member.display_avatar.url)
    embed.add_field(name="ID", value=str(member.id), inline=True)
    embed.add_field(name="Nickname", value=member.nick or "None", inline=True)
    embed.add_field(name="Account Created", value=discord.utils.format_dt(member.created_at, "D"), inline=True)
    if member.joined_at:
        embed.add_field(name="Joined Server", value=discord.utils.format_dt(member.joined_at, "D"), inline=True)
    roles = [role.mention for role in member.roles if not role.is_default()]
    embed.add_field(name=f"Roles ({len(roles)})", value=", ".join(roles[:15]) or "None", inline=False)
    return embed


def build_warnings_embed(user: discord.abc.User, warnings: List[WarningRecord]) -> discord.Embed:
    embed = discord.Embed(
        title=f"⚠️ Warnings for {user}",
        description=f"Total warnings: {len(warnings)}",
        color=EmbedColors.WARNING,
    )
    for warning in warnings[:WARNINGS_DISPLAY_LIMIT]:
        embed.add_field(
            name=f"Warning #{warning['id']}",
            value=f"**Reason:** {warning['reason']}\n**Moderator:** <@{warning['moderator_id']}>\n"
                  f"**Date:** <t:{int(warning['created_at'])}:D>",
            inline=False,
        )
    return embed


__all__ = [
    "build_help_embed",
    "build_server_info_embed",
    "build_user_info_embed",
    "build_warnings_embed",
]

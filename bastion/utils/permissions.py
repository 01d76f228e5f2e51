"""
Bastion - Permission Helpers
============================

Moderator and admin checks combining Discord permissions with the
guild's configured role lists.

DESIGN:
    Moderator: Administrator, Kick Members, Ban Members or Manage
    Messages permission, or any configured moderator/admin role.
    Admin: Administrator permission or any configured admin role.
    The configured developer passes both checks everywhere.
"""

from typing import Iterable, Optional

import discord

from bastion.core.config import is_developer
from bastion.core.storage.models import ServerConfigRecord


def _has_any_role(member: discord.Member, role_ids: Iterable[str]) -> bool:
    wanted = {str(role_id) for role_id in role_ids}
    if not wanted:
        return False
    return any(str(role.id) in wanted for role in member.roles)


def has_admin_permission(member, server_config: Optional[ServerConfigRecord] = None) -> bool:
    """Check if a member may use admin commands."""
    if member is None:
        return False
    if is_developer(member.id):
        return True

    permissions = getattr(member, "guild_permissions", None)
    if permissions is not None and permissions.administrator:
        return True

    if server_config and hasattr(member, "roles"):
        return _has_any_role(member, server_config.get("admin_role_ids") or [])
    return False


def has_moderator_permission(member, server_config: Optional[ServerConfigRecord] = None) -> bool:
    """Check if a member may use moderator commands."""
    if has_admin_permission(member, server_config):
        return True

    permissions = getattr(member, "guild_permissions", None)
    if permissions is not None and (
        permissions.kick_members
        or permissions.ban_members
        or permissions.manage_messages
    ):
        return True

    if server_config and hasattr(member, "roles"):
        return _has_any_role(member, server_config.get("moderator_role_ids") or [])
    return False


async def check_interaction_permission(
    interaction: discord.Interaction,
    server_config: Optional[ServerConfigRecord],
    admin: bool = False,
) -> bool:
    """
    Check moderator (or admin) permission and reply if denied.

    Returns:
        True if authorized, False if not (error already sent).
    """
    check = has_admin_permission if admin else has_moderator_permission
    if check(interaction.user, server_config):
        return True

    await interaction.response.send_message(
        "❌ You don't have permission to use this command.",
        ephemeral=True,
    )
    return False


__all__ = [
    "has_admin_permission",
    "has_moderator_permission",
    "check_interaction_permission",
]

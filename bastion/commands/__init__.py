"""
Bastion - Commands Package
==========================

Slash command cogs plus the prefix command router.

DESIGN:
    Each cog module or package exposes async def setup(bot).
    The bot iterates COMMAND_COGS and calls load_extension() for each.
    Prefix commands are not cogs: the message event cog hands messages
    to PrefixCommands after the spam check.
"""

# =============================================================================
# Command Cog Registry
# =============================================================================

COMMAND_COGS = [
    "bastion.commands.moderation",
    "bastion.commands.utility",
    "bastion.commands.custom",
    "bastion.commands.server_config",
]


__all__ = [
    "COMMAND_COGS",
]

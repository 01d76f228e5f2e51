"""
Bastion - Moderation Command Package
====================================

Manual moderation slash commands with case logging.
"""

from typing import TYPE_CHECKING

from bastion.core.logger import logger

from .cog import ModerationCog

if TYPE_CHECKING:
    from bastion.bot import Bastion


async def setup(bot: "Bastion") -> None:
    """Load the Moderation cog."""
    await bot.add_cog(ModerationCog(bot))
    logger.tree("Moderation Cog Loaded", [
        ("Commands", "/kick, /ban, /warn, /warnings, /case, /cases, /clean, /slowmode"),
        ("Features", "case logging, mod log channel"),
    ], emoji="🛡️")


__all__ = ["ModerationCog", "setup"]

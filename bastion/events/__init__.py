"""
Bastion - Events Package
========================

Event handler cogs.

DESIGN:
    Each event module contains a Cog with @commands.Cog.listener methods
    and is loaded with load_extension().

    Event routing:
    - messages.py: spam pipeline, prefix commands, delete/edit logging
    - members.py: auto-role, welcome and goodbye
"""

# =============================================================================
# Event Cog Registry
# =============================================================================

EVENT_COGS = [
    "bastion.events.messages",
    "bastion.events.members",
]


__all__ = [
    "EVENT_COGS",
]

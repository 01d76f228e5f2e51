"""
Bastion - Discord Moderation Bot
================================

Anti-spam strike ladder, per-guild case log, support tickets and
moderation commands.
"""

__version__ = "1.0.0"

"""
Bastion - Services Package
==========================

Long-lived services owned by the bot: anti-spam, case log, moderation
and tickets.
"""

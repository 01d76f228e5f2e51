"""
Bastion - Utils Package
=======================

Stateless helpers shared by cogs and services.

Available Utilities:
    async_utils: Background tasks and guarded async calls
    error_handler: Categorized error logging
    permissions: Moderator and admin checks
    time_format: Duration and uptime formatting
"""

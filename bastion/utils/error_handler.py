"""
Bastion - Error Handler
=======================

Categorized error logging for command and event boundaries.

Features:
- Error categorization (discord, storage, sanction, network)
- Recovery suggestions per category
- Discord context capture for messages and interactions
- Critical error files for post-mortem analysis
- Safe execution decorator for listeners
"""

import functools
import json
import sqlite3
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Tuple

import discord

from bastion.core.errors import InvariantViolation, SanctionApplicationFailure, StorageError
from bastion.core.logger import LOGS_DIR, logger


class ErrorContext:
    """Captures and formats error context."""

    @staticmethod
    def get_full_context(e: Exception, location: str, **kwargs) -> Dict[str, Any]:
        context = {
            "timestamp": datetime.now().isoformat(),
            "location": location,
            "error_type": type(e).__name__,
            "error_message": str(e),
            "traceback": "".join(traceback.format_exception(type(e), e, e.__traceback__)),
            "python_version": sys.version,
            "additional_context": kwargs,
        }

        message = kwargs.get("message")
        if isinstance(message, discord.Message):
            context["discord_context"] = {
                "guild": message.guild.name if message.guild else "DM",
                "channel": getattr(message.channel, "name", str(message.channel)),
                "author": str(message.author),
                "author_id": message.author.id,
                "content": message.content[:100] if message.content else None,
            }

        interaction = kwargs.get("interaction")
        if isinstance(interaction, discord.Interaction):
            context["discord_context"] = {
                "guild": interaction.guild.name if interaction.guild else "DM",
                "channel": getattr(interaction.channel, "name", str(interaction.channel)),
                "author": str(interaction.user),
                "author_id": interaction.user.id,
                "command": interaction.command.name if interaction.command else None,
            }

        return context


class ErrorHandler:
    """Error handling with categorization and recovery hints."""

    ERROR_CATEGORIES: Dict[str, Tuple[type, ...]] = {
        "discord": (discord.DiscordException,),
        "sanction": (SanctionApplicationFailure,),
        # ConnectionError and TimeoutError subclass OSError, so check them first
        "network": (ConnectionError, TimeoutError),
        "storage": (StorageError, sqlite3.Error, OSError),
    }

    RECOVERY_SUGGESTIONS: List[Tuple[type, str]] = [
        (discord.Forbidden, "Check bot permissions and role hierarchy in server settings"),
        (discord.NotFound, "Resource not found - check IDs and channels"),
        (discord.HTTPException, "Discord API issue - retry later"),
        (SanctionApplicationFailure, "Bot could not moderate the member - check role hierarchy"),
        (InvariantViolation, "Case numbering conflict - check for a second bot instance on the same data"),
        (sqlite3.OperationalError, "Database locked or unreadable - check the database file"),
        (StorageError, "Storage failure - check the data directory"),
        (ConnectionError, "Network connection issue - check internet connection"),
        (TimeoutError, "Request timed out - retry later"),
    ]

    @classmethod
    def categorize_error(cls, e: Exception) -> str:
        for category, error_types in cls.ERROR_CATEGORIES.items():
            if isinstance(e, error_types):
                return category
        return "general"

    @classmethod
    def get_recovery_suggestion(cls, e: Exception) -> str:
        for error_type, suggestion in cls.RECOVERY_SUGGESTIONS:
            if isinstance(e, error_type):
                return suggestion
        return "Unexpected error - check logs for details"

    @classmethod
    def handle(cls, e: Exception, location: str, critical: bool = False, **context) -> None:
        """
        Log an error with its category, recovery hint and Discord context.

        Args:
            e: The exception.
            location: Where the error occurred.
            critical: Whether this error stops execution.
            **context: Additional context (message, interaction, ids).
        """
        category = cls.categorize_error(e)
        suggestion = cls.get_recovery_suggestion(e)
        full_context = ErrorContext.get_full_context(e, location, **context)

        details = [
            ("Location", location),
            ("Category", category),
            ("Error Type", full_context["error_type"]),
            ("Error", str(e)[:200]),
            ("Recovery", suggestion),
        ]
        if "discord_context" in full_context:
            dc = full_context["discord_context"]
            details.append(("Guild", str(dc["guild"])))
            details.append(("User", str(dc["author"])))

        if critical:
            logger.error("CRITICAL ERROR", details)
            logger.critical(f"Traceback:\n{full_context['traceback']}")
            cls._store_critical_error(full_context)
        else:
            logger.warning(f"Error [{category.upper()}]", details)

    @staticmethod
    def _store_critical_error(context: Dict[str, Any]) -> None:
        """Write the full context of a critical error to logs/errors."""
        try:
            error_dir = Path(LOGS_DIR) / "errors"
            error_dir.mkdir(exist_ok=True, parents=True)

            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            error_file = error_dir / f"error_{timestamp}.json"

            with open(error_file, "w", encoding="utf-8") as f:
                json.dump(context, f, indent=2, default=str)

            logger.info(f"Critical error saved to {error_file}")
        except OSError as save_error:
            logger.warning(f"Failed to save error details: {save_error}")


def safe_execute(func):
    """
    Decorator for event listeners: log exceptions instead of raising.

    Usage:
        @safe_execute
        async def on_member_join(self, member):
            ...
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            ErrorHandler.handle(
                e,
                location=f"{func.__module__}.{func.__qualname__}",
                critical=False,
                function_args=str(args)[:100],
            )
            return None

    return wrapper


__all__ = ["ErrorContext", "ErrorHandler", "safe_execute"]

"""
Bastion - Main Bot Class
========================

Core Discord client wiring storage, services and cogs together.

DESIGN:
    Services are built in __init__ so cogs can take references to them
    while loading in setup_hook. Anything that needs the gateway (the
    sweep task, the health server, the error webhook) starts in
    on_ready, once.

    INITIALIZATION ORDER:
    1. __init__: storage, anti-spam, moderation, tickets
    2. setup_hook: command cogs, event cogs, persistent views, tree sync
    3. on_ready: error webhook, anti-spam sweep, health server
"""

from datetime import datetime, timezone
from typing import Optional

import discord
from discord.ext import commands

from bastion.core.config import get_config
from bastion.core.health import HealthCheckServer
from bastion.core.logger import logger
from bastion.core.storage import Storage, get_storage
from bastion.services.antispam import AntiSpamService
from bastion.services.moderation import ModerationService
from bastion.services.tickets import TicketService, setup_ticket_views


# =============================================================================
# Bastion Class
# =============================================================================

class Bastion(commands.Bot):
    """
    Moderation bot: anti-spam strikes, case log, tickets and commands.

    Args:
        storage: Storage backend, defaults to the configured shared one.
    """

    def __init__(self, storage: Optional[Storage] = None) -> None:
        self.config = get_config()

        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True

        super().__init__(
            command_prefix=self.config.command_prefix,
            intents=intents,
            help_command=None,
        )

        self.storage = storage or get_storage()
        self.start_time: datetime = datetime.now(timezone.utc)

        self.anti_spam = AntiSpamService(self, self.storage)
        self.moderation = ModerationService(self.storage)
        self.ticket_service = TicketService(self, self.storage)
        self.health_server: Optional[HealthCheckServer] = None

        self._ready_initialized: bool = False

        logger.info("Bot Instance Created", [
            ("Storage", type(self.storage).__name__),
        ])

    # =========================================================================
    # Setup Hook
    # =========================================================================

    async def setup_hook(self) -> None:
        """Load cogs, register persistent views and sync commands."""
        from bastion.commands import COMMAND_COGS
        for cog in COMMAND_COGS:
            try:
                await self.load_extension(cog)
                logger.info(f"Cog Loaded: {cog.split('.')[-1]}")
            except commands.ExtensionError as e:
                logger.error("Failed to Load Cog", [("Cog", cog), ("Error", str(e))])

        from bastion.events import EVENT_COGS
        for cog in EVENT_COGS:
            try:
                await self.load_extension(cog)
                logger.debug(f"Event Cog Loaded: {cog.split('.')[-1]}")
            except commands.ExtensionError as e:
                logger.error("Failed to Load Event Cog", [("Cog", cog), ("Error", str(e))])

        setup_ticket_views(self, self.ticket_service)

        try:
            synced = await self.tree.sync()
            logger.success("Commands Synced", [("Count", str(len(synced)))])
        except discord.HTTPException as e:
            logger.error("Command Sync Failed", [("Error", str(e))])

    # =========================================================================
    # On Ready
    # =========================================================================

    async def on_ready(self) -> None:
        """Start background services on the first ready event."""
        if self._ready_initialized:
            logger.info("Bot Reconnected (skipping re-initialization)")
            return
        self._ready_initialized = True

        if not self.user:
            return

        logger.tree("BOT ONLINE", [
            ("Name", self.user.name),
            ("ID", str(self.user.id)),
            ("Guilds", str(len(self.guilds))),
        ], emoji="🚀")

        if self.config.error_webhook_url:
            logger.set_webhook(self.config.error_webhook_url)

        self.anti_spam.start()

        if self.config.health_check_port:
            self.health_server = HealthCheckServer(self, self.config.health_check_port)
            await self.health_server.start()

        logger.tree_nested("BASTION READY", [
            ("Services", [
                ("Anti-Spam", "Running"),
                ("Storage", type(self.storage).__name__),
                ("Health Server", "Running" if self.health_server else "Disabled"),
            ]),
            ("Spam Policy", [
                ("Window", f"{self.config.spam_window_seconds}s"),
                ("Default Limit", str(self.config.default_max_messages)),
                ("Strike Reset", self.config.strike_reset_mode),
            ]),
        ], emoji="🏰")

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def close(self) -> None:
        """Stop services, close storage, then disconnect."""
        logger.info("Initiating Graceful Shutdown")

        self.anti_spam.stop()

        if self.health_server:
            await self.health_server.stop()

        await super().close()
        self.storage.close()

        logger.tree("SHUTDOWN COMPLETE", [
            ("Uptime", str(datetime.now(timezone.utc) - self.start_time)),
        ], emoji="🛑")


__all__ = ["Bastion"]

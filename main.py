#!/usr/bin/env python3
"""
Bastion - Discord Moderation Bot Entry Point
============================================

Loads .env, validates configuration and runs the bot until interrupted.
"""

import asyncio
import sys

from dotenv import load_dotenv

# Environment must be loaded before bastion modules read it at import time
load_dotenv()

from bastion.core.config import ConfigValidationError, get_config, validate_and_log_config  # noqa: E402
from bastion.core.logger import logger  # noqa: E402
from bastion.utils.error_handler import ErrorHandler  # noqa: E402


async def main() -> None:
    """
    Run the bot.

    Raises:
        SystemExit: If configuration is invalid or the bot fails to start.
    """
    try:
        validate_and_log_config()
    except ConfigValidationError as e:
        logger.error("Invalid Configuration", [("Error", str(e))])
        sys.exit(1)

    from bastion import __version__
    from bastion.bot import Bastion

    logger.tree("BASTION STARTING", [
        ("Version", __version__),
        ("Storage", get_config().storage_backend),
    ], emoji="🏰")

    bot = Bastion()
    try:
        async with bot:
            await bot.start(get_config().discord_token)
    except Exception as e:
        ErrorHandler.handle(e, location="main.main", critical=True)
        sys.exit(1)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("🛑 Bot stopped by user (Ctrl+C)")

"""
Bastion - Health Check Server
=============================

Tiny aiohttp app answering GET /health for uptime monitors.

DESIGN:
    Runs on the bot's own event loop, started from on_ready and torn
    down in Bastion.close(). The body only carries counters (guilds,
    tracked spam windows, active strikes), never guild or user data.
    A port that is already taken is logged and the bot keeps running.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, TYPE_CHECKING

from aiohttp import web

from bastion.core.logger import logger

if TYPE_CHECKING:
    from bastion.bot import Bastion


BIND_HOST = "0.0.0.0"


class HealthCheckServer:
    """GET / and GET /health, both returning build_status() as JSON."""

    def __init__(self, bot: "Bastion", port: int = 8080) -> None:
        self.bot = bot
        self.port = port
        self.runner: Optional[web.AppRunner] = None

        self.app = web.Application()
        self.app.add_routes([
            web.get("/", self.health_handler),
            web.get("/health", self.health_handler),
        ])

    def build_status(self) -> Dict[str, Any]:
        # "starting" until the gateway handshake completes
        ready = self.bot.is_ready()
        anti_spam = getattr(self.bot, "anti_spam", None)
        return {
            "status": "healthy" if ready else "starting",
            "bot": "Bastion",
            "connected": ready,
            "guilds": len(self.bot.guilds),
            "tracked_windows": len(anti_spam.tracker.tracked_keys()) if anti_spam else 0,
            "active_strikes": anti_spam.engine.tracked_count() if anti_spam else 0,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def health_handler(self, request: web.Request) -> web.Response:
        status = self.build_status()
        logger.debug("Health Check Served", [("Status", status["status"])])
        return web.json_response(status)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        runner = web.AppRunner(self.app)
        await runner.setup()
        try:
            await web.TCPSite(runner, BIND_HOST, self.port).start()
        except OSError as e:
            await runner.cleanup()
            logger.error("Health Server Startup Failed", [
                ("Port", str(self.port)),
                ("Error", str(e)[:100]),
            ])
            return

        self.runner = runner
        logger.tree("Health Server Started", [
            ("Port", str(self.port)),
            ("Endpoint", f"http://{BIND_HOST}:{self.port}/health"),
        ], emoji="🏥")

    async def stop(self) -> None:
        """No-op when start() never succeeded."""
        if self.runner is None:
            return
        await self.runner.cleanup()
        self.runner = None
        logger.info("Health Server Stopped")


__all__ = ["HealthCheckServer"]

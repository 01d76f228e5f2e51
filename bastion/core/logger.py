"""
Bastion - Logger Module
=======================

Tree-style console and file logging for the bot.

DESIGN:
    Every log call prints a timestamped line and appends it to today's
    file under LOG_DIR/YYYY-MM-DD/. Structured values go underneath the
    title as a tree so a single sanction or case reads as one block:

        [02:30:45 PM UTC] 🛡️ Spam Escalation
          ├─ Guild: 1234
          ├─ Action: timeout
          └─ Strike: 2

    Errors are mirrored into a separate error file and, once the bot
    sets a webhook URL, posted to Discord. Each process gets a short run
    ID written into the session header and webhook footer.
"""

import os
import uuid
import asyncio
from datetime import datetime
from pathlib import Path
from typing import List, Tuple, Optional

import aiohttp
from zoneinfo import ZoneInfo


# =============================================================================
# Constants
# =============================================================================

LOGS_DIR = Path(os.getenv("LOG_DIR", "logs"))
"""Root folder; one subfolder per day."""

LOG_RETENTION_DAYS = 7

LOG_TZ = ZoneInfo(os.getenv("BOT_TIMEZONE", "UTC"))

WEBHOOK_TIMEOUT = 10
ERROR_COLOR = 0xDC3545

Details = Optional[List[Tuple[str, str]]]


# =============================================================================
# Tree Logger Class
# =============================================================================

class TreeLogger:
    """
    Console plus daily-file logger with tree-formatted details.

    Attributes:
        run_id: Short identifier for this process.
        log_file: Today's main log.
        error_file: Today's error-only log.
    """

    def __init__(self) -> None:
        self.run_id: str = uuid.uuid4().hex[:8]
        self._webhook_url: Optional[str] = None

        today = datetime.now(LOG_TZ).strftime("%Y-%m-%d")
        self.log_dir = LOGS_DIR / today
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.log_file = self.log_dir / f"Bastion-{today}.log"
        self.error_file = self.log_dir / f"Bastion-Errors-{today}.log"

        self._remove_expired_days()
        self._append(
            self.log_file,
            f"\n{'=' * 60}\nSESSION {self.run_id} STARTED "
            f"{datetime.now(LOG_TZ).strftime('%Y-%m-%d %I:%M:%S %p %Z')}\n{'=' * 60}\n",
        )

    def set_webhook(self, url: Optional[str]) -> None:
        """Post future errors to this Discord webhook (None turns it off)."""
        self._webhook_url = url

    # =========================================================================
    # Files
    # =========================================================================

    @staticmethod
    def _append(path: Path, text: str) -> None:
        with open(path, "a", encoding="utf-8") as f:
            f.write(text)

    def _remove_expired_days(self) -> None:
        """Delete YYYY-MM-DD folders older than LOG_RETENTION_DAYS."""
        if not LOGS_DIR.exists():
            return

        cutoff = datetime.now()
        removed = 0
        for day_dir in LOGS_DIR.iterdir():
            if not day_dir.is_dir():
                continue
            try:
                day = datetime.strptime(day_dir.name, "%Y-%m-%d")
            except ValueError:
                continue
            if (cutoff - day).days <= LOG_RETENTION_DAYS:
                continue
            for entry in day_dir.iterdir():
                entry.unlink()
            day_dir.rmdir()
            removed += 1

        if removed:
            print(f"[LOG CLEANUP] Removed {removed} expired log folders")

    # =========================================================================
    # Output
    # =========================================================================

    def _line(self, text: str, emoji: str = "", timestamp: bool = True, is_error: bool = False) -> None:
        parts = []
        if timestamp:
            parts.append(datetime.now(LOG_TZ).strftime("[%I:%M:%S %p %Z]"))
        if emoji:
            parts.append(emoji)
        parts.append(text)
        line = " ".join(parts)

        print(line)
        self._append(self.log_file, line + "\n")
        if is_error:
            self._append(self.error_file, line + "\n")

    def _details(self, details: List[Tuple[str, str]], is_error: bool = False) -> None:
        last = len(details) - 1
        for i, (key, value) in enumerate(details):
            branch = "└─" if i == last else "├─"
            self._line(f"  {branch} {key}: {value}", timestamp=False, is_error=is_error)

    def _emit(self, emoji: str, msg: str, details: Details, is_error: bool = False) -> None:
        self._line(msg, emoji, is_error=is_error)
        if details:
            self._details(details, is_error=is_error)

    # =========================================================================
    # Tree Formatting
    # =========================================================================

    def tree(self, title: str, items: List[Tuple[str, str]], emoji: str = "📦") -> None:
        """Title line followed by (key, value) branches, padded by blank lines in the file."""
        self._append(self.log_file, "\n")
        self._emit(emoji, title, items)
        self._append(self.log_file, "\n")

    def tree_nested(
        self,
        title: str,
        sections: List[Tuple[str, List[Tuple[str, str]]]],
        emoji: str = "📦",
    ) -> None:
        """Two-level tree: named sections, each with its own (key, value) branches."""
        self._append(self.log_file, "\n")
        self._line(title, emoji)

        last_section = len(sections) - 1
        for i, (name, items) in enumerate(sections):
            self._line(f"  {'└─' if i == last_section else '├─'} {name}", timestamp=False)
            rail = "   " if i == last_section else "│  "
            last_item = len(items) - 1
            for j, (key, value) in enumerate(items):
                self._line(f"  {rail} {'└─' if j == last_item else '├─'} {key}: {value}", timestamp=False)

        self._append(self.log_file, "\n")

    # =========================================================================
    # Log Levels
    # =========================================================================

    def debug(self, msg: str, details: Details = None) -> None:
        """Only written when the DEBUG env var is set."""
        if os.getenv("DEBUG"):
            self._emit("🔍", msg, details)

    def info(self, msg: str, details: Details = None) -> None:
        self._emit("ℹ️", msg, details)

    def success(self, msg: str, details: Details = None) -> None:
        self._emit("✅", msg, details)

    def warning(self, msg: str, details: Details = None) -> None:
        self._emit("⚠️", msg, details)

    def error(self, msg: str, details: Details = None) -> None:
        """
        Write to both files. Errors that carry details are also sent to the
        webhook, provided one is set and an event loop is running.
        """
        self._emit("❌", msg, details, is_error=True)
        if not details or not self._webhook_url:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        loop.create_task(self._post_webhook(msg, details))

    def critical(self, msg: str, details: Details = None) -> None:
        self._emit("🚨", msg, details, is_error=True)

    # =========================================================================
    # Webhook
    # =========================================================================

    def _webhook_payload(self, title: str, details: List[Tuple[str, str]]) -> dict:
        return {
            "embeds": [{
                "title": f"❌ {title}",
                "description": "\n".join(f"**{k}:** {v}" for k, v in details),
                "color": ERROR_COLOR,
                "timestamp": datetime.now(LOG_TZ).isoformat(),
                "footer": {"text": f"Run ID: {self.run_id}"},
            }]
        }

    async def _post_webhook(self, title: str, details: List[Tuple[str, str]]) -> None:
        # Printed rather than logged: logging here could recurse into error()
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self._webhook_url,
                    json=self._webhook_payload(title, details),
                    timeout=aiohttp.ClientTimeout(total=WEBHOOK_TIMEOUT),
                ) as resp:
                    if resp.status not in (200, 204):
                        print(f"Error webhook returned {resp.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            print(f"Error webhook failed: {e}")


# =============================================================================
# Global Instance
# =============================================================================

logger = TreeLogger()


__all__ = [
    "LOGS_DIR",
    "logger",
    "TreeLogger",
]

"""
Bastion - Utility Tests
=======================

Duration formatting, error categorization, embeds and the health endpoint.
"""

import json
import sqlite3
from datetime import timedelta
from unittest.mock import MagicMock

import discord
import pytest

from bastion.core.constants import WARNINGS_DISPLAY_LIMIT
from bastion.core.errors import InvariantViolation, SanctionApplicationFailure, StorageError
from bastion.core.health import HealthCheckServer
from bastion.utils.embeds import build_help_embed, build_warnings_embed
from bastion.utils.error_handler import ErrorHandler, safe_execute
from bastion.utils.time_format import format_duration, format_uptime


class TestFormatDuration:
    """Tests for format_duration()."""

    @pytest.mark.parametrize("minutes,expected", [
        (0, "0m"),
        (-5, "0m"),
        (5, "5m"),
        (60, "1h"),
        (125, "2h 5m"),
        (1440, "1d"),
        (1500, "1d 1h"),
        (1501, "1d 1h 1m"),
    ])
    def test_format(self, minutes, expected):
        assert format_duration(minutes) == expected


class TestFormatUptime:
    """Tests for format_uptime()."""

    def test_seconds_only(self):
        assert format_uptime(timedelta(seconds=42)) == "42s"

    def test_keeps_inner_zero_units(self):
        assert format_uptime(timedelta(days=1, seconds=5)) == "1d 0h 0m 5s"

    def test_negative_clamped(self):
        assert format_uptime(timedelta(seconds=-10)) == "0s"


class TestErrorHandler:
    """Tests for error categorization and recovery hints."""

    @pytest.mark.parametrize("error,category", [
        (SanctionApplicationFailure("kick", "Missing Permissions"), "sanction"),
        (StorageError("disk full"), "storage"),
        (InvariantViolation("duplicate case"), "storage"),
        (sqlite3.OperationalError("database is locked"), "storage"),
        (ConnectionError("reset"), "network"),
        (TimeoutError(), "network"),
        (ValueError("bad"), "general"),
    ])
    def test_categorize(self, error, category):
        assert ErrorHandler.categorize_error(error) == category

    def test_discord_errors(self):
        response = MagicMock()
        response.status = 403
        response.reason = "Forbidden"
        error = discord.Forbidden(response, "Missing Permissions")

        assert ErrorHandler.categorize_error(error) == "discord"
        assert "permissions" in ErrorHandler.get_recovery_suggestion(error)

    def test_invariant_violation_hint(self):
        assert "second bot instance" in ErrorHandler.get_recovery_suggestion(InvariantViolation("dup"))

    def test_unknown_error_hint(self):
        assert "Unexpected" in ErrorHandler.get_recovery_suggestion(KeyError("x"))

    @pytest.mark.asyncio
    async def test_safe_execute_swallows_and_returns_none(self):
        @safe_execute
        async def listener():
            raise RuntimeError("boom")

        assert await listener() is None


class TestEmbeds:
    def test_help_uses_prefix(self):
        embed = build_help_embed("?")
        assert "?kick" in embed.fields[0].value
        assert embed.footer.text == "All commands use the ? prefix"

    def test_warnings_capped(self):
        warnings = [
            {"id": i, "reason": "spam", "moderator_id": "1", "created_at": 1700000000.0}
            for i in range(WARNINGS_DISPLAY_LIMIT + 5)
        ]
        embed = build_warnings_embed("testuser", warnings)

        assert len(embed.fields) == WARNINGS_DISPLAY_LIMIT
        assert embed.description == f"Total warnings: {WARNINGS_DISPLAY_LIMIT + 5}"


class TestHealthHandler:
    """Tests for the /health response body."""

    @pytest.mark.asyncio
    async def test_healthy_when_ready(self, mock_bot):
        mock_bot.is_ready.return_value = True
        mock_bot.guilds = [MagicMock(), MagicMock()]
        mock_bot.anti_spam.tracker.tracked_keys.return_value = [("1", "2")]
        mock_bot.anti_spam.engine.tracked_count.return_value = 3

        response = await HealthCheckServer(mock_bot, port=0).health_handler(None)
        body = json.loads(response.text)

        assert body["status"] == "healthy"
        assert body["guilds"] == 2
        assert body["tracked_windows"] == 1
        assert body["active_strikes"] == 3

    @pytest.mark.asyncio
    async def test_starting_before_ready(self, mock_bot):
        mock_bot.is_ready.return_value = False
        mock_bot.guilds = []
        mock_bot.anti_spam = None

        response = await HealthCheckServer(mock_bot, port=0).health_handler(None)
        body = json.loads(response.text)

        assert body["status"] == "starting"
        assert body["connected"] is False
        assert body["tracked_windows"] == 0

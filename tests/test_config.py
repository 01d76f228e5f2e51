"""
Bastion - Configuration Tests
=============================

Environment parsing, defaults and validation.
"""

from pathlib import Path

import pytest

from bastion.core.config import ConfigValidationError, load_config


@pytest.fixture
def clean_env(monkeypatch):
    """Environment with only the token set."""
    for name in (
        "COMMAND_PREFIX", "STORAGE_BACKEND", "DATA_DIR", "DATABASE_PATH",
        "SPAM_WINDOW_SECONDS", "DEFAULT_MAX_MESSAGES", "SPAM_SWEEP_INTERVAL",
        "STRIKE_RESET_MODE", "STRIKE_COOLDOWN_SECONDS", "TICKET_CLOSE_DELAY",
        "HEALTH_CHECK_PORT", "ERROR_WEBHOOK_URL", "DEVELOPER_ID",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DISCORD_TOKEN", "abc")
    return monkeypatch


class TestLoadConfig:
    """Tests for load_config()."""

    def test_missing_token_raises(self, clean_env):
        clean_env.delenv("DISCORD_TOKEN")
        with pytest.raises(ConfigValidationError):
            load_config()

    def test_defaults(self, clean_env):
        config = load_config()

        assert config.discord_token == "abc"
        assert config.command_prefix == "!"
        assert config.storage_backend == "sqlite"
        assert config.spam_window_seconds == 60
        assert config.default_max_messages == 10
        assert config.spam_sweep_interval == 300
        assert config.strike_reset_mode == "sweep"
        assert config.ticket_close_delay == 10
        assert config.health_check_port == 8080
        assert config.database_path == Path("data") / "bastion.db"
        assert config.error_webhook_url is None
        assert config.developer_id is None

    def test_overrides(self, clean_env):
        clean_env.setenv("STORAGE_BACKEND", "Memory")
        clean_env.setenv("STRIKE_RESET_MODE", "inactivity")
        clean_env.setenv("SPAM_WINDOW_SECONDS", "30")
        clean_env.setenv("DEVELOPER_ID", "42")
        clean_env.setenv("DATA_DIR", "/tmp/bastion")

        config = load_config()

        assert config.storage_backend == "memory"
        assert config.strike_reset_mode == "inactivity"
        assert config.spam_window_seconds == 30
        assert config.developer_id == 42
        assert config.database_path == Path("/tmp/bastion") / "bastion.db"

    def test_unknown_choice_falls_back(self, clean_env):
        clean_env.setenv("STORAGE_BACKEND", "postgres")
        assert load_config().storage_backend == "sqlite"

    def test_out_of_range_values_are_clamped(self, clean_env):
        clean_env.setenv("SPAM_SWEEP_INTERVAL", "1")
        clean_env.setenv("HEALTH_CHECK_PORT", "99999")
        config = load_config()
        assert config.spam_sweep_interval == 5
        assert config.health_check_port == 65535

    def test_invalid_integer_uses_default(self, clean_env):
        clean_env.setenv("DEFAULT_MAX_MESSAGES", "lots")
        assert load_config().default_max_messages == 10

    def test_invalid_webhook_url_ignored(self, clean_env):
        clean_env.setenv("ERROR_WEBHOOK_URL", "not-a-url")
        assert load_config().error_webhook_url is None

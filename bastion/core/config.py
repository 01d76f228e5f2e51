"""
Bastion - Configuration Module
==============================

Centralized configuration loaded from environment variables.

DESIGN:
    A single Config dataclass holds every process-wide setting. Values are
    validated once at load time and cached by get_config(). Per-guild
    moderation policy does not live here; it is stored per server through
    the storage layer and read as a ServerPolicy on each event.

    Key patterns:
    - Singleton via get_config() ensures one Config instance
    - Numeric values are clamped into range with a logged warning
    - Unknown enum-like values fall back to defaults with a warning
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


# =============================================================================
# Configuration Dataclass
# =============================================================================

STORAGE_BACKENDS = ("sqlite", "memory")
STRIKE_RESET_MODES = ("sweep", "inactivity")


@dataclass
class Config:
    """
    Bot configuration loaded from environment variables.

    Attributes:
        discord_token: Discord bot authentication token.
        command_prefix: Prefix for text commands.
        storage_backend: "sqlite" or "memory".
        data_dir: Directory for persisted data files.
        database_path: SQLite database file.
        spam_window_seconds: Length of the spam sliding window.
        default_max_messages: Message limit used when a guild has none.
        spam_sweep_interval: Seconds between anti-spam sweeps.
        strike_reset_mode: "sweep" clears all strikes each sweep,
            "inactivity" expires each user's strikes individually.
        strike_cooldown_seconds: Idle time before strikes expire in
            inactivity mode.
        ticket_close_delay: Seconds before a closed ticket channel is deleted.
        health_check_port: Port for the health endpoint, 0 disables it.
        error_webhook_url: Discord webhook for error alerts.
        developer_id: User always treated as admin.
    """

    # -------------------------------------------------------------------------
    # Required: Discord
    # -------------------------------------------------------------------------

    discord_token: str

    # -------------------------------------------------------------------------
    # Optional: Commands
    # -------------------------------------------------------------------------

    command_prefix: str = "!"

    # -------------------------------------------------------------------------
    # Optional: Storage
    # -------------------------------------------------------------------------

    storage_backend: str = "sqlite"
    data_dir: Path = Path("data")
    database_path: Path = Path("data") / "bastion.db"

    # -------------------------------------------------------------------------
    # Optional: Anti-Spam
    # -------------------------------------------------------------------------

    spam_window_seconds: int = 60
    default_max_messages: int = 10
    spam_sweep_interval: int = 300
    strike_reset_mode: str = "sweep"
    strike_cooldown_seconds: int = 3600

    # -------------------------------------------------------------------------
    # Optional: Tickets
    # -------------------------------------------------------------------------

    ticket_close_delay: int = 10

    # -------------------------------------------------------------------------
    # Optional: Monitoring
    # -------------------------------------------------------------------------

    health_check_port: int = 8080
    error_webhook_url: Optional[str] = None
    developer_id: Optional[int] = None


# =============================================================================
# Embed Colors
# =============================================================================

class EmbedColors:
    """Standardized color palette for Discord embeds."""

    GREEN = 0x1F5E2E
    GOLD = 0xE6B84A
    RED = 0xDC3545
    BLUE = 0x3498DB
    ORANGE = 0xFF9800

    SUCCESS = GREEN
    WARNING = GOLD
    INFO = BLUE

    # Moderation log colors
    LOG_NEGATIVE = RED      # kicks, bans
    LOG_WARNING = ORANGE    # timeouts, warnings
    TICKET = BLUE


# =============================================================================
# Validation
# =============================================================================

class ConfigValidationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


def _parse_int_optional(value: Optional[str]) -> Optional[int]:
    """Parse optional string to integer, returning None on failure."""
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _parse_int_with_default(
    value: Optional[str],
    default: int,
    name: str,
    min_val: int = None,
    max_val: int = None,
) -> int:
    """
    Parse optional integer with default and range validation.

    Args:
        value: String value from environment variable.
        default: Default value if not set or invalid.
        name: Variable name for warning messages.
        min_val: Minimum allowed value (inclusive).
        max_val: Maximum allowed value (inclusive).

    Returns:
        Parsed integer within valid range, or default.
    """
    from bastion.core.logger import logger

    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"Config {name}='{value}' invalid, using default {default}")
        return default
    if min_val is not None and parsed < min_val:
        logger.warning(f"Config {name}={parsed} below min {min_val}, using {min_val}")
        return min_val
    if max_val is not None and parsed > max_val:
        logger.warning(f"Config {name}={parsed} above max {max_val}, using {max_val}")
        return max_val
    return parsed


def _parse_choice(value: Optional[str], choices: tuple, default: str, name: str) -> str:
    """Parse a lowercase choice, falling back to default on unknown values."""
    if not value:
        return default
    normalized = value.strip().lower()
    if normalized not in choices:
        from bastion.core.logger import logger
        logger.warning(f"Config {name}='{value}' not one of {', '.join(choices)}, using {default}")
        return default
    return normalized


def _validate_url(value: Optional[str], name: str) -> Optional[str]:
    """Return the URL if it looks like http(s), otherwise None."""
    if not value:
        return None
    if not value.startswith(("https://", "http://")):
        from bastion.core.logger import logger
        logger.warning(f"Config {name} invalid URL format, ignoring")
        return None
    return value


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config() -> Config:
    """
    Load and validate configuration from environment variables.

    Returns:
        Validated Config object with all settings.

    Raises:
        ConfigValidationError: If DISCORD_TOKEN is missing.
    """
    token = os.getenv("DISCORD_TOKEN")
    if not token:
        raise ConfigValidationError("Missing required: DISCORD_TOKEN")

    data_dir = Path(os.getenv("DATA_DIR", "data"))
    database_path = Path(os.getenv("DATABASE_PATH", str(data_dir / "bastion.db")))

    return Config(
        discord_token=token,
        command_prefix=os.getenv("COMMAND_PREFIX", "!") or "!",
        storage_backend=_parse_choice(
            os.getenv("STORAGE_BACKEND"), STORAGE_BACKENDS, "sqlite", "STORAGE_BACKEND",
        ),
        data_dir=data_dir,
        database_path=database_path,
        spam_window_seconds=_parse_int_with_default(
            os.getenv("SPAM_WINDOW_SECONDS"), 60, "SPAM_WINDOW_SECONDS", min_val=1, max_val=3600,
        ),
        default_max_messages=_parse_int_with_default(
            os.getenv("DEFAULT_MAX_MESSAGES"), 10, "DEFAULT_MAX_MESSAGES", min_val=1, max_val=1000,
        ),
        spam_sweep_interval=_parse_int_with_default(
            os.getenv("SPAM_SWEEP_INTERVAL"), 300, "SPAM_SWEEP_INTERVAL", min_val=5, max_val=86400,
        ),
        strike_reset_mode=_parse_choice(
            os.getenv("STRIKE_RESET_MODE"), STRIKE_RESET_MODES, "sweep", "STRIKE_RESET_MODE",
        ),
        strike_cooldown_seconds=_parse_int_with_default(
            os.getenv("STRIKE_COOLDOWN_SECONDS"), 3600, "STRIKE_COOLDOWN_SECONDS", min_val=1,
        ),
        ticket_close_delay=_parse_int_with_default(
            os.getenv("TICKET_CLOSE_DELAY"), 10, "TICKET_CLOSE_DELAY", min_val=0, max_val=600,
        ),
        health_check_port=_parse_int_with_default(
            os.getenv("HEALTH_CHECK_PORT"), 8080, "HEALTH_CHECK_PORT", min_val=0, max_val=65535,
        ),
        error_webhook_url=_validate_url(os.getenv("ERROR_WEBHOOK_URL"), "ERROR_WEBHOOK_URL"),
        developer_id=_parse_int_optional(os.getenv("DEVELOPER_ID")),
    )


# =============================================================================
# Global Config Instance
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance, loading if needed.

    Raises:
        ConfigValidationError: On first call if config is invalid.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def validate_and_log_config() -> None:
    """
    Validate configuration and log a summary at startup.

    Raises:
        ConfigValidationError: If required configuration is missing.
    """
    from bastion.core.logger import logger

    config = get_config()

    if not config.error_webhook_url:
        logger.info("Optional config not set: ERROR_WEBHOOK_URL")

    logger.tree("Configuration Validated", [
        ("Prefix", config.command_prefix),
        ("Storage", config.storage_backend),
        ("Spam Window", f"{config.spam_window_seconds}s"),
        ("Sweep Interval", f"{config.spam_sweep_interval}s"),
        ("Strike Reset", config.strike_reset_mode),
        ("Health Port", str(config.health_check_port) if config.health_check_port else "Disabled"),
    ], emoji="⚙️")


def is_developer(user_id: int) -> bool:
    """Check if user is the configured developer."""
    developer_id = get_config().developer_id
    return developer_id is not None and user_id == developer_id


__all__ = [
    "Config",
    "ConfigValidationError",
    "EmbedColors",
    "STORAGE_BACKENDS",
    "STRIKE_RESET_MODES",
    "get_config",
    "load_config",
    "validate_and_log_config",
    "is_developer",
]

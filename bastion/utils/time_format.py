"""
Bastion - Time Formatting Utils
===============================

Human-readable durations for command replies and log entries.
"""

from datetime import timedelta


def format_duration(total_minutes: int) -> str:
    """
    Format minutes as a compact duration.

    Examples:
        45 -> "45m", 125 -> "2h 5m", 1500 -> "1d 1h", 0 -> "0m"
    """
    if not total_minutes or total_minutes < 0:
        return "0m"

    days, remaining = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(remaining, 60)

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    # Minutes always shown when it is the only component
    if minutes > 0 or (days == 0 and hours == 0):
        parts.append(f"{minutes}m")
    return " ".join(parts)


def format_uptime(delta: timedelta) -> str:
    """Format an uptime as "1d 2h 3m 4s", dropping leading zero units."""
    total_seconds = max(int(delta.total_seconds()), 0)
    days, remaining = divmod(total_seconds, 86400)
    hours, remaining = divmod(remaining, 3600)
    minutes, seconds = divmod(remaining, 60)

    parts = []
    if days:
        parts.append(f"{days}d")
    if days or hours:
        parts.append(f"{hours}h")
    if days or hours or minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{seconds}s")
    return " ".join(parts)


__all__ = ["format_duration", "format_uptime"]

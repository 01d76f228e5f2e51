"""
Anti-Spam Constants
===================

Policy defaults and strike ladder settings for message-rate spam detection.
"""

from typing import Dict, Optional, Tuple


# =============================================================================
# Sliding Window
# =============================================================================

DEFAULT_MAX_MESSAGES = 10  # used when a guild has no limit set


# =============================================================================
# Strike Ladder
# =============================================================================

TERMINAL_STRIKE = 3

# strike ordinal -> (action, messages to purge, timeout minutes)
STRIKE_LADDER: Dict[int, Tuple[str, int, Optional[int]]] = {
    1: ("warn", 5, None),
    2: ("timeout", 10, 5),
    3: ("kick", 15, None),
}


# =============================================================================
# Sanction Reasons
# =============================================================================

# Reason passed to Discord with the sanction itself
DISCORD_REASONS: Dict[str, str] = {
    "timeout": "Auto-moderation: Repeated spam",
    "kick": "Auto-moderation: Excessive spam (3 strikes)",
}

# Reason stored on the moderation case, formatted with the event count
CASE_REASONS: Dict[str, str] = {
    "warn": "Auto-moderation: Spam detected ({count} messages/minute)",
    "timeout": "Auto-moderation: Repeated spam ({count} messages/minute)",
    "kick": "Auto-moderation: Excessive spam ({count} messages/minute, 3 strikes)",
}

# Channel announcements; a kicked member is named rather than mentioned
ANNOUNCEMENTS: Dict[str, str] = {
    "warn": "{mention}, please slow down your messages. Warning 1/3",
    "timeout": "{mention} has been timed out for {minutes} minutes due to continued spam. Warning 2/3",
    "kick": "{username} has been kicked for excessive spam.",
}

"""
Bastion - Centralized Constants
===============================

Magic numbers shared across commands, services and storage.
Import from this module instead of hardcoding values.
"""

# =============================================================================
# Time Constants
# =============================================================================

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400
MS_PER_SECOND = 1000

# =============================================================================
# Database Constants
# =============================================================================

DB_CONNECTION_TIMEOUT = 30.0          # sqlite3.connect timeout
SQLITE_BUSY_TIMEOUT = 5000            # PRAGMA busy_timeout (ms)
SERVER_CONFIG_FILE = "servers.json"   # memory backend persistence file

# =============================================================================
# Listing Limits
# =============================================================================

MODERATION_LOG_LIMIT = 50             # default case history page
MESSAGE_LOG_LIMIT = 100               # default message log page
WARNINGS_DISPLAY_LIMIT = 10           # warnings shown per command reply
CASES_DISPLAY_LIMIT = 10

# =============================================================================
# Moderation Limits
# =============================================================================

DEFAULT_MUTE_MINUTES = 10
MAX_TIMEOUT_MINUTES = 28 * 24 * 60    # Discord caps timeouts at 28 days
PURGE_MIN = 1
PURGE_MAX = 100
SLOWMODE_MAX_SECONDS = 21600          # Discord caps slowmode at 6 hours
BAN_DELETE_MESSAGE_SECONDS = SECONDS_PER_DAY

# =============================================================================
# Text Limits
# =============================================================================

REASON_MAX_LENGTH = 512               # Discord audit log reason limit
MESSAGE_MAX_LENGTH = 2000

# =============================================================================
# Tickets
# =============================================================================

TICKET_DEFAULT_SUBJECT = "General Support"
TICKET_CREATE_CUSTOM_ID = "create_ticket"
TICKET_CLOSE_CUSTOM_ID = "close_ticket"

# =============================================================================
# Welcome Messages
# =============================================================================

DEFAULT_WELCOME_MESSAGE = "Welcome to {server}, {user}!"
DEFAULT_GOODBYE_MESSAGE = "{username} has left the server."

"""
Bastion - Database Schema Module
================================

Table definitions.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bastion.core.storage.database.manager import DatabaseStorage


class SchemaMixin:
    """Mixin for database schema initialization."""

    def _init_tables(self: "DatabaseStorage") -> None:
        """
        Initialize all database tables.

        DESIGN: Tables are created if not exist, allowing safe restarts.
        Indexes added for the guild-scoped lookups every command performs.
        """
        conn = self._connection()
        cursor = conn.cursor()

        # -----------------------------------------------------------------
        # Server Configs
        # DESIGN: One row per guild, role lists stored as JSON arrays
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS server_configs (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                welcome_channel_id TEXT,
                welcome_message TEXT,
                goodbye_message TEXT,
                auto_role_id TEXT,
                moderation_log_channel_id TEXT,
                announcement_channel_id TEXT,
                ticket_category_id TEXT,
                moderator_role_ids TEXT NOT NULL DEFAULT '[]',
                admin_role_ids TEXT NOT NULL DEFAULT '[]',
                enable_spam_protection INTEGER NOT NULL DEFAULT 1,
                max_messages_per_minute INTEGER NOT NULL DEFAULT 10,
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL
            )
        """)

        # -----------------------------------------------------------------
        # Custom Commands
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS custom_commands (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                server_id TEXT NOT NULL,
                name TEXT NOT NULL,
                description TEXT,
                response TEXT NOT NULL,
                created_by TEXT NOT NULL,
                created_at REAL NOT NULL,
                UNIQUE(server_id, name)
            )
        """)

        # -----------------------------------------------------------------
        # Moderation Logs
        # DESIGN: Case numbers are per guild; the UNIQUE constraint is the
        # last line behind the immediate transaction in create_moderation_log
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS moderation_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                case_number INTEGER NOT NULL,
                server_id TEXT NOT NULL,
                target_user_id TEXT NOT NULL,
                moderator_user_id TEXT NOT NULL,
                action TEXT NOT NULL,
                reason TEXT,
                duration INTEGER,
                created_at REAL NOT NULL,
                UNIQUE(server_id, case_number)
            )
        """)

        # -----------------------------------------------------------------
        # Tickets
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS tickets (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                server_id TEXT NOT NULL,
                channel_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                subject TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'open',
                created_at REAL NOT NULL,
                closed_at REAL
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_tickets_server ON tickets(server_id, status)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_tickets_channel ON tickets(channel_id)")

        # -----------------------------------------------------------------
        # User Warnings
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS user_warnings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                server_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                moderator_id TEXT NOT NULL,
                reason TEXT NOT NULL,
                created_at REAL NOT NULL
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_warnings_user ON user_warnings(server_id, user_id)")

        # -----------------------------------------------------------------
        # Message Logs
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS message_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                server_id TEXT NOT NULL,
                channel_id TEXT NOT NULL,
                message_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                content TEXT,
                action TEXT NOT NULL,
                created_at REAL NOT NULL
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_message_logs_server ON message_logs(server_id)")

        conn.commit()

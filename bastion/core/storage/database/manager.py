"""
Bastion - Database Manager
==========================

SQLite storage backend assembled from per-table mixins.
"""

from pathlib import Path

from bastion.core.logger import logger
from bastion.core.storage.base import Storage
from bastion.core.storage.database.base import DatabaseBase
from bastion.core.storage.database.schema import SchemaMixin
from bastion.core.storage.database.server_configs import ServerConfigsMixin
from bastion.core.storage.database.custom_commands import CustomCommandsMixin
from bastion.core.storage.database.cases import CasesMixin
from bastion.core.storage.database.tickets import TicketsMixin
from bastion.core.storage.database.warnings import WarningsMixin
from bastion.core.storage.database.message_logs import MessageLogsMixin


class DatabaseStorage(
    SchemaMixin,
    ServerConfigsMixin,
    CustomCommandsMixin,
    CasesMixin,
    TicketsMixin,
    WarningsMixin,
    MessageLogsMixin,
    DatabaseBase,
    Storage,
):
    """
    Storage backed by a single SQLite file.

    DESIGN: One connection per instance, every statement serialized by the
    connection lock. Tests create one instance per temporary file.
    """

    def __init__(self, db_path: Path) -> None:
        self._init_base(db_path)
        self._init_tables()

        logger.tree("Database Initialized", [
            ("Path", str(self._db_path)),
            ("Mode", "WAL"),
        ], emoji="🗄️")


__all__ = ["DatabaseStorage"]

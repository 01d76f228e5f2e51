"""
Bastion - Storage Package
=========================

Storage interface, both backends, and the shared instance.

DESIGN:
    get_storage() builds the backend named by STORAGE_BACKEND on first use
    and returns the same instance afterwards, so every service and cog
    shares one store.
"""

from typing import Optional

from bastion.core.config import get_config
from bastion.core.storage.base import Storage
from bastion.core.storage.database import DatabaseStorage
from bastion.core.storage.memory import MemoryStorage
from bastion.core.storage.models import (
    CustomCommandRecord,
    MessageLogAction,
    MessageLogRecord,
    ModerationAction,
    ModerationRecord,
    NewModerationRecord,
    ServerConfigInput,
    ServerConfigRecord,
    TicketRecord,
    TicketStatus,
    WarningRecord,
)


_storage: Optional[Storage] = None


def create_storage(backend: str) -> Storage:
    """Build a fresh backend from the current configuration."""
    config = get_config()
    if backend == "memory":
        return MemoryStorage(config.data_dir)
    return DatabaseStorage(config.database_path)


def get_storage() -> Storage:
    """Get the global storage instance, creating it if needed."""
    global _storage
    if _storage is None:
        _storage = create_storage(get_config().storage_backend)
    return _storage


__all__ = [
    "Storage",
    "DatabaseStorage",
    "MemoryStorage",
    "create_storage",
    "get_storage",
    "CustomCommandRecord",
    "MessageLogAction",
    "MessageLogRecord",
    "ModerationAction",
    "ModerationRecord",
    "NewModerationRecord",
    "ServerConfigInput",
    "ServerConfigRecord",
    "TicketRecord",
    "TicketStatus",
    "WarningRecord",
]

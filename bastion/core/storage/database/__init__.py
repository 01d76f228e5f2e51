"""
Bastion - Database Package
==========================

SQLite implementation of the storage interface.
"""

from bastion.core.storage.database.manager import DatabaseStorage

__all__ = ["DatabaseStorage"]

"""
Bastion - Error Types
=====================

Exception hierarchy shared by storage, moderation and Discord glue code.

DESIGN:
    Storage backends raise StorageError for I/O and driver failures so
    callers never need to know which backend is active. Sanction appliers
    raise SanctionApplicationFailure when Discord rejects an action.
"""


class BastionError(Exception):
    """Base class for all bot errors."""


class StorageError(BastionError):
    """A storage backend could not read or write."""


class NotFoundError(StorageError):
    """An update targeted a row that does not exist."""


class InvariantViolation(StorageError):
    """
    A uniqueness guarantee was about to be broken.

    Raised when a duplicate case number reaches the backing store.
    """


class SanctionApplicationFailure(BastionError):
    """
    Discord rejected a sanction (missing permission, member gone, etc).

    Attributes:
        action: Name of the sanction that failed.
    """

    def __init__(self, action: str, message: str) -> None:
        super().__init__(f"{action}: {message}")
        self.action = action


__all__ = [
    "BastionError",
    "StorageError",
    "NotFoundError",
    "InvariantViolation",
    "SanctionApplicationFailure",
]

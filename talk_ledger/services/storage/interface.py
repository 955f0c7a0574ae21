"""
Abstract Storage Interface

DESIGN DECISION: The ledger persists through a minimal key-value interface,
the same shape as browser localStorage: string keys, string values.
This lets us:
1. Keep the ledger blob format identical to what the web front end stored
2. Use in-memory storage for testing
3. Swap the JSON file for another backend without touching ledger logic
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for string key-value storage.

    Implementations must make set() atomic: a reader sees either the
    old value or the new one, never a partial write.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under `key`.

        Returns:
            The stored string, or None if the key is absent

        Raises:
            PersistenceError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store `value` under `key`, replacing any previous value.

        Raises:
            PersistenceError: If the write fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class PersistenceError(StorageError):
    """The backend could not be read or written."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass

"""
Storage Services Package

Provides the key-value storage interface and its implementations.
"""

from talk_ledger.services.storage.interface import (
    DuplicateError,
    KeyValueStoreInterface,
    NotFoundError,
    PersistenceError,
    StorageError,
)
from talk_ledger.services.storage.json_file import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
)

__all__ = [
    # Interfaces
    "KeyValueStoreInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "PersistenceError",
    "StorageError",
    # Implementations
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
]

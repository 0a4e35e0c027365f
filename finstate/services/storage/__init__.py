"""
Storage Services Package

Provides the abstract store boundary and an in-memory implementation.
The engine only ever sees the interfaces, so any backend can be plugged in.
"""

from finstate.services.storage.interface import (
    AuditStorageInterface,
    EntityStoreInterface,
    NotFoundError,
    StorageError,
    StoreConnectionError,
    StoreRejectedError,
)
from finstate.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryEntityStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "EntityStoreInterface",
    # Exceptions
    "NotFoundError",
    "StorageError",
    "StoreConnectionError",
    "StoreRejectedError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryEntityStore",
]

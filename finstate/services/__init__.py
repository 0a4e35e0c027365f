"""Services package."""

from finstate.services.storage import (
    AuditStorageInterface,
    EntityStoreInterface,
    InMemoryAuditStorage,
    InMemoryEntityStore,
    NotFoundError,
    StorageError,
    StoreConnectionError,
    StoreRejectedError,
)

__all__ = [
    "AuditStorageInterface",
    "EntityStoreInterface",
    "InMemoryAuditStorage",
    "InMemoryEntityStore",
    "NotFoundError",
    "StorageError",
    "StoreConnectionError",
    "StoreRejectedError",
]

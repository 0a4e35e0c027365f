"""
Abstract Storage Interface

DESIGN DECISION: The engine talks to its authoritative store through an
abstract interface. This allows us to:
1. Run the engine against any backend (REST API, database, spreadsheet)
2. Use in-memory storage for testing
3. Keep ordering and durability where they belong: in the store

The interface is intentionally tiny - we're not building an ORM.
Reads fetch every record of a kind; writes submit exactly one
MutationRequest and receive the store's authoritative answer.
"""

from abc import ABC, abstractmethod
from typing import Any
from uuid import UUID

from finstate.models.audit import AuditEvent
from finstate.models.entities import EntityKind
from finstate.models.mutations import MutationRequest, StoreResponse


class EntityStoreInterface(ABC):
    """
    Abstract interface for the authoritative entity store.

    Any store implementation must implement these methods.
    """

    @abstractmethod
    async def fetch(self, kind: EntityKind) -> list[dict[str, Any]]:
        """
        Fetch every record of one kind.

        Args:
            kind: The entity kind to load

        Returns:
            JSON-like records; unknown fields are allowed

        Raises:
            StoreConnectionError: If the store cannot be reached
        """
        pass

    @abstractmethod
    async def submit(self, request: MutationRequest) -> StoreResponse:
        """
        Submit one mutation.

        Args:
            request: The validated, normalized mutation

        Returns:
            The authoritative records produced by the mutation

        Raises:
            StoreRejectedError: If the store refuses the mutation
            StoreConnectionError: If the store cannot be reached
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (one mutation attempt).

        Args:
            correlation_id: The correlation identifier

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: int,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Kind of entity (e.g., 'loan', 'account')
            entity_id: The entity's store id

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Args:
            limit: Maximum number of events to return

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class StoreRejectedError(StorageError):
    """The authoritative store refused the mutation."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class StoreConnectionError(StorageError):
    """Could not reach the storage backend."""
    pass

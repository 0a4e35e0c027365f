"""
Tests for the audit logger.
"""

import pytest
from uuid import UUID

from finstate.audit import AuditLogger, create_correlation_id
from finstate.models import AuditEventBuilder, AuditEventType, AuditSeverity
from finstate.services.storage import InMemoryAuditStorage, StorageError


class FailingAuditStorage(InMemoryAuditStorage):
    async def append_event(self, event):
        raise StorageError("audit store down")


class TestAuditLogger:
    """Tests for AuditLogger."""

    @pytest.mark.asyncio
    async def test_without_storage(self):
        """Test local-only logging reports success."""
        logger = AuditLogger()
        assert await logger.log(AuditEventBuilder.snapshot_refreshed({"loan": 2})) is True

    @pytest.mark.asyncio
    async def test_events_persisted(self):
        """Test helper methods build and store the right events."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        cid = create_correlation_id()

        await logger.log_entity_created("account", 4, cid)
        await logger.log_store_rejected(
            operation="pay_bill", entity_type="bill", entity_id=2,
            reason="Bill is already paid", correlation_id=cid,
        )

        events = await storage.get_events_by_correlation_id(cid)
        assert [e.event_type for e in events] == [
            AuditEventType.ENTITY_CREATED,
            AuditEventType.STORE_REJECTED,
        ]
        assert events[0].entity_id == 4

    @pytest.mark.asyncio
    async def test_store_error_severity(self):
        """Test transport failures are logged as errors."""
        storage = InMemoryAuditStorage()
        await AuditLogger(storage).log_store_error("refresh", "Store unreachable")
        event = storage.events[0]
        assert event.severity == AuditSeverity.ERROR
        assert event.correlation_id is None

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_raise(self):
        """Test a broken audit backend never fails the caller."""
        logger = AuditLogger(FailingAuditStorage())
        event = AuditEventBuilder.entity_deleted("goal", 1, create_correlation_id())
        assert await logger.log(event) is False

    def test_correlation_ids_are_unique(self):
        """Test each mutation gets its own id."""
        first, second = create_correlation_id(), create_correlation_id()
        assert isinstance(first, UUID)
        assert first != second

